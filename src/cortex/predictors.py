"""Predictor boundary and the default scikit-learn network.

The pipeline only relies on the ``Predictor`` protocol: numeric windows in,
numeric horizon values out. ``MLPPredictor`` is the bundled implementation.
"""
from __future__ import annotations

import json
import logging
import pickle
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Tuple, Union

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPRegressor

from .config import PredictorConfig, compute_config_hash
from .errors import MalformedPersistedStateError, MissingPersistedStateError, PredictorNotFittedError

logger = logging.getLogger(__name__)

MODEL_FILE = "model.pkl"
METADATA_FILE = "metadata.json"


class Predictor(Protocol):
    def fit(
        self,
        inputs: np.ndarray,
        outputs: np.ndarray,
        validation: Optional[Tuple[np.ndarray, np.ndarray]] = None,
    ) -> Dict[str, Any]:
        """Train on stacked examples and return training metrics."""

    def predict(self, inputs: np.ndarray) -> np.ndarray:
        """Return one row of horizon values per input window."""

    def save(self, directory: Union[str, Path]) -> None:
        ...

    def load(self, directory: Union[str, Path]) -> None:
        ...


def flatten_inputs(inputs: np.ndarray) -> np.ndarray:
    """Collapse per-timestep windows ``(n, steps, streams)`` to ``(n, features)``."""
    inputs = np.asarray(inputs, dtype=np.float64)
    if inputs.ndim == 1:
        return inputs.reshape(1, -1)
    return inputs.reshape(inputs.shape[0], int(np.prod(inputs.shape[1:])))


class MLPPredictor:
    """Feed-forward regression network over quantized windows.

    Sequential windows are flattened, so the same estimator serves both
    window layouts.
    """

    def __init__(self, config: Optional[PredictorConfig] = None):
        self.config = config or PredictorConfig()
        self.model: Optional[MLPRegressor] = None
        self.input_dim: Optional[int] = None
        self.output_dim: Optional[int] = None
        self.training_metrics: Dict[str, Any] = {}

    def _create_model(self, n_samples: int) -> MLPRegressor:
        cfg = self.config
        return MLPRegressor(
            hidden_layer_sizes=tuple(int(units) for units in cfg.hidden_layers),
            activation=cfg.activation,
            solver='adam',
            batch_size=min(cfg.batch_size, n_samples),
            learning_rate_init=cfg.learning_rate,
            max_iter=cfg.epochs,
            n_iter_no_change=cfg.early_stop or cfg.epochs,
            random_state=cfg.random_seed,
        )

    def _resume_model(self, input_dim: int, output_dim: int, n_samples: int) -> None:
        """Keep training the loaded estimator from its current weights."""
        if (input_dim, output_dim) != (self.input_dim, self.output_dim):
            raise ValueError(
                f"Saved model expects {self.input_dim} inputs and {self.output_dim} outputs, "
                f"got {input_dim} and {output_dim}"
            )
        cfg = self.config
        self.model.set_params(
            warm_start=True,
            batch_size=min(cfg.batch_size, n_samples),
            learning_rate_init=cfg.learning_rate,
            max_iter=cfg.epochs,
            n_iter_no_change=cfg.early_stop or cfg.epochs,
        )
        logger.info("Resuming training after %d epochs", self.model.n_iter_)

    def fit(
        self,
        inputs: np.ndarray,
        outputs: np.ndarray,
        validation: Optional[Tuple[np.ndarray, np.ndarray]] = None,
    ) -> Dict[str, Any]:
        """Fit the network.

        With ``resume`` set and a model already loaded, training continues
        from the loaded weights instead of starting fresh.

        Args:
            inputs: Windows, flat ``(n, features)`` or ``(n, steps, streams)``
            outputs: Horizon targets ``(n, output_size)``
            validation: Optional held-out ``(inputs, outputs)``

        Returns:
            Training metrics
        """
        X = flatten_inputs(inputs)
        if len(X) == 0:
            raise ValueError("Cannot fit predictor without training examples")
        y = np.asarray(outputs, dtype=np.float64).reshape(X.shape[0], -1)

        if self.config.resume and self.model is not None:
            self._resume_model(X.shape[1], y.shape[1], len(X))
        else:
            self.model = self._create_model(len(X))
        self.input_dim = X.shape[1]
        self.output_dim = y.shape[1]

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always', ConvergenceWarning)
            self.model.fit(X, y.ravel() if self.output_dim == 1 else y)
        if any(issubclass(w.category, ConvergenceWarning) for w in caught):
            logger.info("Training stopped at epoch limit (%d) before converging", self.config.epochs)

        metrics = {
            'loss': float(self.model.loss_),
            'epochs': int(self.model.n_iter_),
            'train_r2': float(self.model.score(X, y.ravel() if self.output_dim == 1 else y)),
            'loss_curve': [float(v) for v in self.model.loss_curve_],
        }
        if validation is not None and len(validation[0]):
            X_val = flatten_inputs(validation[0])
            y_val = np.asarray(validation[1], dtype=np.float64).reshape(X_val.shape[0], -1)
            metrics['val_r2'] = float(
                self.model.score(X_val, y_val.ravel() if self.output_dim == 1 else y_val)
            )

        self.training_metrics = metrics
        logger.info("Training finished: %s", metrics)
        return metrics

    def predict(self, inputs: np.ndarray) -> np.ndarray:
        if self.model is None:
            raise PredictorNotFittedError("Model not fitted")

        X = flatten_inputs(inputs)
        if X.shape[1] != self.input_dim:
            raise ValueError(f"Expected {self.input_dim} input values, got {X.shape[1]}")

        return np.asarray(self.model.predict(X)).reshape(X.shape[0], -1)

    def save(self, directory: Union[str, Path]) -> None:
        """Save model and metadata to disk."""
        if self.model is None:
            raise PredictorNotFittedError("Model not fitted")

        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)

        with open(path / MODEL_FILE, 'wb') as f:
            pickle.dump(self.model, f)

        config = {
            'hidden_layers': list(self.config.hidden_layers),
            'activation': self.config.activation,
        }
        meta = {
            'input_dim': self.input_dim,
            'output_dim': self.output_dim,
            'config': config,
            'config_hash': compute_config_hash(config),
            'training_metrics': self.training_metrics,
        }
        with open(path / METADATA_FILE, 'w') as f:
            json.dump(meta, f, indent=2)

    def load(self, directory: Union[str, Path]) -> None:
        """Load model and metadata from disk."""
        path = Path(directory)
        model_path = path / MODEL_FILE
        meta_path = path / METADATA_FILE

        for artifact in (model_path, meta_path):
            if not artifact.exists():
                raise MissingPersistedStateError(artifact)

        try:
            with open(meta_path) as f:
                meta: Dict[str, Any] = json.load(f)
            with open(model_path, 'rb') as f:
                model = pickle.load(f)
            self.input_dim = int(meta['input_dim'])
            self.output_dim = int(meta['output_dim'])
        except (OSError, ValueError, pickle.UnpicklingError, EOFError, KeyError, TypeError) as e:
            raise MalformedPersistedStateError(path, str(e)) from e

        if not isinstance(model, MLPRegressor):
            raise MalformedPersistedStateError(model_path, f"unexpected model type {type(model).__name__}")

        self.model = model
        self.training_metrics = meta.get('training_metrics', {})
