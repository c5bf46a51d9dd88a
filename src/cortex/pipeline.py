"""Ratio-quantization forecasting pipeline for one instrument.

Training phase::

    pipeline.prepare_training_phase()
    for candles in feed:                 # one candle per stream per step
        pipeline.add_training_data(candles)
    pipeline.finalize_training_phase()   # distributions, examples, fit, save

Inference::

    pipeline.restore()
    forecasts = pipeline.next_value(candles)

Stream 0 is the primary stream: forecasts are price ranges around its
latest close.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .candles import Candle, RatioObservation, RatioTransform
from .config import PipelineConfig
from .distribution import DistributionSegment, build_distribution
from .errors import MissingPersistedStateError
from .forecast import Forecast, ForecastReconstructor
from .predictors import MLPPredictor, Predictor
from .quantizer import Quantizer
from .storage import DistributionStore
from .windows import RollingWindow, TrainingExample, WindowBuilder, split_validation, to_arrays


class ForecastPipeline:
    """Candles in, quantized windows to a predictor, price ranges out."""

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        predictor: Optional[Predictor] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.log = logger or logging.getLogger(__name__)
        self.predictor = predictor if predictor is not None else MLPPredictor(self.config.predictor)

        cfg = self.config
        self.quantizer = Quantizer(cfg.segments_count)
        self.ratios = RatioTransform(cfg.convention)
        self.window_builder = WindowBuilder(cfg.input_size, cfg.output_size, cfg.mode)
        self.reconstructor = ForecastReconstructor(self.quantizer)
        self.live = RollingWindow(cfg.input_size, cfg.mode)
        self.store = DistributionStore(cfg.artifact_dir())

        self.datasets: List[List[RatioObservation]] = []
        self.distributions: List[List[DistributionSegment]] = []
        self.history: List[List[float]] = []
        self.training_set: List[TrainingExample] = []
        self.validation_set: List[TrainingExample] = []
        self._training = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def prepare_training_phase(self) -> None:
        """Start collecting training data from scratch."""
        self.log.info("Preparing training phase in %s", self.config.artifact_dir())
        self._reset()
        self._training = True

    def finalize_training_phase(self) -> Optional[Dict[str, Any]]:
        """Build the training set, fit the predictor and save artifacts.

        Returns training metrics, or None when there was not enough history
        for a single example.
        """
        self.serve_training_data()
        metrics = self.train()
        if metrics is not None:
            self.save()
            self.live.clear()
            self.live.extend(self.history)
        self._training = False
        return metrics

    def is_training(self) -> bool:
        """True between ``prepare_training_phase`` and ``finalize_training_phase``."""
        return self._training

    def teardown(self) -> None:
        self.log.info("Shutting down pipeline")
        self._reset()
        self._training = False

    def _reset(self) -> None:
        self.ratios.reset()
        self.live.clear()
        self.datasets = []
        self.history = []
        self.training_set = []
        self.validation_set = []

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def add_training_data(self, candles: Sequence[Candle]) -> None:
        """Accumulate one time step, one candle per stream."""
        for index, observation in enumerate(self.ratios.update(candles)):
            while len(self.datasets) <= index:
                self.datasets.append([])
            if observation is not None:
                self.datasets[index].append(observation)

    def serve_training_data(self) -> List[TrainingExample]:
        """Build distributions and cut quantized history into examples."""
        self.log.info("Preparing training data...")
        cfg = self.config

        self.distributions = [
            build_distribution(dataset, cfg.segments_count, cfg.precision)
            for dataset in self.datasets
        ]
        if self.distributions and all(self.distributions):
            self.history = [
                self.quantizer.quantize_many([obs.ratio for obs in dataset], segments)
                for dataset, segments in zip(self.datasets, self.distributions)
            ]
        else:
            self.history = []

        examples = self.window_builder.build(self.history) if self.history else []
        self.training_set, self.validation_set = split_validation(
            examples, cfg.validation_size, seed=cfg.seed
        )

        self.log.info(
            "Training set: %d examples, validation set: %d examples, %d streams",
            len(self.training_set), len(self.validation_set), len(self.history),
        )
        return self.training_set

    def train(self) -> Optional[Dict[str, Any]]:
        if not self.training_set:
            self.log.warning(
                "Not enough history to train: need more than %d ratios per stream",
                self.config.input_size + self.config.output_size,
            )
            return None

        if self.config.predictor.resume:
            self._load_existing_predictor()

        self.log.info("Starting training on %d examples...", len(self.training_set))
        inputs, outputs = to_arrays(self.training_set)
        validation = to_arrays(self.validation_set) if self.validation_set else None
        return self.predictor.fit(inputs, outputs, validation=validation)

    def _load_existing_predictor(self) -> None:
        directory = self.config.artifact_dir()
        self.log.info("Looking for existing model in %s...", directory)
        try:
            self.predictor.load(directory)
        except MissingPersistedStateError:
            self.log.info("No model found, creating a new one")
            return
        self.log.info("Existing model loaded, continuing training")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> None:
        directory = self.config.artifact_dir()
        self.store.save(self.distributions)
        self.predictor.save(directory)
        self.log.info("Saved pipeline artifacts to %s", directory)

    def restore(self) -> None:
        """Load saved distributions and predictor. Missing artifacts are fatal."""
        directory = self.config.artifact_dir()
        self.distributions = self.store.load()
        self.predictor.load(directory)
        self._reset()
        self._training = False
        self.log.info("Restored %d stream distributions from %s", len(self.distributions), directory)

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def next_value(self, candles: Sequence[Candle]) -> Optional[List[Optional[Forecast]]]:
        """Advance live state with one time step and forecast.

        Returns None while the live window is shorter than ``input_size``.
        Each forecast step is None when the predicted segment is unknown.
        """
        values = self._quantize_step(self.ratios.peek(candles))
        self.ratios.update(candles)
        self.live.push(values)
        return self._forecast(self.live, candles)

    def moment_value(self, candles: Sequence[Candle]) -> Optional[List[Optional[Forecast]]]:
        """Forecast as if ``candles`` were the latest step, without keeping them."""
        values = self._quantize_step(self.ratios.peek(candles))
        return self._forecast(self.live.peek(values), candles)

    def _quantize_step(self, observations: Sequence[Optional[RatioObservation]]) -> List[Optional[float]]:
        if not self.distributions:
            raise MissingPersistedStateError(
                self.store.path, "No distribution loaded, please run training or restore before use"
            )
        if len(observations) > len(self.distributions):
            raise ValueError(
                f"Got {len(observations)} streams but only {len(self.distributions)} distributions"
            )

        return [
            None if obs is None else self.quantizer.quantize(obs.ratio, self.distributions[index])
            for index, obs in enumerate(observations)
        ]

    def _forecast(
        self,
        window: RollingWindow,
        candles: Sequence[Candle],
    ) -> Optional[List[Optional[Forecast]]]:
        if not window.is_ready(len(candles)):
            return None

        inputs = np.array([window.snapshot()], dtype=np.float64)
        prediction = np.asarray(self.predictor.predict(inputs)).reshape(-1)
        forecasts = self.reconstructor.reconstruct_many(
            prediction, self.distributions[0], candles[0].close
        )

        if self.log.isEnabledFor(logging.DEBUG):
            rows = "\n".join(" ".join(f"{v:.3f}" for v in row) for row in window.rows())
            self.log.debug(
                "Input:\n%s\nOutput: %s",
                rows, " ".join(f"{v:.4f}" for v in prediction),
            )
        return forecasts
