"""Pipeline configuration and utilities."""

import hashlib
import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import List, Optional

import yaml

from .candles import RatioConvention
from .errors import ConfigurationError
from .windows import WindowMode


@dataclass
class PredictorConfig:
    """Configuration for the default predictor (feed-forward network)."""

    # Units per hidden layer
    hidden_layers: List[int] = field(default_factory=lambda: [32, 16])

    # 'identity', 'logistic', 'tanh', 'relu'
    activation: str = 'relu'

    # Training settings
    epochs: int = 200
    batch_size: int = 32
    learning_rate: float = 1e-3

    # Epochs with no improvement before stopping, 0 disables
    early_stop: int = 10

    random_seed: int = 1337

    # Continue training a saved model from the artifact directory
    resume: bool = False

    def __post_init__(self):
        if any(int(units) < 1 for units in self.hidden_layers):
            raise ConfigurationError(f"hidden_layers must be positive, got {self.hidden_layers}")
        if self.epochs < 1:
            raise ConfigurationError(f"epochs must be >= 1, got {self.epochs}")
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.early_stop < 0:
            raise ConfigurationError(f"early_stop must be >= 0, got {self.early_stop}")


@dataclass
class PipelineConfig:
    """Master configuration for one instrument's pipeline."""

    # Quantization
    segments_count: int = 11
    precision: int = 4
    ratio_convention: str = 'ohlc'

    # Windowing
    input_size: int = 20
    output_size: int = 3
    window_mode: str = 'flat'

    # Held-out examples taken from the training set
    validation_size: int = 0

    # Artifacts
    working_dir: str = 'neuro-vision'
    ticker: Optional[str] = None

    seed: int = 1337

    predictor: PredictorConfig = field(default_factory=PredictorConfig)

    def __post_init__(self):
        if isinstance(self.predictor, dict):
            self.predictor = PredictorConfig(**self.predictor)

        if self.segments_count < 2:
            raise ConfigurationError(f"segments_count must be >= 2, got {self.segments_count}")
        if self.precision < 0:
            raise ConfigurationError(f"precision must be >= 0, got {self.precision}")
        if self.input_size < 1:
            raise ConfigurationError(f"input_size must be >= 1, got {self.input_size}")
        if self.output_size < 1:
            raise ConfigurationError(f"output_size must be >= 1, got {self.output_size}")
        if self.validation_size < 0:
            raise ConfigurationError(f"validation_size must be >= 0, got {self.validation_size}")

        try:
            RatioConvention(self.ratio_convention)
        except ValueError:
            raise ConfigurationError(f"Unknown ratio_convention: {self.ratio_convention}") from None
        try:
            WindowMode(self.window_mode)
        except ValueError:
            raise ConfigurationError(f"Unknown window_mode: {self.window_mode}") from None

    @property
    def convention(self) -> RatioConvention:
        return RatioConvention(self.ratio_convention)

    @property
    def mode(self) -> WindowMode:
        return WindowMode(self.window_mode)

    def artifact_dir(self) -> Path:
        """Directory holding the saved distribution and model."""
        base = Path(self.working_dir)
        return base / self.ticker if self.ticker else base

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'PipelineConfig':
        data = dict(data or {})
        try:
            predictor = PredictorConfig(**(data.pop('predictor', None) or {}))
            return cls(predictor=predictor, **data)
        except TypeError as e:
            raise ConfigurationError(str(e)) from e

    @classmethod
    def from_yaml(cls, path: str) -> 'PipelineConfig':
        """Load configuration from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data)

    def save_yaml(self, path: str) -> None:
        """Save configuration to YAML file."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)


def compute_config_hash(config: dict) -> str:
    """Compute hash of configuration for reproducibility."""
    config_str = json.dumps(config, sort_keys=True, default=str)
    return hashlib.sha256(config_str.encode()).hexdigest()[:16]
