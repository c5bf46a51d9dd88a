"""Ratio-quantized candle forecasting.

This package provides:
- Ratio observations from consecutive candles
- Equal-frequency distributions and quantization of ratios
- Sliding training windows and live rolling windows
- Price range reconstruction from quantized predictions
"""

from .candles import (
    Candle,
    RatioConvention,
    RatioObservation,
    RatioTransform,
    quote_ratio,
)

from .distribution import (
    DistributionSegment,
    build_distribution,
    describe_distribution,
)

from .quantizer import Quantizer

from .windows import (
    RollingWindow,
    TrainingExample,
    WindowBuilder,
    WindowMode,
    split_validation,
)

from .forecast import Forecast, ForecastReconstructor, price_range

from .config import PipelineConfig, PredictorConfig, compute_config_hash

from .errors import (
    CortexError,
    ConfigurationError,
    MissingPersistedStateError,
    MalformedPersistedStateError,
    PredictorNotFittedError,
)

from .storage import DistributionStore
from .predictors import MLPPredictor, Predictor
from .pipeline import ForecastPipeline

__all__ = [
    # Candles
    'Candle',
    'RatioConvention',
    'RatioObservation',
    'RatioTransform',
    'quote_ratio',
    # Quantization
    'DistributionSegment',
    'build_distribution',
    'describe_distribution',
    'Quantizer',
    # Windows
    'RollingWindow',
    'TrainingExample',
    'WindowBuilder',
    'WindowMode',
    'split_validation',
    # Forecasts
    'Forecast',
    'ForecastReconstructor',
    'price_range',
    # Config
    'PipelineConfig',
    'PredictorConfig',
    'compute_config_hash',
    # Errors
    'CortexError',
    'ConfigurationError',
    'MissingPersistedStateError',
    'MalformedPersistedStateError',
    'PredictorNotFittedError',
    # Pipeline
    'DistributionStore',
    'MLPPredictor',
    'Predictor',
    'ForecastPipeline',
]
