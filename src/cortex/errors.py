"""Exception types raised by the forecasting pipeline."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class CortexError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(CortexError, ValueError):
    """Invalid pipeline or predictor settings."""


class MissingPersistedStateError(CortexError):
    """A saved distribution or model required for inference is absent."""

    def __init__(self, artifact: Union[str, Path], message: Optional[str] = None):
        self.artifact = str(artifact)
        super().__init__(
            message
            or f"Missing {self.artifact}, please run training before use"
        )


class MalformedPersistedStateError(CortexError):
    """Saved state exists but cannot be parsed. Training must be rerun."""

    def __init__(self, artifact: Union[str, Path], reason: str):
        self.artifact = str(artifact)
        self.reason = reason
        super().__init__(f"Unknown data in {self.artifact} ({reason}), please rerun training")


class PredictorNotFittedError(CortexError):
    pass
