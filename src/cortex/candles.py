"""Candles and relative-change (ratio) observations.

A ratio observation describes how much one stream moved between two
consecutive candles. Two conventions are supported:

- ``close``: ``current.close / previous.close``
- ``ohlc``: mean of OHLC over the previous candle's mean of OHLC
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence


class RatioConvention(str, Enum):
    CLOSE = "close"
    OHLC = "ohlc"


@dataclass(frozen=True)
class Candle:
    time: float
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def ohlc_mean(self) -> float:
        return (self.open + self.high + self.low + self.close) / 4


@dataclass(frozen=True)
class RatioObservation:
    time: float
    volume: float
    ratio: float


def candle_value(candle: Candle, convention: RatioConvention) -> float:
    """Price level a ratio is computed from."""
    if RatioConvention(convention) is RatioConvention.CLOSE:
        return candle.close
    return candle.ohlc_mean


def quote_ratio(
    current: Candle,
    previous: Optional[Candle],
    convention: RatioConvention = RatioConvention.OHLC,
) -> Optional[RatioObservation]:
    """Relative change from ``previous`` to ``current``.

    Returns None for the first candle of a stream (no previous candle).
    """
    if previous is None:
        return None

    prev_value = candle_value(previous, convention)
    if prev_value == 0:
        raise ValueError(f"Cannot compute ratio from zero price at time {previous.time}")

    return RatioObservation(
        time=current.time,
        volume=current.volume,
        ratio=candle_value(current, convention) / prev_value,
    )


class RatioTransform:
    """Turn parallel candle streams into ratio observations.

    Keeps the last candle of every stream so each call only needs the new
    candles of one time step.
    """

    def __init__(self, convention: RatioConvention = RatioConvention.OHLC) -> None:
        self.convention = RatioConvention(convention)
        self._previous: Dict[int, Candle] = {}

    def peek(self, candles: Sequence[Candle]) -> List[Optional[RatioObservation]]:
        """Ratios for ``candles`` without remembering them."""
        return [
            quote_ratio(candle, self._previous.get(index), self.convention)
            for index, candle in enumerate(candles)
        ]

    def update(self, candles: Sequence[Candle]) -> List[Optional[RatioObservation]]:
        """Ratios for ``candles``; they become the new previous candles."""
        observations = self.peek(candles)
        for index, candle in enumerate(candles):
            self._previous[index] = candle
        return observations

    def previous(self, index: int) -> Optional[Candle]:
        return self._previous.get(index)

    def reset(self) -> None:
        self._previous.clear()
