"""Empirical equal-frequency distribution of ratio observations.

The observed ratios are rounded, counted and split into contiguous segments
that each hold roughly the same number of observations. Returns of a price
series are roughly bell shaped, so segments are narrow near 1.0 and wide in
the tails. No parametric fit is involved.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

import pandas as pd

from .candles import RatioObservation
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistributionSegment:
    """Half-open ratio range ``[ratio_from, ratio_to)`` and its training count."""

    ratio_from: float
    ratio_to: float
    count: int

    def contains(self, ratio: float) -> bool:
        return self.ratio_from <= ratio < self.ratio_to

    @property
    def width(self) -> float:
        return self.ratio_to - self.ratio_from

    def to_dict(self) -> Dict[str, float]:
        return {"ratioFrom": self.ratio_from, "ratioTo": self.ratio_to, "count": self.count}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "DistributionSegment":
        return cls(
            ratio_from=float(data["ratioFrom"]),
            ratio_to=float(data["ratioTo"]),
            count=int(data["count"]),
        )


def frequency_table(
    observations: Sequence[RatioObservation],
    precision: int = 4,
) -> List[tuple]:
    """Sorted ``(rounded_ratio, count)`` pairs."""
    counter = Counter(round(obs.ratio, precision) for obs in observations)
    return sorted(counter.items())


def build_distribution(
    observations: Sequence[RatioObservation],
    segments_count: int = 11,
    precision: int = 4,
) -> List[DistributionSegment]:
    """Split observed ratios into ``segments_count`` equally populated segments.

    Args:
        observations: Ratio history of one stream
        segments_count: Number of segments to aim for (>= 2)
        precision: Decimal digits ratios are rounded to before counting

    Returns:
        Segments sorted ascending; empty when there are no observations.
        With fewer distinct ratios than segments, fewer segments come back.
    """
    if segments_count < 2:
        raise ConfigurationError(f"segments_count must be >= 2, got {segments_count}")

    if not observations:
        logger.warning("No ratio observations, distribution is empty")
        return []

    table = frequency_table(observations, precision)
    segment_size = math.ceil(len(observations) / segments_count)

    segments: List[DistributionSegment] = []
    local_sum = 0
    ratio_from = table[0][0]
    last_idx = len(table) - 1

    for idx, (ratio, count) in enumerate(table):
        next_sum = local_sum + count
        is_filled = len(segments) == segments_count - 1

        if idx == last_idx:
            # Final segment takes everything left, including this value
            segments.append(DistributionSegment(ratio_from, ratio, next_sum))
        elif next_sum > segment_size and not is_filled:
            segments.append(DistributionSegment(ratio_from, ratio, local_sum))
            local_sum = count
            ratio_from = ratio
        else:
            local_sum = next_sum

    if len(segments) < segments_count:
        logger.debug(
            "Only %d of %d segments built from %d distinct ratios",
            len(segments), segments_count, len(table),
        )

    return segments


def describe_distribution(segments: Sequence[DistributionSegment]) -> pd.DataFrame:
    """Tabular view of a distribution, one row per segment."""
    df = pd.DataFrame(
        [
            {
                "segment": idx,
                "ratio_from": seg.ratio_from,
                "ratio_to": seg.ratio_to,
                "width": seg.width,
                "count": seg.count,
            }
            for idx, seg in enumerate(segments)
        ],
        columns=["segment", "ratio_from", "ratio_to", "width", "count"],
    )
    total = df["count"].sum()
    df["share"] = df["count"] / total if total else 0.0
    return df
