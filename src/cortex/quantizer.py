"""Map ratios to segment indices and indices to model values."""
from __future__ import annotations

import math
from typing import Sequence

from .distribution import DistributionSegment
from .errors import ConfigurationError


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class Quantizer:
    """Classify ratios into segments and scale segment indices to ``[0, 1]``.

    Ratios outside every segment are clamped to the first or last segment.
    ``normalize`` and ``denormalize`` are not exact inverses: a model emits a
    continuous approximation of a discrete label and ``denormalize`` snaps it
    back to the nearest index.
    """

    def __init__(self, segments_count: int = 11):
        if segments_count < 2:
            raise ConfigurationError(f"segments_count must be >= 2, got {segments_count}")
        self.segments_count = int(segments_count)

    def classify(self, ratio: float, distribution: Sequence[DistributionSegment]) -> int:
        """Index of the segment holding ``ratio``."""
        if not distribution:
            raise ValueError("Cannot classify against an empty distribution")

        for idx, segment in enumerate(distribution):
            if segment.contains(ratio):
                return idx

        if ratio < distribution[0].ratio_from:
            return 0
        return len(distribution) - 1

    def normalize(self, segment_index: int) -> float:
        return segment_index / self.segments_count

    def denormalize(self, value: float) -> int:
        index = min(round_half_up(value * self.segments_count), self.segments_count - 1)
        return max(index, 0)

    def quantize(self, ratio: float, distribution: Sequence[DistributionSegment]) -> float:
        """Classify then normalize."""
        return self.normalize(self.classify(ratio, distribution))

    def quantize_many(
        self,
        ratios: Sequence[float],
        distribution: Sequence[DistributionSegment],
    ) -> list:
        return [self.quantize(ratio, distribution) for ratio in ratios]
