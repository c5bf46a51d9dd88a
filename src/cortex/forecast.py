"""Price forecasts reconstructed from quantized model output."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .distribution import DistributionSegment
from .quantizer import Quantizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Forecast:
    low: float
    high: float
    avg: float


def price_range(price: float, ratio_from: float, ratio_to: float) -> Forecast:
    low = price * ratio_from
    high = price * ratio_to
    return Forecast(low=low, high=high, avg=(low + high) / 2)


class ForecastReconstructor:
    """Turn predicted model values back into price ranges.

    A value whose segment index does not exist in the distribution yields
    None for that step only.
    """

    def __init__(self, quantizer: Quantizer):
        self.quantizer = quantizer

    def reconstruct(
        self,
        value: float,
        distribution: Sequence[DistributionSegment],
        reference_price: float,
    ) -> Optional[Forecast]:
        index = self.quantizer.denormalize(value)
        if index >= len(distribution):
            logger.debug("Predicted segment %d outside %d known segments", index, len(distribution))
            return None

        segment = distribution[index]
        return price_range(reference_price, segment.ratio_from, segment.ratio_to)

    def reconstruct_many(
        self,
        values: Iterable[float],
        distribution: Sequence[DistributionSegment],
        reference_price: float,
    ) -> List[Optional[Forecast]]:
        return [self.reconstruct(float(v), distribution, reference_price) for v in values]
