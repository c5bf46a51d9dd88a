"""Tests for ratio classification and index normalization."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np
import pytest

from cortex.candles import RatioObservation
from cortex.distribution import DistributionSegment, build_distribution
from cortex.errors import ConfigurationError
from cortex.quantizer import Quantizer, round_half_up


DISTRIBUTION = [
    DistributionSegment(0.97, 0.99, 3),
    DistributionSegment(0.99, 1.00, 3),
    DistributionSegment(1.00, 1.01, 3),
    DistributionSegment(1.01, 1.03, 3),
]


class TestClassify:
    def test_interior_values(self):
        q = Quantizer(segments_count=4)
        assert q.classify(0.98, DISTRIBUTION) == 0
        assert q.classify(0.995, DISTRIBUTION) == 1
        assert q.classify(1.005, DISTRIBUTION) == 2
        assert q.classify(1.02, DISTRIBUTION) == 3

    def test_lower_bound_inclusive(self):
        q = Quantizer(segments_count=4)
        assert q.classify(1.00, DISTRIBUTION) == 2

    def test_below_minimum_clamps_to_first(self):
        q = Quantizer(segments_count=4)
        assert q.classify(0.5, DISTRIBUTION) == 0

    def test_above_maximum_clamps_to_last(self):
        q = Quantizer(segments_count=4)
        assert q.classify(1.5, DISTRIBUTION) == 3
        # Upper bound of the last segment is exclusive but still clamps
        assert q.classify(1.03, DISTRIBUTION) == 3

    def test_empty_distribution(self):
        with pytest.raises(ValueError):
            Quantizer(4).classify(1.0, [])


class TestNormalize:
    def test_normalize(self):
        q = Quantizer(segments_count=11)
        assert q.normalize(0) == 0.0
        assert q.normalize(11) == 1.0
        assert q.normalize(5) == pytest.approx(5 / 11)

    def test_denormalize_clamps_to_valid_range(self):
        q = Quantizer(segments_count=11)
        assert q.denormalize(1.0) == 10
        assert q.denormalize(2.5) == 10
        assert q.denormalize(-0.3) == 0

    def test_denormalize_rounds_half_up(self):
        q = Quantizer(segments_count=10)
        assert q.denormalize(0.25) == 3
        assert q.denormalize(0.24) == 2
        assert round_half_up(2.5) == 3

    def test_segments_count_validated(self):
        with pytest.raises(ConfigurationError):
            Quantizer(segments_count=1)


def test_round_trip_recovers_segment():
    """classify -> normalize -> denormalize -> lookup finds the same segment."""
    rng = np.random.default_rng(11)
    ratios = list(1.0 + rng.normal(0, 0.01, 2000))
    segments = build_distribution(
        [RatioObservation(time=i, volume=1, ratio=r) for i, r in enumerate(ratios)],
        segments_count=11,
    )
    q = Quantizer(segments_count=11)

    for idx, seg in enumerate(segments):
        if seg.width <= 0:
            continue
        midpoint = (seg.ratio_from + seg.ratio_to) / 2
        value = q.quantize(midpoint, segments)
        recovered = q.denormalize(value)
        assert recovered == idx
        assert segments[recovered].contains(midpoint)


def test_quantize_many():
    q = Quantizer(segments_count=4)
    values = q.quantize_many([0.5, 0.995, 1.5], DISTRIBUTION)
    assert values == [0.0, 0.25, 0.75]
