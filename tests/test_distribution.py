"""Tests for the equal-frequency ratio distribution."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import math

import numpy as np
import pytest

from cortex.candles import RatioObservation
from cortex.distribution import (
    DistributionSegment,
    build_distribution,
    describe_distribution,
    frequency_table,
)
from cortex.errors import ConfigurationError


def observations(ratios):
    return [RatioObservation(time=i, volume=1.0, ratio=r) for i, r in enumerate(ratios)]


def random_ratios(n=1000, seed=42):
    rng = np.random.default_rng(seed)
    return list(1.0 + rng.normal(0, 0.01, n))


def test_small_example_three_segments():
    ratios = [0.98, 0.99, 1.00, 1.00, 1.01, 1.02]
    segments = build_distribution(observations(ratios), segments_count=3, precision=4)

    assert len(segments) == 3
    assert sum(seg.count for seg in segments) == 6
    for seg in segments:
        assert seg.ratio_from in ratios
        assert seg.ratio_to in ratios
    assert segments == [
        DistributionSegment(0.98, 1.00, 2),
        DistributionSegment(1.00, 1.01, 2),
        DistributionSegment(1.01, 1.02, 2),
    ]


def test_segments_contiguous_and_cover_range():
    ratios = random_ratios()
    segments = build_distribution(observations(ratios), segments_count=11, precision=4)

    assert len(segments) == 11
    assert segments[0].ratio_from == round(min(ratios), 4)
    assert segments[-1].ratio_to == round(max(ratios), 4)
    for prev, cur in zip(segments, segments[1:]):
        assert prev.ratio_from <= prev.ratio_to
        assert cur.ratio_from == prev.ratio_to


def test_counts_sum_to_total():
    ratios = random_ratios(n=777, seed=1)
    segments = build_distribution(observations(ratios), segments_count=7, precision=6)

    assert sum(seg.count for seg in segments) == 777


def test_counts_near_target_size():
    ratios = random_ratios(n=1100, seed=5)
    segments = build_distribution(observations(ratios), segments_count=11, precision=8)
    target = math.ceil(1100 / 11)

    for seg in segments[:-1]:
        assert seg.count <= target
        assert seg.count >= target - 1


def test_deterministic_for_same_multiset():
    ratios = random_ratios(n=300, seed=9)
    shuffled = list(np.random.default_rng(0).permutation(ratios))

    assert build_distribution(observations(ratios), 5) == build_distribution(observations(shuffled), 5)


def test_fewer_distinct_values_than_segments():
    segments = build_distribution(observations([1.0, 1.0, 1.01, 1.01]), segments_count=11)

    assert 1 <= len(segments) < 11
    assert sum(seg.count for seg in segments) == 4


def test_single_distinct_value():
    segments = build_distribution(observations([1.0] * 5), segments_count=3)

    assert segments == [DistributionSegment(1.0, 1.0, 5)]


def test_empty_history_gives_empty_distribution():
    assert build_distribution([], segments_count=3) == []


def test_segments_count_must_be_at_least_two():
    with pytest.raises(ConfigurationError):
        build_distribution(observations([1.0, 1.1]), segments_count=1)


def test_rounding_merges_close_ratios():
    table = frequency_table(observations([1.00001, 1.00002, 1.01]), precision=3)
    assert table == [(1.0, 2), (1.01, 1)]


def test_segment_serialization_keys():
    seg = DistributionSegment(0.99, 1.01, 4)
    data = seg.to_dict()

    assert data == {"ratioFrom": 0.99, "ratioTo": 1.01, "count": 4}
    assert DistributionSegment.from_dict(data) == seg


def test_describe_distribution():
    segments = build_distribution(observations(random_ratios(200)), segments_count=4)
    df = describe_distribution(segments)

    assert list(df["segment"]) == [0, 1, 2, 3]
    assert df["share"].sum() == pytest.approx(1.0)
    assert (df["width"] >= 0).all()
