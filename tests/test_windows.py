"""Tests for training windows and live rolling windows."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np
import pytest

from cortex.errors import ConfigurationError
from cortex.windows import (
    RollingWindow,
    TrainingExample,
    WindowBuilder,
    WindowMode,
    split_validation,
    to_arrays,
)


def sequence(n, offset=0.0):
    return [offset + i / 1000 for i in range(n)]


class TestWindowBuilder:
    @pytest.mark.parametrize("length,expected", [(100, 77), (24, 1), (23, 0), (10, 0)])
    def test_example_count_single_stream(self, length, expected):
        builder = WindowBuilder(input_size=20, output_size=3)
        examples = builder.build([sequence(length)])

        assert len(examples) == expected
        assert builder.count(length) == expected

    def test_three_streams_flat(self):
        builder = WindowBuilder(input_size=20, output_size=3, mode=WindowMode.FLAT)
        seqs = [sequence(100), sequence(100, 1.0), sequence(100, 2.0)]
        examples = builder.build(seqs)

        assert len(examples) == 77
        for ex in examples:
            assert len(ex.input) == 60
            assert len(ex.output) == 3

    def test_flat_layout_is_stream_major(self):
        builder = WindowBuilder(input_size=2, output_size=1)
        examples = builder.build([[0.1, 0.2, 0.3, 0.4, 0.45], [0.5, 0.6, 0.7, 0.8, 0.85]])

        assert len(examples) == 2
        assert examples[0].input == [0.1, 0.2, 0.5, 0.6]
        assert examples[0].output == [0.3]
        assert examples[1].input == [0.2, 0.3, 0.6, 0.7]
        assert examples[1].output == [0.4]

    def test_sequential_layout_is_per_timestep(self):
        builder = WindowBuilder(input_size=2, output_size=1, mode="sequential")
        examples = builder.build([[0.1, 0.2, 0.3, 0.4], [0.5, 0.6, 0.7, 0.8]])

        assert examples[0].input == [[0.1, 0.5], [0.2, 0.6]]
        assert examples[0].output == [0.3]

    def test_output_only_from_primary_stream(self):
        builder = WindowBuilder(input_size=3, output_size=2)
        primary = sequence(10)
        examples = builder.build([primary, sequence(10, 5.0)])

        for start, ex in enumerate(examples):
            assert ex.output == primary[start + 3:start + 5]

    def test_unequal_streams_truncated(self):
        builder = WindowBuilder(input_size=5, output_size=1)
        examples = builder.build([sequence(30), sequence(20)])
        assert len(examples) == 14

    def test_no_streams(self):
        assert WindowBuilder(5, 1).build([]) == []

    def test_invalid_sizes(self):
        with pytest.raises(ConfigurationError):
            WindowBuilder(input_size=0, output_size=1)


class TestRollingWindow:
    def test_not_ready_until_full(self):
        window = RollingWindow(input_size=3)
        window.push([0.1, 0.5])
        window.push([0.2, 0.6])

        assert not window.is_ready(2)
        window.push([0.3, 0.7])
        assert window.is_ready(2)
        assert len(window) == 3

    def test_evicts_oldest(self):
        window = RollingWindow(input_size=2)
        for value in (0.1, 0.2, 0.3):
            window.push([value])

        assert window.rows() == [[0.2, 0.3]]
        assert window.snapshot() == [0.2, 0.3]

    def test_none_values_skipped(self):
        window = RollingWindow(input_size=2)
        window.push([None])
        assert not window.is_ready(1)

    def test_peek_does_not_mutate(self):
        window = RollingWindow(input_size=2)
        window.push([0.1])
        peeked = window.peek([0.2])

        assert peeked.is_ready(1)
        assert peeked.snapshot() == [0.1, 0.2]
        assert window.rows() == [[0.1]]

    def test_extend_takes_tail(self):
        window = RollingWindow(input_size=3, mode=WindowMode.SEQUENTIAL)
        window.extend([sequence(10), sequence(10, 1.0)])

        assert window.is_ready(2)
        assert np.allclose(window.snapshot(), [[0.007, 1.007], [0.008, 1.008], [0.009, 1.009]])

    def test_ready_requires_every_stream(self):
        window = RollingWindow(input_size=1)
        window.push([0.1])
        assert not window.is_ready(2)
        assert not RollingWindow(input_size=1).is_ready()


def test_split_validation():
    examples = [TrainingExample(input=[i], output=[i]) for i in range(50)]
    training, validation = split_validation(examples, 10, seed=1)

    assert len(training) == 40
    assert len(validation) == 10
    seen = sorted(ex.input[0] for ex in training + validation)
    assert seen == list(range(50))

    again, _ = split_validation(examples, 10, seed=1)
    assert [ex.input for ex in again] == [ex.input for ex in training]


def test_split_validation_disabled():
    examples = [TrainingExample(input=[i], output=[i]) for i in range(5)]
    training, validation = split_validation(examples, 0)
    assert len(training) == 5
    assert validation == []


def test_to_arrays_shapes():
    builder = WindowBuilder(input_size=4, output_size=2, mode=WindowMode.SEQUENTIAL)
    examples = builder.build([sequence(20), sequence(20)])
    inputs, outputs = to_arrays(examples)

    assert inputs.shape == (14, 4, 2)
    assert outputs.shape == (14, 2)
    assert inputs.dtype == np.float64
