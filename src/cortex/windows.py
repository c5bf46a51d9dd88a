"""Sliding windows over quantized history.

Training mode cuts the full history of every stream into
``(input window, output horizon)`` examples. Inference mode keeps a rolling
buffer of the latest ``input_size`` values per stream.

Two input layouts are supported:

- ``flat``: stream-major concatenation, ``[s0[t..t+n], s1[t..t+n], ...]``,
  for feed-forward models.
- ``sequential``: one vector per time step, ``[[s0[t], s1[t]], ...]``, for
  recurrent models.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, Optional, Sequence, Tuple

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class WindowMode(str, Enum):
    FLAT = "flat"
    SEQUENTIAL = "sequential"


@dataclass
class TrainingExample:
    input: list
    output: List[float]


def assemble_input(window: Sequence[Sequence[float]], mode: WindowMode) -> list:
    """Lay out per-stream windows (one row per stream) as model input."""
    if WindowMode(mode) is WindowMode.FLAT:
        return [value for row in window for value in row]
    return [list(step) for step in zip(*window)]


class WindowBuilder:
    """Cut quantized stream histories into training examples.

    Stream 0 is the primary stream: only its future values become outputs.
    """

    def __init__(self, input_size: int, output_size: int, mode: WindowMode = WindowMode.FLAT):
        if input_size < 1 or output_size < 1:
            raise ConfigurationError(
                f"input_size and output_size must be positive, got {input_size}/{output_size}"
            )
        self.input_size = int(input_size)
        self.output_size = int(output_size)
        self.mode = WindowMode(mode)

    def count(self, history_length: int) -> int:
        """Number of examples a history of ``history_length`` points yields."""
        return max(0, history_length - self.input_size - self.output_size)

    def build(self, sequences: Sequence[Sequence[float]]) -> List[TrainingExample]:
        """Build examples from one quantized sequence per stream."""
        if not sequences:
            return []

        lengths = [len(seq) for seq in sequences]
        length = min(lengths)
        if len(set(lengths)) > 1:
            logger.warning("Stream histories differ in length %s, truncating to %d", lengths, length)

        primary = sequences[0]
        examples: List[TrainingExample] = []

        for start in range(self.count(length)):
            end = start + self.input_size
            window = [list(seq[start:end]) for seq in sequences]
            output = list(primary[end:end + self.output_size])
            examples.append(TrainingExample(input=assemble_input(window, self.mode), output=output))

            if logger.isEnabledFor(logging.DEBUG):
                rows = "\n".join(" ".join(f"{v:.3f}" for v in row) for row in window)
                logger.debug(
                    "Input:\n%s (%d)\nOutput: %s (%d)",
                    rows, self.input_size * len(window),
                    " ".join(f"{v:.3f}" for v in output), len(output),
                )

        return examples


class RollingWindow:
    """Latest ``input_size`` quantized values of every stream."""

    def __init__(self, input_size: int, mode: WindowMode = WindowMode.FLAT):
        self.input_size = int(input_size)
        self.mode = WindowMode(mode)
        self._buffers: List[Deque[float]] = []

    def _buffer(self, index: int) -> Deque[float]:
        while len(self._buffers) <= index:
            self._buffers.append(deque(maxlen=self.input_size))
        return self._buffers[index]

    def push(self, values: Sequence[Optional[float]]) -> None:
        """Append one value per stream; None leaves that stream untouched."""
        for index, value in enumerate(values):
            if value is not None:
                self._buffer(index).append(value)

    def extend(self, sequences: Sequence[Sequence[float]]) -> None:
        """Seed buffers with the tail of full stream histories."""
        for index, seq in enumerate(sequences):
            self._buffer(index).extend(seq[-self.input_size:])

    def peek(self, values: Sequence[Optional[float]]) -> "RollingWindow":
        """Copy of this window with ``values`` pushed."""
        clone = RollingWindow(self.input_size, self.mode)
        clone.extend([list(buf) for buf in self._buffers])
        clone.push(values)
        return clone

    def is_ready(self, streams: Optional[int] = None) -> bool:
        streams = streams if streams is not None else len(self._buffers)
        if streams == 0 or len(self._buffers) < streams:
            return False
        return all(len(self._buffers[i]) == self.input_size for i in range(streams))

    def rows(self) -> List[List[float]]:
        return [list(buf) for buf in self._buffers]

    def snapshot(self) -> list:
        return assemble_input(self.rows(), self.mode)

    def clear(self) -> None:
        self._buffers.clear()

    def __len__(self) -> int:
        return min((len(buf) for buf in self._buffers), default=0)


def split_validation(
    examples: List[TrainingExample],
    validation_size: int,
    seed: int = 1337,
) -> Tuple[List[TrainingExample], List[TrainingExample]]:
    """Move ``validation_size`` randomly chosen examples into a held-out set."""
    if validation_size <= 0 or not examples:
        return list(examples), []

    size = min(validation_size, len(examples) - 1)
    rng = np.random.default_rng(seed)
    held_out = set(rng.choice(len(examples), size=size, replace=False).tolist())

    training = [ex for i, ex in enumerate(examples) if i not in held_out]
    validation = [ex for i, ex in enumerate(examples) if i in held_out]
    return training, validation


def to_arrays(examples: Sequence[TrainingExample]) -> Tuple[np.ndarray, np.ndarray]:
    """Stack examples into ``(inputs, outputs)`` arrays for a predictor."""
    inputs = np.array([ex.input for ex in examples], dtype=np.float64)
    outputs = np.array([ex.output for ex in examples], dtype=np.float64)
    return inputs, outputs
