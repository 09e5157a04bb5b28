"""
Time-ordered, fixed-capacity sample history.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, NamedTuple

import numpy as np


class Sample(NamedTuple):
    """One brightness reading: *value* in [0, 1], *timestamp* in monotonic ms."""

    value: float
    timestamp: int


class SampleBuffer:
    """
    FIFO ring buffer of :class:`Sample`.

    Pushing into a full buffer evicts exactly one (the oldest) sample, so the
    buffer always covers the most recent ``capacity`` ticks.
    """

    def __init__(self, capacity: int) -> None:
        self._samples: Deque[Sample] = deque(maxlen=capacity)

    def push(self, sample: Sample) -> None:
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples.clear()

    def values(self) -> np.ndarray:
        """Sample values as a float64 array, oldest first."""
        return np.fromiter((s.value for s in self._samples), dtype=np.float64,
                           count=len(self._samples))

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def fill_ratio(self) -> float:
        """How full the buffer is (0 – 1)."""
        return len(self._samples) / self._samples.maxlen

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        return iter(self._samples)

    def __getitem__(self, index: int) -> Sample:
        return self._samples[index]
