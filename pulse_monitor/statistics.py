"""
Window statistics and mean-crossing detection.

The statistics are recomputed from the whole buffer on every tick: the window
average moves as samples arrive and are evicted, so crossings found on a
previous tick are not reused.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Iterable, List, NamedTuple, Optional, Sequence

import numpy as np

from pulse_monitor.samples import Sample


class SignalStats(NamedTuple):
    average: float
    min: float
    max: float
    range: float
    std_dev: float
    crossings: List[Sample]


EMPTY_STATS = SignalStats(0.0, 0.0, 0.0, 0.0, 0.0, [])


def analyze(samples: Sequence[Sample]) -> SignalStats:
    """
    Return average, extrema, range, population standard deviation and the
    upward mean crossings of *samples*.
    """
    if len(samples) == 0:
        return EMPTY_STATS

    values = np.array([s.value for s in samples], dtype=np.float64)
    average = float(values.mean())
    lo = float(values.min())
    hi = float(values.max())
    std_dev = float(values.std())

    return SignalStats(
        average=average,
        min=lo,
        max=hi,
        range=hi - lo,
        std_dev=std_dev,
        crossings=upward_crossings(samples, average),
    )


def upward_crossings(samples: Sequence[Sample], average: float) -> List[Sample]:
    """
    Samples at which the signal rises from at-or-below *average* to above it.

    One event per pulse cycle: the rising edge of each heartbeat-induced
    brightness swing.
    """
    crossings: List[Sample] = []
    if len(samples) < 2:
        return crossings

    previous = samples[0]
    for current in list(samples)[1:]:
        if current.value > average and previous.value <= average:
            crossings.append(current)
        previous = current
    return crossings


def median(values: Iterable) -> Optional[float]:
    """
    Median of the numeric, non-NaN entries of *values*.

    Even-length input yields the mean of the two middle elements.  Returns
    ``None`` when no usable entry remains.
    """
    clean = [
        float(v) for v in values
        if isinstance(v, Real) and not isinstance(v, bool) and not math.isnan(v)
    ]
    if not clean:
        return None
    return float(np.median(clean))
