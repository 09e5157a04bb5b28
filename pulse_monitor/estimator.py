"""
Instantaneous rate estimation and raw-BPM consistency filtering.

Algorithm
---------
1. Take the upward mean crossings of the current window (one per beat).
2. Compute the crossing-to-crossing intervals and keep only physiologically
   plausible ones (default 270 – 2000 ms, i.e. ~222 – 30 BPM).
3. The median plausible interval gives the raw BPM (``60000 / interval``).
4. Raw BPMs are kept for a short validity window; only when the recent ones
   agree within a threshold is their median promoted to a *candidate median*.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Deque, List, NamedTuple, Optional, Sequence

from pulse_monitor.samples import Sample
from pulse_monitor.statistics import median

logger = logging.getLogger(__name__)


class RawBpmObservation(NamedTuple):
    bpm: float
    timestamp: int
    signal_range: float


def crossing_intervals(crossings: Sequence[Sample]) -> List[float]:
    """Time differences (ms) between consecutive crossing events."""
    return [
        float(crossings[i].timestamp - crossings[i - 1].timestamp)
        for i in range(1, len(crossings))
    ]


def estimate_raw_bpm(
    crossings: Sequence[Sample],
    min_interval_ms: float = 270.0,
    max_interval_ms: float = 2000.0,
) -> Optional[float]:
    """
    Return the instantaneous BPM implied by *crossings*, or ``None``.

    Intervals outside the open range ``(min_interval_ms, max_interval_ms)``
    are discarded before the median is taken.  The caller is responsible for
    rejecting BPMs outside its accepted range.
    """
    if len(crossings) < 2:
        return None

    plausible = [
        dt for dt in crossing_intervals(crossings)
        if min_interval_ms < dt < max_interval_ms
    ]
    if not plausible:
        return None

    interval = median(plausible)
    if interval is None or math.isnan(interval) or interval <= 0:
        return None
    return 60000.0 / interval


class RawBpmConsistencyFilter:
    """
    Time-windowed set of recent raw BPMs.

    Parameters
    ----------
    window_ms:
        Observations older than this (relative to the newest timestamp seen)
        are dropped.
    threshold:
        Maximum spread (max − min) for the retained BPMs to agree.
    min_count:
        Retained observations needed before a candidate can be emitted.
    """

    def __init__(
        self,
        window_ms: float = 2000.0,
        threshold: float = 10.0,
        min_count: int = 3,
    ) -> None:
        self.window_ms = window_ms
        self.threshold = threshold
        self.min_count = min_count
        self._recent: Deque[RawBpmObservation] = deque()

    def expire(self, now: float) -> None:
        """Drop observations whose age has reached the validity window."""
        self._recent = deque(o for o in self._recent if now - o.timestamp < self.window_ms)

    def add(self, observation: RawBpmObservation) -> Optional[float]:
        """Record *observation* and return a candidate median if one is due."""
        self._recent.append(observation)
        self.expire(observation.timestamp)
        return self.evaluate()

    def evaluate(self) -> Optional[float]:
        """
        Median of the retained BPMs when there are enough of them and they
        agree; ``None`` otherwise.  Disagreement does not clear the window,
        outliers age out on their own.
        """
        if len(self._recent) < self.min_count:
            return None

        spread = self.spread
        if spread > self.threshold:
            logger.debug(
                "Recent raw BPMs inconsistent (spread %.1f): %s",
                spread, ", ".join(f"{o.bpm:.1f}" for o in self._recent),
            )
            return None
        return median(o.bpm for o in self._recent)

    @property
    def spread(self) -> float:
        if not self._recent:
            return 0.0
        bpms = [o.bpm for o in self._recent]
        return max(bpms) - min(bpms)

    @property
    def observations(self) -> List[RawBpmObservation]:
        return list(self._recent)

    def clear(self) -> None:
        self._recent.clear()

    def __len__(self) -> int:
        return len(self._recent)
