"""
Candidate stabilisation and BPM lock.

Candidate medians from the consistency filter are collected in a short FIFO.
Each evaluation takes the median of that FIFO and compares it with a running
candidate:

* no running candidate      → start one, counter = 1
* within tolerance          → counter += 1, candidate = 0.7·candidate + 0.3·median
* outside tolerance         → restart at the new median, counter = 1

Once the counter reaches the required count the rounded candidate becomes the
locked BPM.  A lock is sticky: it is only replaced by a new lock or dropped by
an explicit full reset.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, NamedTuple, Optional

from pulse_monitor.display import CALCULATING, DETECTING, DisplayValue, round_half_up
from pulse_monitor.statistics import median

logger = logging.getLogger(__name__)


class LockState(NamedTuple):
    stable_candidate: Optional[float]
    stability_counter: int
    locked_bpm: Optional[int]


class BpmStabilizer:
    """
    Lock state machine over candidate medians.

    Parameters
    ----------
    buffer_size:
        Capacity of the candidate-median FIFO.
    required_count:
        Candidates needed before evaluating, and consecutive agreeing
        evaluations needed to lock.
    tolerance:
        Maximum |median − candidate| (BPM) counted as agreement.
    smoothing:
        Weight of the new median when the running candidate is updated.
    """

    def __init__(
        self,
        buffer_size: int = 5,
        required_count: int = 3,
        tolerance: float = 3.0,
        smoothing: float = 0.3,
    ) -> None:
        self.required_count = required_count
        self.tolerance = tolerance
        self.smoothing = smoothing

        self._candidates: Deque[float] = deque(maxlen=buffer_size)
        self._stable_candidate: Optional[float] = None
        self._counter: int = 0
        self._locked_bpm: Optional[int] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push_candidate(self, candidate: float) -> None:
        self._candidates.append(candidate)
        logger.debug(
            "New candidate median %.1f, buffer: %s",
            candidate, ", ".join(f"{c:.1f}" for c in self._candidates),
        )

    def evaluate(self) -> DisplayValue:
        """Advance the state machine by one tick and return what to show."""
        if len(self._candidates) < self.required_count:
            return self._held_or(DETECTING)

        centre = median(self._candidates)
        if centre is None:
            return self._held_or(DETECTING)

        self._advance(centre)

        if self._counter >= self.required_count:
            self._locked_bpm = round_half_up(self._stable_candidate)
            logger.debug("BPM locked: %d", self._locked_bpm)
            return DisplayValue.locked(self._locked_bpm)

        if self._locked_bpm is not None:
            return DisplayValue.locked(self._locked_bpm)
        if self._stable_candidate is not None:
            return DisplayValue.tentative(round_half_up(self._stable_candidate))
        return DisplayValue.from_status(CALCULATING)

    def clear(self, clear_lock: bool = True) -> None:
        """Drop candidates and the running candidate; the lock only if asked."""
        self._candidates.clear()
        self._stable_candidate = None
        self._counter = 0
        if clear_lock:
            self._locked_bpm = None

    @property
    def locked_bpm(self) -> Optional[int]:
        return self._locked_bpm

    @property
    def state(self) -> LockState:
        return LockState(self._stable_candidate, self._counter, self._locked_bpm)

    @property
    def candidates(self) -> list:
        return list(self._candidates)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _advance(self, centre: float) -> None:
        if self._stable_candidate is None:
            self._stable_candidate = centre
            self._counter = 1
            logger.debug("New stable candidate %.1f", centre)
        elif abs(centre - self._stable_candidate) <= self.tolerance:
            self._counter += 1
            self._stable_candidate = (
                self._stable_candidate * (1.0 - self.smoothing) + centre * self.smoothing
            )
            logger.debug(
                "Stable candidate consistent, count %d, candidate %.1f",
                self._counter, self._stable_candidate,
            )
        else:
            logger.debug(
                "Stable candidate shifted: %.1f -> %.1f", self._stable_candidate, centre,
            )
            self._stable_candidate = centre
            self._counter = 1

    def _held_or(self, status: str) -> DisplayValue:
        if self._locked_bpm is not None:
            return DisplayValue.locked(self._locked_bpm)
        return DisplayValue.from_status(status)
