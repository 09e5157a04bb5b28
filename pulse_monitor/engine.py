"""
Streaming BPM engine.

The host calls :meth:`BpmEngine.tick` once per captured frame with a
brightness sample and its timestamp.  Each tick runs the whole pipeline
synchronously:

    sample → buffer → statistics → quality gate → raw BPM
           → consistency filter → candidate medians → lock → display value

The engine keeps no timers of its own; the raw-BPM validity window is an age
check against the tick timestamps supplied by the caller.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional

from pulse_monitor.config import EngineConfig
from pulse_monitor.display import DETECTING, DisplayKind, DisplayValue
from pulse_monitor.estimator import (
    RawBpmConsistencyFilter,
    RawBpmObservation,
    estimate_raw_bpm,
)
from pulse_monitor.quality import SignalQuality, classify
from pulse_monitor.samples import Sample, SampleBuffer
from pulse_monitor.stabilizer import BpmStabilizer, LockState
from pulse_monitor.statistics import EMPTY_STATS, SignalStats, analyze

logger = logging.getLogger(__name__)

__all__ = ["BpmEngine", "DisplayKind", "DisplayValue"]


class BpmEngine:
    """
    Owns every buffer and counter of one monitoring run.

    Parameters
    ----------
    config:
        Engine thresholds; defaults to :class:`EngineConfig()`.
    on_display_change:
        Optional callback invoked with the new :class:`DisplayValue` whenever
        the displayed value changes, on a tick or on a reset.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        on_display_change: Optional[Callable[[DisplayValue], None]] = None,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.on_display_change = on_display_change

        cfg = self.config
        self._samples = SampleBuffer(cfg.max_samples)
        self._raw_filter = RawBpmConsistencyFilter(
            window_ms=cfg.raw_bpm_window_ms,
            threshold=cfg.raw_bpm_consistency,
            min_count=cfg.min_consistent_raw_bpms,
        )
        self._stabilizer = BpmStabilizer(
            buffer_size=cfg.candidate_buffer_size,
            required_count=cfg.required_stability_count,
            tolerance=cfg.stability_tolerance,
            smoothing=cfg.smoothing,
        )

        self._stats: SignalStats = EMPTY_STATS
        self._quality: SignalQuality = SignalQuality.ANALYZING
        self._display: DisplayValue = DisplayValue.from_status(SignalQuality.ANALYZING.value)
        self._last_raw_bpm: Optional[float] = None
        self._last_timestamp: Optional[int] = None
        self._low_signal_since: Optional[int] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def tick(self, value: float, timestamp_ms: int) -> DisplayValue:
        """
        Ingest one brightness sample and return the value to display.

        Never raises for bad data: a non-finite *value* is ignored and the
        previous display value is returned.
        """
        try:
            value = float(value)
        except (TypeError, ValueError):
            value = math.nan
        if not math.isfinite(value):
            logger.debug("Ignoring non-finite sample at %s ms", timestamp_ms)
            return self._display

        if self._last_timestamp is not None and timestamp_ms < self._last_timestamp:
            logger.warning(
                "Timestamp went backwards (%s ms after %s ms)", timestamp_ms, self._last_timestamp,
            )
        self._last_timestamp = timestamp_ms

        self._samples.push(Sample(value, timestamp_ms))
        self._raw_filter.expire(timestamp_ms)

        samples = list(self._samples)
        self._stats = analyze(samples)
        self._quality = classify(len(samples), self._stats, self.config)

        if not self._quality.is_good:
            return self._publish(self._on_poor_signal(timestamp_ms))

        self._low_signal_since = None
        self._accept_raw_bpm(timestamp_ms)
        return self._publish(self._stabilizer.evaluate())

    def reset(self, clear_lock: bool = True) -> None:
        """
        Reset measurement state.

        ``clear_lock=True`` is a full reset (samples, working buffers and the
        locked BPM).  ``clear_lock=False`` is a partial reset: the raw-BPM
        window and candidate state are dropped but the sample history and any
        locked BPM survive.
        """
        logger.debug("Resetting measurement state, clear locked BPM: %s", clear_lock)
        self._raw_filter.clear()
        self._stabilizer.clear(clear_lock=clear_lock)
        self._last_raw_bpm = None
        if clear_lock:
            self._samples.clear()
            self._stats = EMPTY_STATS
            self._quality = SignalQuality.ANALYZING
            self._last_timestamp = None
            self._low_signal_since = None
        self._publish(self._idle_display())

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def display(self) -> DisplayValue:
        """Value returned by the most recent tick, or set by the last reset."""
        return self._display

    @property
    def quality(self) -> SignalQuality:
        return self._quality

    @property
    def stats(self) -> SignalStats:
        return self._stats

    @property
    def locked_bpm(self) -> Optional[int]:
        return self._stabilizer.locked_bpm

    @property
    def last_raw_bpm(self) -> Optional[float]:
        """Most recent accepted raw BPM (``None`` after a reset)."""
        return self._last_raw_bpm

    @property
    def lock_state(self) -> LockState:
        return self._stabilizer.state

    @property
    def raw_observations(self) -> List[RawBpmObservation]:
        return self._raw_filter.observations

    @property
    def candidates(self) -> List[float]:
        return self._stabilizer.candidates

    @property
    def samples(self) -> List[Sample]:
        return list(self._samples)

    @property
    def buffer_fill_ratio(self) -> float:
        return self._samples.fill_ratio

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _on_poor_signal(self, now: int) -> DisplayValue:
        if self._quality is SignalQuality.LOW_SIGNAL and self._low_signal_expired(now):
            logger.info(
                "Low signal for %.0f ms, dropping locked BPM", now - self._low_signal_since,
            )
            self.reset(clear_lock=True)
            return DisplayValue.from_status(SignalQuality.ANALYZING.value)

        if self._quality is not SignalQuality.LOW_SIGNAL:
            self._low_signal_since = None

        locked = self._stabilizer.locked_bpm
        if locked is not None:
            return DisplayValue.locked(locked)

        self.reset(clear_lock=False)
        return DisplayValue.from_status(self._quality.value)

    def _idle_display(self) -> DisplayValue:
        """What to show after a reset, before the next tick."""
        locked = self._stabilizer.locked_bpm
        if locked is not None:
            return DisplayValue.locked(locked)
        if self._quality.is_good:
            return DisplayValue.from_status(DETECTING)
        return DisplayValue.from_status(self._quality.value)

    def _low_signal_expired(self, now: int) -> bool:
        limit = self.config.low_signal_reset_ms
        if limit is None:
            return False
        if self._low_signal_since is None:
            self._low_signal_since = now
        return now - self._low_signal_since >= limit

    def _accept_raw_bpm(self, now: int) -> None:
        cfg = self.config
        raw_bpm = estimate_raw_bpm(self._stats.crossings, cfg.min_interval_ms, cfg.max_interval_ms)
        if raw_bpm is None:
            return
        if not cfg.min_bpm <= raw_bpm <= cfg.max_bpm:
            logger.debug("Raw BPM out of physiological range: %.1f", raw_bpm)
            return

        self._last_raw_bpm = raw_bpm
        candidate = self._raw_filter.add(RawBpmObservation(raw_bpm, now, self._stats.range))
        if candidate:
            self._stabilizer.push_candidate(candidate)

    def _publish(self, display: DisplayValue) -> DisplayValue:
        if display != self._display:
            self._display = display
            if self.on_display_change is not None:
                self.on_display_change(display)
        return display
