"""
Signal-quality gate.

Decides, before any rate math is trusted, whether the current window looks
like a fingertip pulse.  Checks run in a fixed order and the first failing one
determines the verdict, so e.g. a flat signal is reported as low signal even
though it also has no crossings.
"""

from __future__ import annotations

from enum import Enum

from pulse_monitor.config import EngineConfig
from pulse_monitor.statistics import SignalStats


class SignalQuality(str, Enum):
    """Gate verdicts; the values are the status texts shown to the user."""

    ANALYZING = "Analyzing..."
    LOW_SIGNAL = "Low Signal (Place finger firmly)"
    NOISY = "Noisy Signal (Hold still)"
    DETECTING_PULSE = "Detecting Pulse..."
    GOOD = "Good Signal"

    @property
    def is_good(self) -> bool:
        return self is SignalQuality.GOOD


def classify(sample_count: int, stats: SignalStats, config: EngineConfig) -> SignalQuality:
    """Return exactly one verdict for the current window."""
    if sample_count < config.min_samples:
        return SignalQuality.ANALYZING
    if stats.range < config.min_signal_range:
        return SignalQuality.LOW_SIGNAL
    if stats.range > 0 and stats.std_dev / stats.range > config.max_std_dev_ratio:
        return SignalQuality.NOISY
    if len(stats.crossings) < config.min_crossings:
        return SignalQuality.DETECTING_PULSE
    return SignalQuality.GOOD
