"""
Engine configuration.

Every threshold used by the quality gate, the raw-rate estimator, the
consistency filter and the lock state machine lives here.  Defaults assume a
host ticking at ~60 Hz with a 5 second analysis window.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class ConfigError(ValueError):
    """Raised when an :class:`EngineConfig` holds an unusable setting."""


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunable constants of the BPM engine.

    Parameters
    ----------
    max_samples:
        Capacity of the sample buffer.  At a fixed tick rate this is the
        analysis window (300 samples ≈ 5 s at 60 Hz).
    min_samples_fraction:
        Fraction of ``max_samples`` that must be buffered before the signal
        is analysed at all.
    min_signal_range:
        Minimum peak-to-peak amplitude (in normalised brightness units).
    max_std_dev_ratio:
        Maximum ``std_dev / range``; above it the signal is considered noisy.
    min_crossings:
        Minimum number of upward mean crossings before a rate is estimated.
    min_interval_ms, max_interval_ms:
        Exclusive bounds of a plausible crossing-to-crossing interval.
    min_bpm, max_bpm:
        Inclusive bounds of an accepted raw BPM.
    raw_bpm_window_ms:
        How long a raw BPM observation stays "recent".
    raw_bpm_consistency:
        Maximum spread (max − min) of recent raw BPMs for them to agree.
    min_consistent_raw_bpms:
        Recent raw BPMs needed before a candidate median is formed.
    candidate_buffer_size:
        Capacity of the candidate-median buffer.
    required_stability_count:
        Consecutive agreeing evaluations needed to lock a BPM.  Also the
        number of candidate medians needed before evaluating at all.
    stability_tolerance:
        Maximum distance (BPM) between the running candidate and a new
        median of candidates for them to agree.
    smoothing:
        Weight of new evidence when the running candidate is updated
        (``candidate = (1 - smoothing) * candidate + smoothing * median``).
    low_signal_reset_ms:
        When set, a low-signal verdict lasting this long performs a full
        reset, dropping any locked BPM.  ``None`` keeps a lock indefinitely.
    """

    max_samples: int = 300
    min_samples_fraction: float = 1.0 / 3.0
    min_signal_range: float = 0.0015
    max_std_dev_ratio: float = 0.35
    min_crossings: int = 4
    min_interval_ms: float = 270.0
    max_interval_ms: float = 2000.0
    min_bpm: float = 30.0
    max_bpm: float = 220.0
    raw_bpm_window_ms: float = 2000.0
    raw_bpm_consistency: float = 10.0
    min_consistent_raw_bpms: int = 3
    candidate_buffer_size: int = 5
    required_stability_count: int = 3
    stability_tolerance: float = 3.0
    smoothing: float = 0.3
    low_signal_reset_ms: Optional[float] = None

    def __post_init__(self) -> None:
        self.validate()

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def min_samples(self) -> float:
        """Buffered samples required before analysis (``MIN_SAMPLES_FOR_ANALYSIS``)."""
        return self.max_samples * self.min_samples_fraction

    @classmethod
    def for_window(
        cls,
        fps: float,
        window_seconds: float = 5.0,
        **overrides,
    ) -> "EngineConfig":
        """Size the sample buffer from a tick rate and a window length."""
        if fps <= 0 or window_seconds <= 0:
            raise ConfigError(
                f"fps and window_seconds must be positive (got {fps}, {window_seconds})"
            )
        return cls(max_samples=int(round(fps * window_seconds)), **overrides)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> None:
        if self.max_samples < 2:
            raise ConfigError(f"max_samples must be >= 2 (got {self.max_samples})")
        if not 0.0 < self.min_samples_fraction <= 1.0:
            raise ConfigError(
                f"min_samples_fraction must be in (0, 1] (got {self.min_samples_fraction})"
            )
        if self.min_signal_range < 0:
            raise ConfigError("min_signal_range must not be negative")
        if self.max_std_dev_ratio <= 0:
            raise ConfigError("max_std_dev_ratio must be positive")
        if not 0 <= self.min_interval_ms < self.max_interval_ms:
            raise ConfigError(
                f"interval bounds must satisfy 0 <= min < max "
                f"(got {self.min_interval_ms}, {self.max_interval_ms})"
            )
        if not 0 < self.min_bpm < self.max_bpm:
            raise ConfigError(
                f"bpm bounds must satisfy 0 < min < max (got {self.min_bpm}, {self.max_bpm})"
            )
        if self.raw_bpm_window_ms <= 0:
            raise ConfigError("raw_bpm_window_ms must be positive")
        if self.raw_bpm_consistency < 0 or self.stability_tolerance < 0:
            raise ConfigError("consistency and stability tolerances must not be negative")
        for name in (
            "min_crossings",
            "min_consistent_raw_bpms",
            "candidate_buffer_size",
            "required_stability_count",
        ):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be >= 1 (got {getattr(self, name)})")
        if self.min_crossings < 2:
            raise ConfigError("min_crossings must be >= 2 to form an interval")
        if not 0.0 < self.smoothing <= 1.0:
            raise ConfigError(f"smoothing must be in (0, 1] (got {self.smoothing})")
        if self.low_signal_reset_ms is not None and self.low_signal_reset_ms <= 0:
            raise ConfigError("low_signal_reset_ms must be positive or None")
