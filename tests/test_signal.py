"""
Unit tests for the sample buffer, window statistics and the quality gate.
Run with:  pytest tests/
"""

from __future__ import annotations

import math

import numpy as np
import pytest

from pulse_monitor.config import EngineConfig
from pulse_monitor.quality import SignalQuality, classify
from pulse_monitor.samples import Sample, SampleBuffer
from pulse_monitor.statistics import analyze, median, upward_crossings


def _ticks(n: int, rate_hz: float = 60.0):
    return [int(round(i * 1000.0 / rate_hz)) for i in range(n)]


# ---------------------------------------------------------------------------
# SampleBuffer
# ---------------------------------------------------------------------------

class TestSampleBuffer:

    def test_never_exceeds_capacity(self):
        buf = SampleBuffer(10)
        for i in range(25):
            buf.push(Sample(i / 25, i))
            assert len(buf) <= 10

    def test_keeps_most_recent_in_order(self):
        buf = SampleBuffer(4)
        for i in range(7):
            buf.push(Sample(float(i), i * 10))
        assert [s.value for s in buf] == [3.0, 4.0, 5.0, 6.0]

    def test_overflow_by_one_evicts_first(self):
        """300 capacity, 301 distinct pushes: the 2nd pushed value is now first."""
        buf = SampleBuffer(300)
        for i in range(301):
            buf.push(Sample(0.001 * (i + 1), i))
        assert len(buf) == 300
        assert buf[0].value == pytest.approx(0.002)

    def test_clear_and_fill_ratio(self):
        buf = SampleBuffer(8)
        assert buf.fill_ratio == 0.0
        for i in range(4):
            buf.push(Sample(0.5, i))
        assert buf.fill_ratio == pytest.approx(0.5)
        buf.clear()
        assert len(buf) == 0
        assert buf.values().size == 0


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

class TestMedian:

    def test_odd_length(self):
        assert median([5, 1, 3]) == 3

    def test_even_length(self):
        assert median([4, 1, 3, 2]) == pytest.approx(2.5)

    def test_empty_returns_none(self):
        assert median([]) is None

    def test_non_numeric_filtered(self):
        assert median([float("nan"), "x", None, 7.0, 9.0]) == pytest.approx(8.0)

    def test_all_non_numeric_returns_none(self):
        assert median([float("nan"), None, "72"]) is None


class TestStatistics:

    def test_empty_buffer(self):
        stats = analyze([])
        assert stats.range == 0.0
        assert stats.crossings == []

    def test_basic_values(self):
        samples = [Sample(v, i) for i, v in enumerate([0.2, 0.4, 0.6, 0.8])]
        stats = analyze(samples)
        assert stats.average == pytest.approx(0.5)
        assert stats.min == pytest.approx(0.2)
        assert stats.max == pytest.approx(0.8)
        assert stats.range == pytest.approx(0.6)
        assert stats.std_dev == pytest.approx(np.std([0.2, 0.4, 0.6, 0.8]))

    def test_crossing_requires_strictly_above(self):
        samples = [Sample(0.5, 0), Sample(0.5, 10), Sample(0.6, 20), Sample(0.4, 30), Sample(0.6, 40)]
        crossings = upward_crossings(samples, 0.5)
        assert [c.timestamp for c in crossings] == [20, 40]

    def test_first_sample_never_a_crossing(self):
        samples = [Sample(0.9, 0), Sample(0.1, 10)]
        assert upward_crossings(samples, 0.5) == []

    @pytest.mark.parametrize("period_ms", [400, 600, 857, 1200])
    def test_square_wave_crossing_count(self, period_ms):
        duration_ms = 5000
        ts = _ticks(300)
        samples = [
            Sample(1.0 if (t % period_ms) < period_ms / 2 else 0.0, t) for t in ts
        ]
        stats = analyze(samples)
        expected = duration_ms // period_ms
        assert abs(len(stats.crossings) - expected) <= 1

    def test_sine_wave_crossing_count(self):
        period_ms = 750
        ts = _ticks(300)
        samples = [Sample(0.5 + 0.01 * math.sin(2 * math.pi * t / period_ms), t) for t in ts]
        stats = analyze(samples)
        assert abs(len(stats.crossings) - 5000 // period_ms) <= 1


# ---------------------------------------------------------------------------
# Quality gate
# ---------------------------------------------------------------------------

class TestSignalQualityGate:

    def _classify(self, values, config=None):
        config = config or EngineConfig()
        samples = [Sample(v, t) for v, t in zip(values, _ticks(len(values)))]
        return classify(len(samples), analyze(samples), config)

    def test_too_few_samples(self):
        assert self._classify([0.1, 0.9] * 40) is SignalQuality.ANALYZING

    def test_low_signal_wins_over_missing_crossings(self):
        verdict = self._classify([0.5] * 200)
        assert verdict is SignalQuality.LOW_SIGNAL
        assert verdict is not SignalQuality.DETECTING_PULSE

    def test_square_wave_is_noisy(self):
        # std / range of a symmetric two-level signal is 0.5
        assert self._classify([0.4, 0.6] * 100) is SignalQuality.NOISY

    def test_slow_ramp_is_detecting_pulse(self):
        values = list(np.linspace(0.50, 0.52, 200))
        assert self._classify(values) is SignalQuality.DETECTING_PULSE

    def test_sawtooth_is_good(self):
        period_ms = 800
        values = [0.5 + 0.02 * (1 - (t % period_ms) / period_ms) for t in _ticks(300)]
        assert self._classify(values) is SignalQuality.GOOD

    def test_status_text(self):
        assert SignalQuality.LOW_SIGNAL.value == "Low Signal (Place finger firmly)"
        assert SignalQuality.GOOD.is_good
        assert not SignalQuality.NOISY.is_good
