"""
End-to-end tests for BpmEngine driven by synthetic brightness streams.
"""

from __future__ import annotations

import pytest

from pulse_monitor.config import EngineConfig
from pulse_monitor.display import DisplayKind, DisplayValue
from pulse_monitor.engine import BpmEngine
from pulse_monitor.quality import SignalQuality

TICK_HZ = 60.0


def _timestamp(i: int) -> int:
    return int(round(i * 1000.0 / TICK_HZ))


def _pulse(t_ms: int, bpm: float = 75.0, base: float = 0.5, amp: float = 0.02) -> float:
    """
    Fingertip-like pulse: a sharp rise once per beat followed by a linear
    decay (a falling sawtooth).
    """
    period = 60000.0 / bpm
    phase = (t_ms % period) / period
    return base + amp * (1.0 - phase)


def _feed(engine: BpmEngine, n: int, start: int = 0, value_fn=_pulse):
    displays = []
    for i in range(start, start + n):
        t = _timestamp(i)
        displays.append(engine.tick(value_fn(t), t))
    return displays


# ---------------------------------------------------------------------------
# BpmEngine
# ---------------------------------------------------------------------------

class TestBpmEngine:

    def test_starts_analyzing(self):
        engine = BpmEngine()
        display = engine.tick(0.5, 0)
        assert display.is_status
        assert display.text == "Analyzing..."
        assert engine.quality is SignalQuality.ANALYZING

    def test_constant_stream_is_low_signal(self):
        engine = BpmEngine()
        for i in range(400):
            t = _timestamp(i)
            display = engine.tick(0.5, t)
            if i + 1 >= engine.config.min_samples:
                assert engine.quality is SignalQuality.LOW_SIGNAL
                assert display.text == "Low Signal (Place finger firmly)"
            else:
                assert engine.quality is SignalQuality.ANALYZING
            assert engine.last_raw_bpm is None
        assert engine.raw_observations == []

    def test_locks_on_stable_pulse(self):
        engine = BpmEngine()
        displays = _feed(engine, 20 * int(TICK_HZ))

        first_lock = next(i for i, d in enumerate(displays) if d.is_locked)
        assert first_lock < 5 * int(TICK_HZ)
        for d in displays[first_lock:]:
            assert d.kind is DisplayKind.LOCKED
            assert 72 <= d.bpm <= 78
        assert engine.locked_bpm == 75
        assert engine.last_raw_bpm == pytest.approx(75.0)

    @pytest.mark.parametrize("bpm", [50.0, 100.0, 140.0])
    def test_locks_near_true_rate(self, bpm):
        engine = BpmEngine()
        _feed(engine, 20 * int(TICK_HZ), value_fn=lambda t: _pulse(t, bpm=bpm))
        assert engine.locked_bpm is not None
        assert abs(engine.locked_bpm - bpm) <= 3

    def test_display_change_callback(self):
        changes = []
        engine = BpmEngine(on_display_change=changes.append)
        _feed(engine, 10 * int(TICK_HZ))
        assert [c.text for c in changes] == ["Detecting Pulse...", "Detecting...", "75?", "75"]
        assert changes[-1] == DisplayValue.locked(75)

    def test_lock_survives_signal_loss(self):
        engine = BpmEngine()
        _feed(engine, 10 * int(TICK_HZ))
        assert engine.locked_bpm == 75

        displays = _feed(engine, 600, start=600, value_fn=lambda t: 0.5)
        assert engine.quality is SignalQuality.LOW_SIGNAL
        assert all(d.is_locked and d.bpm == 75 for d in displays)

    def test_prolonged_low_signal_drops_lock(self):
        config = EngineConfig(low_signal_reset_ms=1000)
        engine = BpmEngine(config)
        _feed(engine, 10 * int(TICK_HZ))
        assert engine.locked_bpm == 75

        displays = _feed(engine, 600, start=600, value_fn=lambda t: 0.5)
        first_status = next(d for d in displays if d.is_status)
        assert first_status.text == "Analyzing..."
        assert engine.locked_bpm is None
        assert displays[-1].text == "Low Signal (Place finger firmly)"

    def test_poor_signal_without_lock_clears_working_state(self):
        engine = BpmEngine()
        # Stop right after the first candidate medians, before the lock.
        _feed(engine, 196, value_fn=lambda t: _pulse(t, amp=0.002))
        assert engine.locked_bpm is None
        assert len(engine.raw_observations) > 0
        assert len(engine.candidates) > 0

        # A bright flash lifts the window average above every pulse peak.
        engine.tick(1.0, _timestamp(196))
        assert engine.quality is not SignalQuality.GOOD
        assert engine.raw_observations == []
        assert engine.candidates == []
        assert engine.lock_state.stable_candidate is None

    def test_partial_reset_keeps_lock_and_samples(self):
        engine = BpmEngine()
        _feed(engine, 10 * int(TICK_HZ))
        engine.reset(clear_lock=False)
        assert engine.locked_bpm == 75
        assert len(engine.samples) == engine.config.max_samples
        assert engine.candidates == []
        assert engine.raw_observations == []

    def test_full_reset_clears_everything(self):
        engine = BpmEngine()
        _feed(engine, 10 * int(TICK_HZ))
        engine.reset(clear_lock=True)
        assert engine.locked_bpm is None
        assert engine.samples == []
        assert engine.buffer_fill_ratio == 0.0
        assert engine.lock_state.stability_counter == 0
        assert engine.tick(0.5, 0).text == "Analyzing..."

    def test_full_reset_publishes_status(self):
        changes = []
        engine = BpmEngine(on_display_change=changes.append)
        _feed(engine, 10 * int(TICK_HZ))
        assert engine.display == DisplayValue.locked(75)

        engine.reset(clear_lock=True)
        assert engine.locked_bpm is None
        assert engine.display.is_status
        assert engine.display.text == "Analyzing..."
        assert changes[-1] == engine.display

    def test_partial_reset_drops_tentative_value(self):
        changes = []
        engine = BpmEngine(on_display_change=changes.append)
        displays = _feed(engine, 197)
        assert displays[-1].text == "75?"

        engine.reset(clear_lock=False)
        assert engine.display.text == "Detecting..."
        assert changes[-1].text == "Detecting..."

    def test_partial_reset_keeps_locked_display(self):
        changes = []
        engine = BpmEngine(on_display_change=changes.append)
        _feed(engine, 10 * int(TICK_HZ))
        fired = len(changes)

        engine.reset(clear_lock=False)
        assert engine.display == DisplayValue.locked(75)
        assert len(changes) == fired

    def test_non_finite_sample_ignored(self):
        engine = BpmEngine()
        engine.tick(0.5, 0)
        before = engine.display
        assert engine.tick(float("nan"), 16) == before
        assert engine.tick(None, 33) == before
        assert len(engine.samples) == 1

    def test_buffer_bounded_by_config(self):
        engine = BpmEngine(EngineConfig(max_samples=120))
        _feed(engine, 500)
        assert len(engine.samples) == 120
        assert engine.buffer_fill_ratio == pytest.approx(1.0)
