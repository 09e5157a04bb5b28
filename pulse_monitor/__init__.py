"""
Pulse Monitor — fingertip camera heart-rate estimation.
Place your finger over the camera (torch on); the system reduces each frame to a
red+green brightness sample and stabilises a BPM from mean-crossing intervals.
"""

from pulse_monitor.config import ConfigError, EngineConfig
from pulse_monitor.engine import BpmEngine, DisplayKind, DisplayValue
from pulse_monitor.quality import SignalQuality

__version__ = "0.1.0"
__author__ = "pulse_monitor"

__all__ = [
    "BpmEngine",
    "ConfigError",
    "DisplayKind",
    "DisplayValue",
    "EngineConfig",
    "SignalQuality",
]
