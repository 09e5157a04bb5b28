"""
Values handed back to the host after every tick.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

CALCULATING = "Calculating..."
DETECTING = "Detecting..."
STARTING = "Starting..."


class DisplayKind(Enum):
    LOCKED = "locked"
    TENTATIVE = "tentative"
    STATUS = "status"


@dataclass(frozen=True)
class DisplayValue:
    """
    Either a locked BPM, a tentative (not yet locked) BPM or a status text.

    ``text`` renders it the way the readout shows it: ``"72"``, ``"72?"`` or
    the status string.
    """

    kind: DisplayKind
    bpm: Optional[int] = None
    status: Optional[str] = None

    @classmethod
    def locked(cls, bpm: int) -> "DisplayValue":
        return cls(DisplayKind.LOCKED, bpm=int(bpm))

    @classmethod
    def tentative(cls, bpm: int) -> "DisplayValue":
        return cls(DisplayKind.TENTATIVE, bpm=int(bpm))

    @classmethod
    def from_status(cls, status: str) -> "DisplayValue":
        return cls(DisplayKind.STATUS, status=str(status))

    @property
    def is_locked(self) -> bool:
        return self.kind is DisplayKind.LOCKED

    @property
    def is_status(self) -> bool:
        return self.kind is DisplayKind.STATUS

    @property
    def text(self) -> str:
        if self.kind is DisplayKind.LOCKED:
            return str(self.bpm)
        if self.kind is DisplayKind.TENTATIVE:
            return f"{self.bpm}?"
        return self.status or ""

    def __str__(self) -> str:
        return self.text


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive input."""
    return int(math.floor(value + 0.5))
