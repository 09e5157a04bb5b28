"""
Fingertip coverage check.

With the torch on and a fingertip pressed over the lens the frame turns into
an almost uniform red glow: red clearly dominates green and blue, and there
are no edges.  The host uses this to tell the engine about transient
external signal loss (finger lifted) instead of feeding it room images.
"""

from __future__ import annotations

import numpy as np


class FingerDetector:
    """
    Heuristic: is the lens covered by a lit fingertip?

    Parameters
    ----------
    min_red:
        Minimum mean red intensity (0 – 255).  A covered but unlit lens is
        almost black.
    red_dominance:
        Minimum ``mean_red / max(mean_green, mean_blue)``.
    max_spatial_std:
        Maximum standard deviation of the red channel across the patch.
    """

    def __init__(
        self,
        min_red: float = 60.0,
        red_dominance: float = 1.4,
        max_spatial_std: float = 30.0,
    ) -> None:
        self.min_red = min_red
        self.red_dominance = red_dominance
        self.max_spatial_std = max_spatial_std

    def is_covered(self, frame: np.ndarray) -> bool:
        """*frame* is a BGR image (H × W × 3, uint8)."""
        blue = frame[:, :, 0].astype(np.float64)
        green = frame[:, :, 1].astype(np.float64)
        red = frame[:, :, 2].astype(np.float64)

        mean_red = float(red.mean())
        other = max(float(green.mean()), float(blue.mean()), 1e-6)

        return (
            mean_red >= self.min_red
            and mean_red / other >= self.red_dominance
            and float(red.std()) <= self.max_spatial_std
        )
