"""
Frame → brightness sample reduction.

Each frame is shrunk to a small patch (30 × 30 by default) and reduced to one
scalar: the summed red and green intensities of every pixel divided by
``pixel_count × 2 × 255``.  Blue is ignored; it carries almost no pulsatile
component through a torch-lit fingertip.  The quality-gate thresholds are
expressed in units of this value, so the weighting and normalisation must
not change.
"""

from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

SAMPLE_SIZE: Tuple[int, int] = (30, 30)


def average_brightness(pixels: np.ndarray, bgr: bool = False) -> float:
    """
    Reduce an H × W × C image (C = 3 or 4, uint8) to a value in [0, 1].

    Parameters
    ----------
    pixels:
        Image array.  Channel order is RGB(A) unless *bgr* is set.
    bgr:
        Treat channel 2 as red and channel 1 as green (OpenCV order).
    """
    if pixels.ndim != 3 or pixels.shape[2] < 3:
        raise ValueError(f"expected an H x W x 3 image, got shape {pixels.shape}")

    pixel_count = pixels.shape[0] * pixels.shape[1]
    if pixel_count == 0:
        return 0.0

    red = pixels[:, :, 2] if bgr else pixels[:, :, 0]
    green = pixels[:, :, 1]
    total = float(red.sum(dtype=np.float64) + green.sum(dtype=np.float64))
    return total / (pixel_count * 2 * 255)


def sample_frame(
    frame: np.ndarray,
    size: Tuple[int, int] = SAMPLE_SIZE,
    bgr: bool = True,
) -> float:
    """Down-sample a camera *frame* to *size* (w, h) and reduce it to brightness."""
    patch = cv2.resize(frame, size, interpolation=cv2.INTER_AREA)
    return average_brightness(patch, bgr=bgr)
