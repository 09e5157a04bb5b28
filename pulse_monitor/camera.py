"""
Camera capture.

Wraps OpenCV ``VideoCapture`` to provide a simple iterator of BGR frames.
Device selection and torch control stay with the platform; this class only
opens an index and reads from it.
"""

from __future__ import annotations

import logging
from typing import Generator, Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

MAX_FAILED_READS = 10


class Camera:
    """
    Thin wrapper around an OpenCV capture device.

    Parameters
    ----------
    camera_index:
        OpenCV device index.
    resolution:
        Requested (width, height).  Frames are sampled down to 30 × 30
        anyway, so a low resolution is fine.
    fps:
        Requested frame rate.  The engine works on timestamps, so the actual
        rate may differ.
    """

    def __init__(
        self,
        camera_index: int = 0,
        resolution: Tuple[int, int] = (320, 240),
        fps: int = 60,
    ) -> None:
        self.camera_index = camera_index
        self.resolution = resolution
        self.fps = fps
        self._cap: Optional[cv2.VideoCapture] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            raise RuntimeError(f"Cannot open video capture device index={self.camera_index}")
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cap = cap
        logger.info(
            "Camera opened – index=%d resolution=%s fps=%d",
            self.camera_index, self.resolution, self.fps,
        )

    def close(self) -> None:
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Camera closed.")

    def __enter__(self) -> "Camera":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame acquisition
    # ------------------------------------------------------------------

    def read_frame(self) -> Optional[np.ndarray]:
        """Capture one BGR frame, or return *None* when the read fails."""
        if self._cap is None:
            raise RuntimeError("Camera is not open.  Call open() first.")
        ok, frame = self._cap.read()
        if not ok:
            logger.warning("VideoCapture.read() returned False.")
            return None
        return frame

    def frames(self) -> Generator[np.ndarray, None, None]:
        """Yield frames until the camera is closed or reads keep failing."""
        failed = 0
        while self._cap is not None:
            frame = self.read_frame()
            if frame is None:
                failed += 1
                if failed >= MAX_FAILED_READS:
                    logger.error("Camera returned %d consecutive empty frames – aborting.", failed)
                    break
                continue
            failed = 0
            yield frame
