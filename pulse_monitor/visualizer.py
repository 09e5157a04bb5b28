"""
Preview overlay.

Draws onto each camera frame:
  • the BPM readout (locked, tentative or status text),
  • the signal-quality verdict,
  • a graph strip of the buffered brightness samples, scaled by the window
    min / range,
  • the sample-buffer fill bar.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import cv2
import numpy as np

from pulse_monitor.display import DisplayKind, DisplayValue
from pulse_monitor.quality import SignalQuality
from pulse_monitor.samples import Sample
from pulse_monitor.statistics import SignalStats

# BGR
_GREEN  = (0, 220,  80)
_YELLOW = (0, 210, 210)
_RED    = (0,  50, 220)
_BLACK  = (0, 0, 0)
_CYAN   = (220, 200,  0)
_DARK   = (30, 30, 30)


class Visualizer:
    """
    Parameters
    ----------
    resolution:
        (width, height) of the preview frame.
    graph_height:
        Pixel height of the sample graph strip at the bottom.
    line_width:
        Thickness of the graph line.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (320, 240),
        graph_height: int = 70,
        line_width: int = 2,
    ) -> None:
        self.w, self.h = resolution
        self.graph_height = graph_height
        self.line_width = line_width

    def draw(
        self,
        frame: np.ndarray,
        display: DisplayValue,
        quality: SignalQuality,
        samples: Sequence[Sample],
        stats: SignalStats,
        buffer_fill: float,
        capacity: int,
    ) -> np.ndarray:
        """Resize *frame* to the preview resolution, annotate and return it."""
        canvas = cv2.resize(frame, (self.w, self.h))

        self._draw_readout(canvas, display)
        cv2.putText(
            canvas, quality.value,
            (12, 64), cv2.FONT_HERSHEY_SIMPLEX, 0.45,
            _GREEN if quality.is_good else _YELLOW, 1, cv2.LINE_AA,
        )
        self._draw_fill_bar(canvas, buffer_fill)
        self._draw_graph(canvas, samples, stats, capacity)
        return canvas

    # ------------------------------------------------------------------
    # Private drawing helpers
    # ------------------------------------------------------------------

    def _draw_readout(self, canvas: np.ndarray, display: DisplayValue) -> None:
        if display.kind is DisplayKind.STATUS:
            cv2.putText(
                canvas, display.text,
                (12, 36), cv2.FONT_HERSHEY_SIMPLEX, 0.6, _YELLOW, 2, cv2.LINE_AA,
            )
            return

        col = _GREEN if display.kind is DisplayKind.LOCKED else _YELLOW
        label = f"{display.text} BPM"
        cv2.putText(canvas, label, (12, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.1, _BLACK, 5, cv2.LINE_AA)
        cv2.putText(canvas, label, (12, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.1, col, 2, cv2.LINE_AA)

    def _draw_fill_bar(self, canvas: np.ndarray, fill: float) -> None:
        bar_w = int((self.w - 24) * min(fill, 1.0))
        y0, y1 = self.h - self.graph_height - 10, self.h - self.graph_height - 4
        cv2.rectangle(canvas, (12, y0), (self.w - 12, y1), _DARK, -1)
        cv2.rectangle(canvas, (12, y0), (12 + bar_w, y1), _CYAN, -1)

    def _draw_graph(
        self,
        canvas: np.ndarray,
        samples: Sequence[Sample],
        stats: SignalStats,
        capacity: int,
    ) -> None:
        """Samples are right-aligned so a filling buffer grows in from the left."""
        top = self.h - self.graph_height
        cv2.rectangle(canvas, (0, top), (self.w, self.h), _DARK, -1)
        if len(samples) < 2:
            return

        values = np.array([s.value for s in samples], dtype=np.float64)
        x_scale = self.w / capacity
        x_offset = (capacity - len(values)) * x_scale
        xs = (x_offset + np.arange(len(values)) * x_scale).astype(np.int32)

        lw = self.line_width
        usable = self.graph_height - 2 * lw
        if stats.range > 1e-9:
            ys = top + lw + usable * (1.0 - (values - stats.min) / stats.range)
        else:
            ys = np.full(len(values), top + self.graph_height / 2.0)
        ys = np.clip(ys, top + lw, self.h - lw).astype(np.int32)

        pts = np.column_stack([xs, ys])
        cv2.polylines(canvas, [pts[:, None, :]], False, _RED, lw, cv2.LINE_AA)
