#!/usr/bin/env python3
"""
Pulse Monitor – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --camera-index INT       OpenCV camera index (default: 0)
    --resolution WxH         Capture resolution (default: 320x240)
    --fps INT                Target capture rate (default: 60)
    --window FLOAT           Analysis window in seconds (default: 5)
    --low-signal-reset MS    Drop a locked BPM after this much low signal
    --warmup MS              Frames ignored after the camera starts (default: 1500)
    --headless               Run without a preview window (log BPM changes)
    --debug                  Verbose engine logging

Keyboard shortcuts (when a window is open)
------------------------------------------
    q / ESC  – quit
    r        – restart measurement (full reset)
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

import cv2

from pulse_monitor.brightness import sample_frame
from pulse_monitor.camera import Camera
from pulse_monitor.config import ConfigError, EngineConfig
from pulse_monitor.display import STARTING, DisplayValue
from pulse_monitor.engine import BpmEngine
from pulse_monitor.finger_detector import FingerDetector
from pulse_monitor.visualizer import Visualizer

logger = logging.getLogger("pulse_monitor")

WINDOW_NAME = "Pulse Monitor"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fingertip camera heart-rate monitor",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index")
    parser.add_argument("--resolution", default="320x240",
                        help="Capture resolution, e.g. 320x240")
    parser.add_argument("--fps", type=int, default=60,
                        help="Target capture frame rate")
    parser.add_argument("--window", type=float, default=5.0,
                        help="Analysis window in seconds")
    parser.add_argument("--low-signal-reset", type=float, default=None, metavar="MS",
                        help="Drop a locked BPM after this many ms of low signal")
    parser.add_argument("--warmup", type=float, default=1500.0, metavar="MS",
                        help="Ignore frames for this many ms while exposure settles")
    parser.add_argument("--headless", action="store_true",
                        help="No preview window; log BPM changes only")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug logging")
    return parser.parse_args(argv)


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
        datefmt="%H:%M:%S",
    )


def warming_up(started_ms: int, now_ms: int, warmup_ms: float) -> bool:
    """True while auto-exposure and the torch are still settling."""
    return now_ms - started_ms < warmup_ms


def build_config(args: argparse.Namespace) -> EngineConfig:
    return EngineConfig.for_window(
        fps=args.fps,
        window_seconds=args.window,
        low_signal_reset_ms=args.low_signal_reset,
    )


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    try:
        res_w, res_h = (int(v) for v in args.resolution.lower().split("x"))
    except ValueError:
        logger.error("Invalid --resolution format.  Use WxH, e.g. 320x240.")
        return 1

    try:
        config = build_config(args)
    except ConfigError as exc:
        logger.error("Invalid engine settings: %s", exc)
        return 1

    def log_change(display: DisplayValue) -> None:
        logger.info("Display: %s", display.text)

    engine   = BpmEngine(config, on_display_change=log_change)
    camera   = Camera(camera_index=args.camera_index, resolution=(res_w, res_h), fps=args.fps)
    detector = FingerDetector()
    vis      = Visualizer(resolution=(res_w, res_h))

    logger.info("Starting pulse monitor.  Press 'q' or ESC to quit.")
    if not args.headless:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)

    starting = DisplayValue.from_status(STARTING)
    log_change(starting)

    covered = False
    try:
        with camera:
            started_ms = int(time.monotonic() * 1000)
            for frame in camera.frames():
                now_ms = int(time.monotonic() * 1000)
                settling = warming_up(started_ms, now_ms, args.warmup)

                if not settling:
                    if detector.is_covered(frame):
                        covered = True
                        engine.tick(sample_frame(frame), now_ms)
                    elif covered:
                        # Finger lifted: keep the lock, drop the working buffers.
                        covered = False
                        engine.reset(clear_lock=False)
                        logger.info("Finger removed.")

                if args.headless:
                    continue

                annotated = vis.draw(
                    frame,
                    display=starting if settling else engine.display,
                    quality=engine.quality,
                    samples=engine.samples,
                    stats=engine.stats,
                    buffer_fill=engine.buffer_fill_ratio,
                    capacity=config.max_samples,
                )
                cv2.imshow(WINDOW_NAME, annotated)
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), 27):
                    logger.info("Quit requested by user.")
                    break
                elif key == ord("r"):
                    engine.reset(clear_lock=True)
                    logger.info("Measurement restarted.")

    except RuntimeError as exc:
        logger.error("Camera error: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        engine.reset(clear_lock=True)
        if not args.headless:
            cv2.destroyAllWindows()

    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.debug)
    return run(args)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
