"""
Screen sync pipeline.

frame -> ColorAnalyzer -> ColorSmoother -> (x beat brightness) -> packet -> sink

The pipeline runs inside a SyncSession thread at the capture cadence. It
owns the frame source for the lifetime of the session and releases it in
the same teardown that ends the loop.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..const import BLACK_THRESHOLD, CAPTURE_ERROR_BACKOFF, CAPTURE_LOG_INTERVAL, STATUS_LOG_INTERVAL, SYNC_TARGET_FPS
from ..consumer import packet_codec as codec
from ..consumer.beat_detector import BeatDetector
from ..consumer.ble_sink import DeviceSink
from ..consumer.color_analyzer import ColorAnalyzer
from ..consumer.color_smoother import ColorSmoother
from ..core.session import Session
from ..utils.color import BLACK, RGB, scale_rgb
from ..utils.logging_utils import RateLimitedLogger
from .frame_source import FrameSource

logger = logging.getLogger(__name__)


@dataclass
class SyncConfig:
    """Configuration for the screen sync loop"""

    target_fps: float = SYNC_TARGET_FPS
    black_threshold: int = BLACK_THRESHOLD  # Analyzed colors below this on every channel are sent as black
    error_backoff: float = CAPTURE_ERROR_BACKOFF  # Seconds to wait after a capture failure
    audio_sync: bool = True  # Modulate brightness with the beat detector


class SyncPipeline:
    """One screen-sync session's worth of analysis state plus the loop that drives it."""

    def __init__(
        self,
        sink: DeviceSink,
        frame_source: FrameSource,
        analyzer: Optional[ColorAnalyzer] = None,
        smoother: Optional[ColorSmoother] = None,
        beat_detector: Optional[BeatDetector] = None,
        config: Optional[SyncConfig] = None,
    ):
        self.sink = sink
        self.frame_source = frame_source
        self.analyzer = analyzer or ColorAnalyzer()
        self.smoother = smoother or ColorSmoother()
        self.beat_detector = beat_detector
        self.config = config or SyncConfig()

        self._primed = False
        self._capture_log = RateLimitedLogger(logger, interval=CAPTURE_LOG_INTERVAL)

        # Statistics
        self.frames_processed = 0
        self.black_frames = 0
        self.capture_errors = 0
        self.last_color: RGB = BLACK
        self._fps_window_start = 0.0
        self._fps_window_frames = 0

    def reset(self) -> None:
        """Clear analyzer bias and arm the smoother to snap to the first color."""
        self.analyzer.reset()
        self._primed = False
        self.last_color = BLACK

    @property
    def audio_active(self) -> bool:
        return self.config.audio_sync and self.beat_detector is not None and self.beat_detector.is_running

    def process_frame(self, frame) -> RGB:
        """
        Run one frame through the pipeline and write the result.

        Returns:
            The color written to the sink
        """
        color = self.analyzer.analyze(frame)

        if all(channel < self.config.black_threshold for channel in color):
            # Black-screen watchdog: skip smoothing so dark scenes go fully dark
            self.smoother.reset(BLACK)
            self._primed = True
            self.black_frames += 1
            output = BLACK
        elif not self._primed:
            self.smoother.reset(color)
            self._primed = True
            output = color
        else:
            output = self.smoother.smooth(color)

        if self.audio_active and output != BLACK:
            output = scale_rgb(output, self.beat_detector.brightness)

        self.sink.write(codec.rgb_color(*output))
        self.last_color = output
        self.frames_processed += 1
        return output

    def run(self, stop_event: threading.Event) -> None:
        """Capture loop; returns once ``stop_event`` is set."""
        interval = 1.0 / max(self.config.target_fps, 1.0)
        self.reset()

        if self.config.audio_sync and self.beat_detector is not None:
            self.beat_detector.start()

        logger.info(f"Screen sync started at {self.config.target_fps:.0f} fps")
        self._fps_window_start = time.monotonic()
        try:
            while not stop_event.is_set():
                started = time.monotonic()
                try:
                    frame = self.frame_source.acquire_frame()
                except Exception as e:
                    self.capture_errors += 1
                    self._capture_log.warning("capture_failed", f"Frame capture failed, reinitializing: {e}")
                    self.frame_source.reinitialize()
                    stop_event.wait(self.config.error_backoff)
                    continue

                if frame is not None:
                    self.process_frame(frame)
                    self._log_fps()

                stop_event.wait(max(0.0, interval - (time.monotonic() - started)))
        finally:
            self.frame_source.release()
            if self.beat_detector is not None and self.beat_detector.is_running:
                self.beat_detector.stop()
            logger.info(
                f"Screen sync stopped: {self.frames_processed} frames, "
                f"{self.black_frames} black, {self.capture_errors} capture errors"
            )

    def _log_fps(self) -> None:
        self._fps_window_frames += 1
        now = time.monotonic()
        elapsed = now - self._fps_window_start
        if elapsed >= STATUS_LOG_INTERVAL:
            logger.debug(f"Screen sync: {self._fps_window_frames / elapsed:.1f} fps, color={self.last_color}")
            self._fps_window_start = now
            self._fps_window_frames = 0

    def get_statistics(self) -> dict:
        return {
            "frames_processed": self.frames_processed,
            "black_frames": self.black_frames,
            "capture_errors": self.capture_errors,
            "last_color": list(self.last_color),
            "audio_active": self.audio_active,
        }


class SyncSession(Session):
    """Session wrapper running a SyncPipeline on its own thread."""

    kind = "sync"

    def __init__(self, sink: DeviceSink, pipeline_factory, name: Optional[str] = None):
        """
        Args:
            sink: Device sink
            pipeline_factory: Callable taking the gated session sink and
                returning a SyncPipeline
        """
        super().__init__(sink, name or "screen-sync")
        self.pipeline: SyncPipeline = pipeline_factory(self.sink)

    def run(self, stop_event: threading.Event) -> None:
        self.pipeline.run(stop_event)
