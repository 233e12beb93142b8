"""
Tests for the screen sync pipeline and session.
"""

import threading

from conftest import ScriptedFrameSource, solid
from elksync.consumer import packet_codec as codec
from elksync.core.session import SessionManager
from elksync.producer.screen_sync import SyncConfig, SyncPipeline, SyncSession


class FakeBeatDetector:
    """Beat detector stand-in with a fixed brightness."""

    def __init__(self, brightness: float = 0.5):
        self.brightness = brightness
        self.is_running = False
        self.started = 0
        self.stopped = 0

    def start(self):
        self.is_running = True
        self.started += 1
        return True

    def stop(self):
        self.is_running = False
        self.stopped += 1

    def get_statistics(self):
        return {"running": self.is_running}


def make_pipeline(sink, frames=None, beat_detector=None, **config):
    source = ScriptedFrameSource(frames or [solid((255, 0, 0))])
    cfg = SyncConfig(target_fps=200, error_backoff=0.01, **config)
    return SyncPipeline(sink, source, beat_detector=beat_detector, config=cfg)


def run_pipeline(pipeline, sink, packets: int = 5):
    """Run the capture loop on a thread until ``packets`` have been written."""
    stop_event = threading.Event()
    thread = threading.Thread(target=pipeline.run, args=(stop_event,), daemon=True)
    thread.start()
    try:
        assert sink.wait_for_packets(packets)
    finally:
        stop_event.set()
        thread.join(timeout=2.0)
    assert not thread.is_alive()


# =============================================================================
# Per-frame processing
# =============================================================================


class TestProcessFrame:
    """Test one frame through analyzer, smoother and beat scaling."""

    def test_first_frame_snaps(self, sink, red_frame):
        pipeline = make_pipeline(sink)

        assert pipeline.process_frame(red_frame) == (255, 0, 0)
        assert sink.packets == [codec.rgb_color(255, 0, 0)]

    def test_black_frame_goes_dark_immediately(self, sink, red_frame, black_frame):
        """The black watchdog skips smoothing."""
        pipeline = make_pipeline(sink)
        pipeline.process_frame(red_frame)

        assert pipeline.process_frame(black_frame) == (0, 0, 0)
        assert pipeline.black_frames == 1
        assert pipeline.smoother.current_color == (0, 0, 0)

    def test_later_frames_are_smoothed(self, sink, black_frame, red_frame):
        """After black, a colored frame fades in rather than jumping."""
        pipeline = make_pipeline(sink)
        pipeline.process_frame(black_frame)

        color = pipeline.process_frame(red_frame)

        assert 0 < color[0] < 255

    def test_beat_brightness_scales_output(self, sink, red_frame):
        detector = FakeBeatDetector(brightness=0.5)
        detector.is_running = True
        pipeline = make_pipeline(sink, beat_detector=detector)

        assert pipeline.process_frame(red_frame) == (128, 0, 0)

    def test_audio_sync_disabled(self, sink, red_frame):
        detector = FakeBeatDetector(brightness=0.5)
        detector.is_running = True
        pipeline = make_pipeline(sink, beat_detector=detector, audio_sync=False)

        assert not pipeline.audio_active
        assert pipeline.process_frame(red_frame) == (255, 0, 0)


# =============================================================================
# Capture loop
# =============================================================================


class TestSyncLoop:
    """Test the capture loop's lifecycle and error recovery."""

    def test_loop_writes_and_releases(self, sink, red_frame):
        detector = FakeBeatDetector(brightness=1.0)
        pipeline = make_pipeline(sink, frames=[red_frame], beat_detector=detector)

        run_pipeline(pipeline, sink)

        assert sink.snapshot()[0] == codec.rgb_color(255, 0, 0)
        assert pipeline.frame_source.released
        assert detector.started == 1
        assert detector.stopped == 1
        assert not detector.is_running

    def test_capture_failures_recover(self, sink, red_frame):
        """Failed grabs reinitialize the source and the loop keeps going."""
        pipeline = make_pipeline(sink)
        pipeline.frame_source = ScriptedFrameSource([red_frame], fail_first=2)

        run_pipeline(pipeline, sink, packets=3)

        assert pipeline.capture_errors == 2
        assert pipeline.frame_source.reinit_count == 2
        assert pipeline.frames_processed >= 3

    def test_missing_frames_are_skipped(self, sink, red_frame):
        pipeline = make_pipeline(sink, frames=[None, None, red_frame])

        run_pipeline(pipeline, sink, packets=1)

        assert pipeline.frame_source.calls >= 3

    def test_statistics(self, sink, red_frame):
        pipeline = make_pipeline(sink)
        pipeline.process_frame(red_frame)

        stats = pipeline.get_statistics()

        assert stats["frames_processed"] == 1
        assert stats["last_color"] == [255, 0, 0]
        assert stats["audio_active"] is False


class TestSyncSession:
    """Test the session wrapper."""

    def test_session_pipeline_uses_gated_sink(self, sink, red_frame):
        """Writes from a stopped session's pipeline never reach the device."""
        manager = SessionManager()
        session = SyncSession(sink, lambda session_sink: make_pipeline(session_sink, frames=[red_frame]))

        manager.activate(session)
        assert sink.wait_for_packets(3)
        manager.stop()
        count = len(sink.snapshot())

        session.pipeline.process_frame(red_frame)

        assert len(sink.snapshot()) == count
        assert session.pipeline.frame_source.released
