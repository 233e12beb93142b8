"""
Tests for output sessions and the single-owner session manager.
"""

import threading
import time

from elksync.consumer import packet_codec as codec
from elksync.core.session import Session, SessionManager, StaticSession


class LoopingSession(Session):
    """Writes a packet every few milliseconds until stopped."""

    kind = "loop"

    def __init__(self, sink, packet, name=None):
        super().__init__(sink, name)
        self.packet = packet
        self.started = threading.Event()

    def run(self, stop_event):
        self.started.set()
        while not stop_event.wait(0.005):
            self.sink.write(self.packet)


class StubbornSession(Session):
    """Ignores the stop event for a while, then keeps trying to write."""

    kind = "stubborn"

    def __init__(self, sink):
        super().__init__(sink)
        self.late_write_results = []

    def run(self, stop_event):
        time.sleep(0.3)
        self.late_write_results.append(self.sink.write(codec.power_on()))


class FailingSession(Session):
    kind = "failing"

    def run(self, stop_event):
        raise RuntimeError("boom")


# =============================================================================
# Session
# =============================================================================


class TestSession:
    """Test a single session's lifecycle and write gate."""

    def test_static_session_writes_once(self, sink):
        packet = codec.rgb_color(1, 2, 3)
        session = StaticSession(sink, packet)

        session.start()

        assert session.delivered is True
        assert sink.packets == [packet]
        assert session.is_running

    def test_static_session_not_delivered_when_disconnected(self, sink):
        sink.connected = False
        session = StaticSession(sink, codec.power_on())

        session.start()

        assert session.delivered is False

    def test_writes_gated_after_stop(self, sink):
        session = StaticSession(sink, codec.power_on())
        session.start()

        session.stop()

        assert session.write(codec.power_off()) is False
        assert session.sink.write(codec.power_off()) is False
        assert sink.packets == [codec.power_on()]
        assert not session.is_running

    def test_threaded_session_stops(self, sink):
        session = LoopingSession(sink, codec.brightness(50))
        session.start()
        assert sink.wait_for_packets(3)

        assert session.stop() is True
        count = len(sink.snapshot())
        time.sleep(0.05)

        assert len(sink.snapshot()) == count
        assert not session.is_running

    def test_stop_timeout_still_gates_writes(self, sink):
        """A session that overruns the join timeout can no longer write."""
        session = StubbornSession(sink)
        session.start()

        assert session.stop(timeout=0.05) is False
        session._thread.join(timeout=2.0)

        assert session.late_write_results == [False]
        assert sink.packets == []

    def test_run_errors_end_session(self, sink, caplog):
        session = FailingSession(sink)
        session.start()
        session._thread.join(timeout=2.0)

        assert not session.is_running
        assert "terminated with error" in caplog.text


# =============================================================================
# SessionManager
# =============================================================================


class TestSessionManager:
    """Test exclusive ownership of the device."""

    def test_activate_replaces_previous(self, sink):
        manager = SessionManager()
        first = manager.activate(LoopingSession(sink, codec.brightness(10), name="first"))
        assert sink.wait_for_packets(2)

        second = manager.activate(LoopingSession(sink, codec.brightness(90), name="second"))
        boundary = len(sink.snapshot())
        assert sink.wait_for_packets(boundary + 3)

        assert not first.is_running
        assert first._thread is not None and not first._thread.is_alive()
        assert manager.current is second
        assert all(packet == codec.brightness(90) for packet in sink.snapshot()[boundary:])
        manager.stop()

    def test_active_kind(self, sink):
        manager = SessionManager()
        assert manager.active_kind is None

        manager.activate(StaticSession(sink, codec.power_on()))

        assert manager.active_kind == "static"
        assert manager.is_active("static")

    def test_stop_by_kind(self, sink):
        manager = SessionManager()
        manager.activate(LoopingSession(sink, codec.power_on()))

        assert manager.stop(kind="static") is False
        assert manager.active_kind == "loop"
        assert manager.stop(kind="loop") is True
        assert manager.current is None
        assert manager.stop() is False

    def test_replacing_static_session(self, sink):
        manager = SessionManager()
        first = manager.activate(StaticSession(sink, codec.rgb_color(1, 1, 1)))
        manager.activate(StaticSession(sink, codec.rgb_color(2, 2, 2)))

        assert not first.is_running
        assert first.write(codec.power_off()) is False
        assert sink.packets == [codec.rgb_color(1, 1, 1), codec.rgb_color(2, 2, 2)]
