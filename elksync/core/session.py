"""
Output sessions and exclusive transport ownership.

A session is one continuous activation of a single output mode (screen
sync, software effect, or a static color). Only one session may write to
the device at a time: SessionManager holds the single active handle and
replacing it stops the previous occupant, waiting for its thread to exit,
before the new one starts.

Every write a session makes goes through Session.write(), which refuses
writes once the session has been told to stop. Together with the join in
stop() this guarantees that after stop() returns, the old session cannot
reach the device again.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional

from ..consumer.ble_sink import DeviceSink

logger = logging.getLogger(__name__)

STOP_TIMEOUT = 2.0  # Seconds to wait for a session thread to exit


class SessionSink(DeviceSink):
    """DeviceSink view handed to session code; forwards through the session gate."""

    def __init__(self, session: "Session", target: DeviceSink):
        self._session = session
        self._target = target

    @property
    def is_connected(self) -> bool:
        return self._target.is_connected

    def write(self, packet: bytes) -> bool:
        return self._session.write(packet)


class Session(ABC):
    """Base class for output sessions."""

    kind = "session"
    threaded = True

    def __init__(self, sink: DeviceSink, name: Optional[str] = None):
        self.name = name or self.kind
        self.stop_event = threading.Event()
        self.sink = SessionSink(self, sink)
        self._target = sink
        self._write_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.started_at = 0.0
        self.writes = 0

    @abstractmethod
    def run(self, stop_event: threading.Event) -> None:
        """Session body. Threaded sessions must return promptly once stop_event is set."""

    def start(self) -> None:
        self.started_at = time.time()
        if not self.threaded:
            self.run(self.stop_event)
            return
        self._thread = threading.Thread(target=self._run_wrapper, daemon=True, name=f"{self.kind}-session")
        self._thread.start()

    def _run_wrapper(self) -> None:
        try:
            self.run(self.stop_event)
        except Exception as e:
            logger.exception(f"Session '{self.name}' terminated with error: {e}")
        finally:
            logger.debug(f"Session '{self.name}' exited after {self.writes} writes")

    def write(self, packet: bytes) -> bool:
        """Write through to the device unless this session has been stopped."""
        with self._write_lock:
            if self.stop_event.is_set():
                return False
            self.writes += 1
            return self._target.write(packet)

    def stop(self, timeout: float = STOP_TIMEOUT) -> bool:
        """
        Signal the session to stop and wait for its thread to exit.

        Returns:
            True if the session thread has exited (or there was none)
        """
        with self._write_lock:
            self.stop_event.set()

        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return True
        thread.join(timeout=timeout)
        if thread.is_alive():
            # Writes are already gated off; the thread will exit at its next check
            logger.warning(f"Session '{self.name}' did not exit within {timeout:.1f}s")
            return False
        return True

    @property
    def is_running(self) -> bool:
        if not self.threaded:
            return not self.stop_event.is_set()
        return self._thread is not None and self._thread.is_alive() and not self.stop_event.is_set()


class StaticSession(Session):
    """A single write (static color or one-shot command) that holds ownership until replaced."""

    kind = "static"
    threaded = False

    def __init__(self, sink: DeviceSink, packet: bytes, name: Optional[str] = None):
        super().__init__(sink, name)
        self.packet = packet
        self.delivered = False

    def run(self, stop_event: threading.Event) -> None:
        self.delivered = self.sink.write(self.packet)


class SessionManager:
    """Holds the single active output session."""

    def __init__(self):
        self._lock = threading.RLock()
        self._current: Optional[Session] = None

    @property
    def current(self) -> Optional[Session]:
        return self._current

    @property
    def active_kind(self) -> Optional[str]:
        session = self._current
        return session.kind if session is not None and session.is_running else None

    def is_active(self, kind: str) -> bool:
        return self.active_kind == kind

    def activate(self, session: Session) -> Session:
        """Stop the current session (waiting for it to exit) and start ``session``."""
        with self._lock:
            previous = self._current
            if previous is not None:
                previous.stop()
                logger.info(f"Session '{previous.name}' replaced by '{session.name}'")
            else:
                logger.info(f"Session '{session.name}' started")
            self._current = session
            session.start()
        return session

    def stop(self, kind: Optional[str] = None) -> bool:
        """
        Stop the current session, optionally only if it is of ``kind``.

        Returns:
            True if a session was stopped
        """
        with self._lock:
            session = self._current
            if session is None or (kind is not None and session.kind != kind):
                return False
            session.stop()
            self._current = None
            logger.info(f"Session '{session.name}' stopped")
            return True
