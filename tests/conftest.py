"""
Shared pytest fixtures for the elk-sync test suite.

Provides an in-memory device sink that records packets, scripted frame
sources and synthetic frames.
"""

import sys
import threading
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from elksync.consumer.ble_sink import DeviceSink  # noqa: E402
from elksync.producer.frame_source import FrameSource  # noqa: E402


# =============================================================================
# Test doubles
# =============================================================================


class RecordingSink(DeviceSink):
    """DeviceSink that keeps every accepted packet in memory."""

    def __init__(self, connected: bool = True):
        self.connected = connected
        self.packets: List[bytes] = []
        self.closed = False
        self._lock = threading.Lock()
        self._written = threading.Condition(self._lock)

    @property
    def is_connected(self) -> bool:
        return self.connected

    def write(self, packet: bytes) -> bool:
        if not self.connected:
            return False
        with self._written:
            self.packets.append(bytes(packet))
            self._written.notify_all()
        return True

    def close(self) -> None:
        self.closed = True

    def wait_for_packets(self, count: int, timeout: float = 2.0) -> bool:
        """Block until at least ``count`` packets have been written."""
        with self._written:
            return self._written.wait_for(lambda: len(self.packets) >= count, timeout=timeout)

    def snapshot(self) -> List[bytes]:
        with self._lock:
            return list(self.packets)


class ScriptedFrameSource(FrameSource):
    """FrameSource that replays a fixed list of frames, then repeats the last one."""

    def __init__(self, frames: Iterable[Optional[np.ndarray]], fail_first: int = 0):
        self.frames = list(frames)
        self.fail_first = fail_first
        self.calls = 0
        self.reinit_count = 0
        self.released = False

    def acquire_frame(self) -> Optional[np.ndarray]:
        self.calls += 1
        if self.calls <= self.fail_first:
            raise OSError("screen grab failed")
        index = min(self.calls - self.fail_first - 1, len(self.frames) - 1)
        return self.frames[index]

    def reinitialize(self) -> None:
        self.reinit_count += 1

    def release(self) -> None:
        self.released = True


def solid(color, size=(48, 64)) -> np.ndarray:
    """(H, W, 3) uint8 frame filled with one color."""
    frame = np.zeros((size[0], size[1], 3), dtype=np.uint8)
    frame[:, :] = color
    return frame


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def red_frame() -> np.ndarray:
    return solid((255, 0, 0))


@pytest.fixture
def blue_frame() -> np.ndarray:
    return solid((0, 0, 255))


@pytest.fixture
def black_frame() -> np.ndarray:
    return solid((0, 0, 0))


@pytest.fixture
def white_frame() -> np.ndarray:
    return solid((255, 255, 255))
