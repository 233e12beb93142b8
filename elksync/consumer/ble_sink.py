"""
Device sinks for encoded LED packets.

A sink accepts a 9-byte packet and makes one best-effort, unacknowledged
attempt to deliver it. ``write()`` never blocks the producing loop: the
BLE implementation hands packets to a single writer task running on a
private asyncio loop, which preserves submission order and drops the
oldest queued packet when the device cannot keep up.
"""

import asyncio
import concurrent.futures
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from bleak import BleakClient
from bleak.exc import BleakError

from ..const import TRANSPORT_LOG_INTERVAL, WRITE_CHARACTERISTIC_UUID
from ..utils.logging_utils import RateLimitedLogger
from .packet_codec import describe, is_valid_packet

logger = logging.getLogger(__name__)


class DeviceSink(ABC):
    """Destination for encoded packets."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether writes can currently reach a device."""

    @abstractmethod
    def write(self, packet: bytes) -> bool:
        """
        Submit one packet without waiting for acknowledgement.

        Returns:
            True if the packet was accepted for delivery, False if it was
            skipped (not connected, malformed).
        """

    def close(self) -> None:
        """Release transport resources."""


@dataclass
class BleSinkConfig:
    """Configuration for the BLE sink"""

    address: Optional[str] = None  # Device MAC address (macOS: CoreBluetooth UUID)
    characteristic_uuid: str = WRITE_CHARACTERISTIC_UUID
    connect_timeout: float = 10.0  # Seconds
    write_timeout: float = 1.0  # Per-write timeout inside the writer task
    queue_size: int = 8  # Pending packets before the oldest is dropped


class BleDeviceSink(DeviceSink):
    """
    bleak-backed sink for ELK-BLEDOM controllers.

    Owns a background thread running an asyncio loop; all bleak calls run
    on that loop. Connection management is intentionally thin: callers
    connect once with a known address and reconnect themselves if needed.
    """

    def __init__(self, config: Optional[BleSinkConfig] = None):
        self.config = config or BleSinkConfig()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[threading.Thread] = None
        self._loop_lock = threading.Lock()

        self._client: Optional[BleakClient] = None
        self._queue: Optional[asyncio.Queue] = None
        self._writer_task: Optional[asyncio.Task] = None

        self._error_log = RateLimitedLogger(logger, interval=TRANSPORT_LOG_INTERVAL)

        # Statistics
        self.packets_submitted = 0
        self.packets_sent = 0
        self.packets_dropped = 0
        self.write_errors = 0
        self.connected_since = 0.0

    # -------------------------------------------------------------------------
    # Loop management
    # -------------------------------------------------------------------------

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._loop_lock:
            if self._loop is None or self._loop.is_closed():
                self._loop = asyncio.new_event_loop()
                self._loop_thread = threading.Thread(
                    target=self._loop.run_forever, daemon=True, name="BleSinkLoop"
                )
                self._loop_thread.start()
            return self._loop

    def _run(self, coro, timeout: float):
        """Run a coroutine on the sink loop and wait for its result."""
        loop = self._ensure_loop()
        future = asyncio.run_coroutine_threadsafe(coro, loop)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._client.is_connected

    def connect(self, address: Optional[str] = None) -> bool:
        """
        Connect to the controller at ``address`` (or the configured one).

        Returns:
            True on success, False if the connection attempt failed
        """
        address = address or self.config.address
        if not address:
            logger.error("No BLE device address configured")
            return False

        if self.is_connected:
            logger.debug(f"Already connected to {address}")
            return True

        try:
            self._run(self._connect(address), timeout=self.config.connect_timeout + 2.0)
        except (BleakError, OSError, asyncio.TimeoutError, concurrent.futures.TimeoutError) as e:
            logger.error(f"Failed to connect to {address}: {e}")
            return False

        self.config.address = address
        self.connected_since = time.time()
        self._error_log.reset()
        logger.info(f"Connected to LED controller {address}")
        return True

    async def _connect(self, address: str) -> None:
        client = BleakClient(
            address,
            disconnected_callback=self._on_disconnected,
            timeout=self.config.connect_timeout,
        )
        await client.connect()
        await self._cancel_writer()
        self._client = client
        self._queue = asyncio.Queue(maxsize=self.config.queue_size)
        self._writer_task = asyncio.get_running_loop().create_task(self._writer())

    def _on_disconnected(self, client: BleakClient) -> None:
        logger.warning(f"LED controller {self.config.address} disconnected")

    def disconnect(self) -> None:
        if self._loop is None or self._client is None:
            return
        try:
            self._run(self._disconnect(), timeout=5.0)
        except (BleakError, OSError, concurrent.futures.TimeoutError) as e:
            logger.warning(f"Error during BLE disconnect: {e}")
        finally:
            self._client = None
            self._queue = None
        logger.info("Disconnected from LED controller")

    async def _cancel_writer(self) -> None:
        """Stop the writer task left over from a previous connection, if any."""
        task, self._writer_task = self._writer_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _disconnect(self) -> None:
        await self._cancel_writer()
        if self._client is not None:
            await self._client.disconnect()

    def close(self) -> None:
        """Disconnect and stop the background loop."""
        self.disconnect()
        with self._loop_lock:
            if self._loop is not None and not self._loop.is_closed():
                self._loop.call_soon_threadsafe(self._loop.stop)
                if self._loop_thread is not None:
                    self._loop_thread.join(timeout=2.0)
                self._loop.close()
            self._loop = None
            self._loop_thread = None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def write(self, packet: bytes) -> bool:
        if not is_valid_packet(packet):
            logger.error(f"Refusing malformed packet: {describe(packet)}")
            return False

        loop = self._loop
        if not self.is_connected or loop is None or self._queue is None:
            self._error_log.warning("not_connected", "LED write skipped: device not connected")
            return False

        self.packets_submitted += 1
        try:
            loop.call_soon_threadsafe(self._enqueue, bytes(packet))
        except RuntimeError as e:
            # Loop closed between the check and the call
            self._error_log.warning("loop_closed", f"LED write skipped: {e}")
            return False
        return True

    def _enqueue(self, packet: bytes) -> None:
        """Runs on the sink loop."""
        queue = self._queue
        if queue is None:
            return
        if queue.full():
            queue.get_nowait()
            self.packets_dropped += 1
            self._error_log.warning("queue_full", "BLE write queue full, dropping oldest packet")
        queue.put_nowait(packet)

    async def _writer(self) -> None:
        """Single consumer of the write queue; preserves submission order."""
        while True:
            packet = await self._queue.get()
            client = self._client
            if client is None or not client.is_connected:
                self._error_log.warning("not_connected", "LED write dropped: device not connected")
                continue
            try:
                await asyncio.wait_for(
                    client.write_gatt_char(self.config.characteristic_uuid, packet, response=False),
                    timeout=self.config.write_timeout,
                )
                self.packets_sent += 1
            except (BleakError, OSError, asyncio.TimeoutError) as e:
                self.write_errors += 1
                self._error_log.warning("write_failed", f"BLE write failed: {e}")

    def get_statistics(self) -> dict:
        return {
            "connected": self.is_connected,
            "address": self.config.address,
            "packets_submitted": self.packets_submitted,
            "packets_sent": self.packets_sent,
            "packets_dropped": self.packets_dropped,
            "write_errors": self.write_errors,
        }
