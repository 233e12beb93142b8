#!/usr/bin/env python3
"""
Audio capture for beat-synchronised brightness.

Captures mono float32 audio from an input device with sounddevice, removes
DC offset and sub-bass rumble with a Butterworth high-pass, and hands each
chunk to a callback on a worker thread so the audio driver's callback is
never blocked by analysis.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import sounddevice as sd
from scipy import signal as scipy_signal

logger = logging.getLogger(__name__)

AudioCallback = Callable[[np.ndarray, float], object]


@dataclass
class HighpassConfig:
    """Configuration for the rumble-removal high-pass filter."""

    enabled: bool = True
    cutoff_hz: float = 20.0  # Keeps kick drums, removes DC and handling noise
    order: int = 2  # 12dB/octave


class HighpassFilter:
    """Butterworth high-pass with state carried between chunks."""

    def __init__(self, config: HighpassConfig, sample_rate: int):
        self.config = config
        self.sample_rate = sample_rate
        self.sos = scipy_signal.butter(
            config.order,
            config.cutoff_hz,
            btype="highpass",
            fs=sample_rate,
            output="sos",
        )
        self.zi = scipy_signal.sosfilt_zi(self.sos)
        self._primed = False

        logger.info(f"HighpassFilter initialized: cutoff={config.cutoff_hz:.0f}Hz, order={config.order}")

    def process(self, audio_chunk: np.ndarray) -> np.ndarray:
        if not self.config.enabled or audio_chunk.size == 0:
            return audio_chunk

        if not self._primed:
            # Start from the first sample to avoid a step transient
            self.zi = self.zi * audio_chunk[0]
            self._primed = True

        output, self.zi = scipy_signal.sosfilt(self.sos, audio_chunk, zi=self.zi)
        return output.astype(np.float32)

    def reset(self) -> None:
        self.zi = scipy_signal.sosfilt_zi(self.sos)
        self._primed = False


@dataclass
class AudioConfig:
    """Input stream settings."""

    sample_rate: int = 44100  # Hz
    channels: int = 1  # Mono
    dtype: str = "float32"
    chunk_size: int = 1024  # Samples per chunk (~23ms at 44.1kHz)
    device_name: Optional[str] = None  # Substring of the input device name, None = system default
    highpass: Optional[HighpassConfig] = None  # None disables the filter


class AudioCapture:
    """
    Live audio capture feeding a chunk callback.

    The callback receives ``(chunk, timestamp)`` on a single worker thread,
    so callbacks run in order and never concurrently with each other.
    """

    def __init__(self, config: Optional[AudioConfig] = None, audio_callback: Optional[AudioCallback] = None):
        """
        Resolve the input device and build the optional high-pass.

        Args:
            config: Stream settings, defaults when None
            audio_callback: Callback for processed audio chunks (chunk, timestamp)
        """
        self.config = config or AudioConfig()
        self.audio_callback = audio_callback

        self.device_index: Optional[int] = None
        self._resolve_device()

        self.highpass: Optional[HighpassFilter] = None
        if self.config.highpass is not None:
            self.highpass = HighpassFilter(self.config.highpass, self.config.sample_rate)

        self.is_capturing = False
        self.capture_thread: Optional[threading.Thread] = None
        self.callback_executor: Optional[ThreadPoolExecutor] = None

        # Counters reported by get_statistics()
        self.total_chunks_captured = 0
        self.overflow_count = 0
        self.dropped_callbacks = 0
        self.start_time = 0.0

    def _resolve_device(self) -> bool:
        """Resolve ``config.device_name`` to a device index."""
        if not self.config.device_name:
            return True

        try:
            for i, device in enumerate(sd.query_devices()):
                if self.config.device_name in device["name"] and device["max_input_channels"] > 0:
                    self.device_index = i
                    logger.info(f"Using input device {i}: {device['name']}")
                    return True
        except sd.PortAudioError as e:
            logger.error(f"Error querying audio devices: {e}")
            return False

        logger.warning(f"Audio device '{self.config.device_name}' not found, using default")
        return False

    def list_devices(self) -> list:
        """List input-capable audio devices."""
        try:
            devices = sd.query_devices()
        except sd.PortAudioError as e:
            logger.error(f"Error listing audio devices: {e}")
            return []
        return [
            {"index": i, "name": d["name"], "channels": d["max_input_channels"]}
            for i, d in enumerate(devices)
            if d["max_input_channels"] > 0
        ]

    def start_capture(self) -> bool:
        """
        Open the input stream on a background thread.

        Returns:
            False if capture was already running
        """
        if self.is_capturing:
            logger.warning("start_capture() called while already capturing")
            return False

        if self.highpass is not None:
            self.highpass.reset()

        self.is_capturing = True
        self.start_time = time.time()
        self.total_chunks_captured = 0
        self.overflow_count = 0
        self.dropped_callbacks = 0
        self.callback_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="AudioCallback")

        self.capture_thread = threading.Thread(target=self._stream_worker, daemon=True, name="AudioCapture")
        self.capture_thread.start()
        logger.info("Audio capture started")
        return True

    def stop_capture(self) -> None:
        """Stop capture and release the input stream."""
        if not self.is_capturing:
            return

        self.is_capturing = False
        if self.capture_thread and self.capture_thread.is_alive():
            self.capture_thread.join(timeout=2.0)
        self.capture_thread = None

        if self.callback_executor is not None:
            self.callback_executor.shutdown(wait=True, cancel_futures=True)
            self.callback_executor = None

        logger.info(
            f"Audio capture finished after {self.total_chunks_captured} chunks, "
            f"{time.time() - self.start_time:.1f}s, {self.overflow_count} overflows, "
            f"{self.dropped_callbacks} callbacks dropped"
        )

    def _handle_chunk(self, indata: np.ndarray) -> None:
        """Process one block from the driver (runs on the audio thread)."""
        audio_chunk = indata.copy()
        if audio_chunk.ndim > 1:
            audio_chunk = audio_chunk.mean(axis=1) if audio_chunk.shape[1] > 1 else audio_chunk[:, 0]

        if self.highpass is not None:
            audio_chunk = self.highpass.process(audio_chunk)

        self.total_chunks_captured += 1
        executor = self.callback_executor
        if self.audio_callback is None or executor is None:
            return
        try:
            executor.submit(self.audio_callback, audio_chunk, time.time())
        except RuntimeError:
            # Executor shut down while the stream was still delivering
            self.dropped_callbacks += 1

    def _stream_worker(self) -> None:
        last_overflow_log = [0.0]

        def on_block(indata, frames, time_info, status):
            if status and status.input_overflow:
                self.overflow_count += 1
                now = time.time()
                if now - last_overflow_log[0] > 5.0:
                    logger.warning(f"Input overflow ({self.overflow_count} so far), chunk handling is falling behind")
                    last_overflow_log[0] = now
            self._handle_chunk(indata)

        try:
            with sd.InputStream(
                samplerate=self.config.sample_rate,
                channels=self.config.channels,
                dtype=self.config.dtype,
                blocksize=self.config.chunk_size,
                device=self.device_index,
                callback=on_block,
            ):
                logger.info(
                    f"Input stream open ({self.config.sample_rate}Hz, "
                    f"{self.config.channels}ch, {self.config.chunk_size}-sample blocks)"
                )
                while self.is_capturing:
                    time.sleep(0.1)
        except sd.PortAudioError as e:
            logger.error(f"Could not open input stream: {e}")
            self.is_capturing = False

        logger.debug("Input stream closed")

    def get_statistics(self) -> dict:
        return {
            "capturing": self.is_capturing,
            "device_index": self.device_index,
            "chunks": self.total_chunks_captured,
            "overflows": self.overflow_count,
            "dropped": self.dropped_callbacks,
        }
