"""
Audio beat detection for LED brightness modulation.

Turns a live audio stream into a 0..1 brightness signal that pulses on
percussive transients and breathes with overall loudness between them.

Key Features:
- Smoothed RMS energy with a frame-over-frame jump ratio
- Adaptive jump threshold driven by the rolling dynamic range, so quiet
  ambient music triggers on smaller jumps than loud, dynamic music
- Secondary bass trigger for kick-heavy material with modest RMS jumps
- Explicit hold -> tail -> cooldown state machine so one transient can
  only ever produce one pulse
- Asymmetric attack/decay on the output to keep the pulse shape visible

Energies are expressed on an 8-bit audio scale (full-scale sine RMS is
about 90) so the thresholds read the same regardless of capture format.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Deque, Optional, Tuple

import numpy as np

from ..const import STATUS_LOG_INTERVAL
from ..utils.color import clamp, lerp

if TYPE_CHECKING:
    from .audio_capture import AudioCapture

logger = logging.getLogger(__name__)

# Float samples in [-1, 1] are scaled to the 8-bit range before analysis
SAMPLE_SCALE = 128.0


@dataclass
class BeatDetectorConfig:
    """Configuration for beat detection"""

    # Energy tracking
    energy_smoothing: float = 0.4  # Weight of the new RMS in the smoothed energy
    min_previous_energy: float = 4.0  # Jump ratio is 1.0 while the previous energy is below this
    min_energy: float = 12.0  # Smoothed energy needed for an RMS-jump beat

    # Adaptive jump threshold
    min_jump_threshold: float = 1.06  # Used for music with little dynamic range
    max_jump_threshold: float = 1.25  # Used for loud, highly dynamic music
    dynamics_window: int = 60  # Frames in the rolling min/max window
    dynamics_smoothing: float = 0.05  # EMA weight for the dynamic-range estimate
    dynamics_normalizer: float = 50.0  # Dynamic range that maps to the max threshold

    # Bass trigger
    bass_threshold: float = 40.0  # Bass band energy (8-bit amplitude sum) for a bass beat
    bass_jump_floor: float = 1.03  # Minimum jump ratio for a bass beat
    bass_min_hz: float = 20.0
    bass_max_hz: float = 150.0

    # Pulse shape (frames)
    hold_frames: int = 3
    tail_frames: int = 8
    cooldown_frames: int = 3

    # Brightness levels
    base_brightness: float = 0.12  # Ambient floor during silence
    beat_brightness: float = 1.0  # Brightness during the hold
    tail_intensity: float = 0.6  # Share of the ambient-to-full gap at the start of the tail
    ambient_gain: float = 0.01  # Ambient boost per unit of smoothed energy
    ambient_max_boost: float = 0.25
    ambient_smoothing: float = 0.08
    output_attack: float = 0.92  # Output EMA weight when rising
    output_decay: float = 0.12  # Output EMA weight when falling


class BeatPhase(Enum):
    IDLE = "idle"
    HOLD = "hold"
    TAIL = "tail"
    COOLDOWN = "cooldown"


@dataclass
class BeatState:
    """Per-session beat detector state."""

    smoothed_energy: float = 0.0
    previous_energy: float = 0.0
    jump_ratio: float = 1.0
    jump_threshold: float = 1.06
    dynamic_range: float = 0.0
    phase: BeatPhase = BeatPhase.IDLE
    phase_frames_left: int = 0
    ambient_level: float = 0.12
    output: float = 0.12
    bass_energy: float = 0.0
    initialized: bool = False
    frames: int = 0
    beats: int = 0
    energy_window: Deque[float] = field(default_factory=deque)


class BeatDetector:
    """
    Adaptive beat detector producing a brightness scalar.

    process_energy() is the pure per-frame state machine; on_audio_chunk()
    computes RMS and bass energy from raw samples and feeds it. The latest
    brightness is published as a plain float attribute so the sync loop can
    read it without locking.
    """

    def __init__(
        self,
        config: Optional[BeatDetectorConfig] = None,
        audio_capture: Optional["AudioCapture"] = None,
        sample_rate: int = 44100,
    ):
        """
        Initialize beat detector.

        Args:
            config: Detector configuration (uses defaults if None)
            audio_capture: Audio source started and stopped with the detector
            sample_rate: Sample rate of chunks passed to on_audio_chunk()
        """
        self.config = config or BeatDetectorConfig()
        self.audio_capture = audio_capture
        self.sample_rate = audio_capture.config.sample_rate if audio_capture else sample_rate
        self.state = self._fresh_state()
        self.is_running = False
        self._last_status_log = 0.0

    def _fresh_state(self) -> BeatState:
        cfg = self.config
        return BeatState(
            jump_threshold=cfg.min_jump_threshold,
            ambient_level=cfg.base_brightness,
            output=cfg.base_brightness,
            energy_window=deque(maxlen=cfg.dynamics_window),
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> bool:
        """Reset state and start the audio tap, if one is attached."""
        if self.is_running:
            logger.warning("Beat detector already running")
            return False

        self.reset()
        if self.audio_capture is not None:
            self.audio_capture.audio_callback = self.on_audio_chunk
            if not self.audio_capture.start_capture():
                logger.error("Beat detector could not start audio capture")
                return False

        self.is_running = True
        logger.info("Beat detector started")
        return True

    def stop(self) -> None:
        """Release the audio tap and clear rolling-window state."""
        if self.audio_capture is not None:
            self.audio_capture.stop_capture()
        was_running = self.is_running
        self.is_running = False
        beats = self.state.beats
        self.reset()
        if was_running:
            logger.info(f"Beat detector stopped after {beats} beats")

    def reset(self) -> None:
        self.state = self._fresh_state()

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    @property
    def brightness(self) -> float:
        """Latest brightness modulation in [0, 1]."""
        return self.state.output

    @property
    def is_beat(self) -> bool:
        return self.state.phase is BeatPhase.HOLD

    # -------------------------------------------------------------------------
    # Audio input
    # -------------------------------------------------------------------------

    def on_audio_chunk(self, audio_chunk: np.ndarray, timestamp: float = 0.0) -> bool:
        """
        Audio capture callback: analyze one chunk of float samples.

        Returns:
            True if a beat fired on this chunk
        """
        rms, bass = self.measure(audio_chunk)
        fired = self.process_energy(rms, bass)

        now = time.monotonic()
        if now - self._last_status_log >= STATUS_LOG_INTERVAL:
            s = self.state
            logger.debug(
                f"Beat status: energy={s.smoothed_energy:.1f}, jump={s.jump_ratio:.3f}, "
                f"threshold={s.jump_threshold:.3f}, range={s.dynamic_range:.1f}, "
                f"bass={bass:.1f}, output={s.output:.2f}, beats={s.beats}"
            )
            self._last_status_log = now
        return fired

    def measure(self, audio_chunk: np.ndarray) -> Tuple[float, float]:
        """
        Compute (rms, bass energy) on the 8-bit scale.

        Bass energy is the sum of rFFT amplitudes inside the bass band.
        """
        samples = np.asarray(audio_chunk, dtype=np.float64).ravel()
        if samples.size == 0:
            return 0.0, 0.0

        scaled = samples * SAMPLE_SCALE
        rms = float(np.sqrt(np.mean(scaled * scaled)))

        spectrum = np.abs(np.fft.rfft(scaled)) * (2.0 / samples.size)
        freqs = np.fft.rfftfreq(samples.size, d=1.0 / self.sample_rate)
        band = (freqs >= self.config.bass_min_hz) & (freqs <= self.config.bass_max_hz)
        bass = float(spectrum[band].sum())
        return rms, bass

    def process_energy(self, rms: float, bass_energy: float = 0.0) -> bool:
        """
        Advance the state machine by one audio frame.

        Args:
            rms: Frame RMS on the 8-bit scale
            bass_energy: Bass band energy on the same scale

        Returns:
            True if a beat fired on this frame
        """
        cfg = self.config
        s = self.state
        s.frames += 1
        s.bass_energy = bass_energy

        if not s.initialized:
            s.smoothed_energy = rms
            s.previous_energy = rms
            s.initialized = True
        else:
            s.previous_energy = s.smoothed_energy
            s.smoothed_energy = lerp(s.smoothed_energy, rms, cfg.energy_smoothing)

        if s.previous_energy > cfg.min_previous_energy:
            s.jump_ratio = s.smoothed_energy / s.previous_energy
        else:
            s.jump_ratio = 1.0

        self._update_dynamics()

        ambient_target = cfg.base_brightness + clamp(
            s.smoothed_energy * cfg.ambient_gain, 0.0, cfg.ambient_max_boost
        )
        s.ambient_level = lerp(s.ambient_level, ambient_target, cfg.ambient_smoothing)

        fired = False
        if s.phase is BeatPhase.IDLE:
            rms_beat = s.jump_ratio > s.jump_threshold and s.smoothed_energy > cfg.min_energy
            bass_beat = bass_energy > cfg.bass_threshold and s.jump_ratio > cfg.bass_jump_floor
            if rms_beat or bass_beat:
                fired = True
                s.beats += 1
                self._enter(BeatPhase.HOLD)

        target = self._target_brightness()
        self._advance_phase()

        alpha = cfg.output_attack if target > s.output else cfg.output_decay
        s.output = clamp(lerp(s.output, target, alpha), 0.0, 1.0)
        return fired

    def _update_dynamics(self) -> None:
        cfg = self.config
        s = self.state
        s.energy_window.append(s.smoothed_energy)
        window_range = max(s.energy_window) - min(s.energy_window)
        s.dynamic_range = lerp(s.dynamic_range, window_range, cfg.dynamics_smoothing)
        factor = clamp(s.dynamic_range / cfg.dynamics_normalizer, 0.0, 1.0)
        s.jump_threshold = lerp(cfg.min_jump_threshold, cfg.max_jump_threshold, factor)

    def _target_brightness(self) -> float:
        cfg = self.config
        s = self.state
        if s.phase is BeatPhase.HOLD:
            return cfg.beat_brightness
        if s.phase is BeatPhase.TAIL:
            intensity = s.phase_frames_left / max(cfg.tail_frames, 1)
            return s.ambient_level + (1.0 - s.ambient_level) * intensity * cfg.tail_intensity
        return s.ambient_level

    def _enter(self, phase: BeatPhase) -> None:
        lengths = {
            BeatPhase.HOLD: self.config.hold_frames,
            BeatPhase.TAIL: self.config.tail_frames,
            BeatPhase.COOLDOWN: self.config.cooldown_frames,
            BeatPhase.IDLE: 0,
        }
        self.state.phase = phase
        self.state.phase_frames_left = lengths[phase]

    def _advance_phase(self) -> None:
        s = self.state
        if s.phase is BeatPhase.IDLE:
            return
        s.phase_frames_left -= 1
        next_phase = {
            BeatPhase.HOLD: BeatPhase.TAIL,
            BeatPhase.TAIL: BeatPhase.COOLDOWN,
            BeatPhase.COOLDOWN: BeatPhase.IDLE,
        }
        # Zero-length phases are skipped
        while s.phase is not BeatPhase.IDLE and s.phase_frames_left <= 0:
            self._enter(next_phase[s.phase])

    def get_statistics(self) -> dict:
        s = self.state
        return {
            "running": self.is_running,
            "frames": s.frames,
            "beats": s.beats,
            "phase": s.phase.value,
            "energy": round(s.smoothed_energy, 2),
            "jump_threshold": round(s.jump_threshold, 3),
            "dynamic_range": round(s.dynamic_range, 2),
            "brightness": round(s.output, 3),
        }
