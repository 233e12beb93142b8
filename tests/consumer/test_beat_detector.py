"""
Unit tests for the adaptive beat detector.

Most tests drive process_energy() directly with synthetic RMS sequences on
the 8-bit scale; a few exercise measure() with generated sine chunks.
"""

from unittest.mock import MagicMock

import numpy as np
import pytest

from elksync.consumer.beat_detector import BeatDetector, BeatPhase


def feed(detector: BeatDetector, levels, bass: float = 0.0):
    """Feed a sequence of RMS levels; returns how many beats fired."""
    return sum(1 for level in levels if detector.process_energy(level, bass))


def sine(freq: float, amplitude: float = 1.0, samples: int = 2048, rate: int = 44100) -> np.ndarray:
    t = np.arange(samples) / rate
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


# =============================================================================
# Energy measurement
# =============================================================================


class TestMeasure:
    """Test RMS and bass energy extraction."""

    def test_full_scale_sine_rms(self):
        """A full-scale sine has an RMS of about 128 / sqrt(2)."""
        rms, _ = BeatDetector().measure(sine(440.0))

        assert rms == pytest.approx(128.0 / np.sqrt(2), rel=0.01)

    def test_bass_band_energy(self):
        """Energy at 60 Hz lands in the bass band; 2 kHz does not."""
        detector = BeatDetector()

        _, low = detector.measure(sine(60.0))
        _, high = detector.measure(sine(2000.0))

        assert low > 40.0
        assert high < 40.0

    def test_empty_chunk(self):
        assert BeatDetector().measure(np.zeros(0, dtype=np.float32)) == (0.0, 0.0)


# =============================================================================
# State machine
# =============================================================================


class TestBeatStateMachine:
    """Test beat triggering and the hold/tail/cooldown cycle."""

    def test_silence_stays_at_base_brightness(self):
        """Silence never fires and sits on the ambient floor."""
        detector = BeatDetector()

        assert feed(detector, [0.0] * 50) == 0
        assert detector.brightness == pytest.approx(0.12)

    def test_first_frame_seeds_energy(self):
        """The first frame never produces a jump."""
        detector = BeatDetector()

        assert detector.process_energy(80.0) is False
        assert detector.state.jump_ratio == 1.0
        assert detector.state.smoothed_energy == 80.0

    def test_sustained_spike_fires_once(self):
        """A step up in loudness is one beat, not one per frame."""
        detector = BeatDetector()
        feed(detector, [20.0] * 30)

        assert feed(detector, [60.0] * 20) == 1

    def test_beat_drives_brightness_up(self):
        detector = BeatDetector()
        feed(detector, [20.0] * 30)

        assert detector.process_energy(60.0) is True
        assert detector.is_beat
        assert detector.brightness > 0.9

    def test_brightness_decays_after_beat(self):
        detector = BeatDetector()
        feed(detector, [20.0] * 30)
        feed(detector, [60.0] * 60)

        assert detector.state.phase is BeatPhase.IDLE
        assert 0.12 <= detector.brightness < 0.6

    def test_no_retrigger_during_tail(self):
        """A second transient inside the tail is ignored."""
        detector = BeatDetector()
        feed(detector, [20.0] * 10)

        assert feed(detector, [60.0]) == 1
        feed(detector, [20.0] * 4)
        assert detector.state.phase is BeatPhase.TAIL
        assert feed(detector, [100.0]) == 0

    def test_retrigger_after_cooldown(self):
        """Once back in idle, a new transient fires again."""
        detector = BeatDetector()
        feed(detector, [20.0] * 10)
        feed(detector, [60.0])
        feed(detector, [20.0] * 25)

        assert detector.state.phase is BeatPhase.IDLE
        assert feed(detector, [100.0]) == 1
        assert detector.state.beats == 2

    def test_phase_lengths(self):
        """Hold lasts 3 frames, tail 8, cooldown 3."""
        detector = BeatDetector()
        feed(detector, [20.0] * 10)
        feed(detector, [60.0])

        phases = []
        for _ in range(14):
            phases.append(detector.state.phase)
            detector.process_energy(20.0)

        assert phases[:2] == [BeatPhase.HOLD] * 2
        assert phases[2:10] == [BeatPhase.TAIL] * 8
        assert phases[10:13] == [BeatPhase.COOLDOWN] * 3
        assert phases[13] is BeatPhase.IDLE

    def test_quiet_jump_ignored(self):
        """A large relative jump at very low energy is not a beat."""
        detector = BeatDetector()

        assert feed(detector, [5.0, 10.0]) == 0

    def test_low_previous_energy_gives_unit_ratio(self):
        detector = BeatDetector()
        feed(detector, [0.0, 10.0])

        assert detector.state.jump_ratio == 1.0

    def test_bass_trigger(self):
        """Strong bass fires on a modest jump that RMS alone would ignore."""
        with_bass = BeatDetector()
        without_bass = BeatDetector()
        for detector in (with_bass, without_bass):
            feed(detector, [20.0] * 10)

        assert feed(with_bass, [22.0], bass=50.0) == 1
        assert feed(without_bass, [22.0], bass=0.0) == 0

    def test_threshold_adapts_to_dynamic_range(self):
        """Highly dynamic input raises the jump threshold."""
        detector = BeatDetector()
        feed(detector, [20.0] * 10)
        calm_threshold = detector.state.jump_threshold

        feed(detector, [5.0, 120.0] * 60)

        assert detector.state.jump_threshold > calm_threshold
        assert detector.state.jump_threshold <= 1.25


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Test start/stop wiring to the audio capture."""

    def make_capture(self, starts: bool = True) -> MagicMock:
        capture = MagicMock()
        capture.config.sample_rate = 48000
        capture.start_capture.return_value = starts
        return capture

    def test_start_attaches_callback(self):
        capture = self.make_capture()
        detector = BeatDetector(audio_capture=capture)

        assert detector.start() is True
        assert detector.is_running
        assert detector.sample_rate == 48000
        assert capture.audio_callback == detector.on_audio_chunk
        capture.start_capture.assert_called_once()

    def test_start_fails_when_capture_fails(self):
        detector = BeatDetector(audio_capture=self.make_capture(starts=False))

        assert detector.start() is False
        assert not detector.is_running

    def test_stop_releases_capture_and_resets(self):
        capture = self.make_capture()
        detector = BeatDetector(audio_capture=capture)
        detector.start()
        feed(detector, [20.0] * 10 + [60.0])

        detector.stop()

        capture.stop_capture.assert_called_once()
        assert not detector.is_running
        assert detector.state.frames == 0
        assert detector.brightness == pytest.approx(0.12)

    def test_audio_chunks_fire_beats(self):
        """Raw sample chunks go through measure() and the state machine."""
        detector = BeatDetector()
        quiet = sine(440.0, amplitude=0.15)
        loud = sine(440.0, amplitude=0.6)

        fired = [detector.on_audio_chunk(quiet) for _ in range(10)]
        fired.append(detector.on_audio_chunk(loud))

        assert fired.count(True) == 1
        assert fired[-1] is True
