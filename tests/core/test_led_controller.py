"""
Tests for the LedController facade.
"""

import pytest

from conftest import ScriptedFrameSource, solid
from elksync.consumer import packet_codec as codec
from elksync.consumer.packet_codec import NativeEffect
from elksync.core.led_controller import ControllerSettings, LedController
from elksync.producer.effects import LedEffect
from elksync.producer.screen_sync import SyncConfig


@pytest.fixture
def controller(sink):
    led = LedController(sink)
    yield led
    led.stop_all()


@pytest.fixture
def sync_controller(sink):
    led = LedController(
        sink,
        frame_source_factory=lambda: ScriptedFrameSource([solid((0, 255, 0))]),
        sync_config=SyncConfig(target_fps=200),
    )
    yield led
    led.stop_all()


# =============================================================================
# Sessions
# =============================================================================


class TestSessions:
    """Test that user operations map onto exclusive sessions."""

    def test_static_color(self, controller, sink):
        color = controller.set_static_color(300, -5, 10)

        assert color == (255, 0, 10)
        assert sink.packets == [codec.rgb_color(255, 0, 10)]
        assert controller.sessions.active_kind == "static"
        assert controller.settings.color == (255, 0, 10)

    def test_static_color_with_responsiveness(self, controller):
        """The color picker eases toward the new color."""
        controller.set_static_color(255, 0, 0)

        color = controller.set_static_color(0, 0, 255, responsiveness=0.3)

        assert color not in ((255, 0, 0), (0, 0, 255))

    def test_sync_requires_frame_source(self, controller):
        with pytest.raises(RuntimeError):
            controller.start_sync()

    def test_sync_session(self, sync_controller, sink):
        sync_controller.start_sync()

        assert sink.wait_for_packets(3)
        assert sync_controller.is_syncing
        assert sink.snapshot()[0] == codec.rgb_color(0, 255, 0)
        assert sync_controller.get_status()["sync"]["frames_processed"] >= 1

    def test_effect_replaces_sync(self, sync_controller, sink):
        """Only one session owns the device at a time."""
        sync_controller.start_sync()
        assert sink.wait_for_packets(2)

        sync_controller.start_effect(LedEffect.STROBE, speed=0.0)

        assert not sync_controller.is_syncing
        assert sync_controller.sessions.active_kind == "effect"
        assert sync_controller.stop_sync() is False
        assert sync_controller.stop_effect() is True

    def test_effect_speed_remembered(self, controller):
        controller.start_effect("rainbow", speed=0.5)
        controller.stop_effect()

        session = controller.start_effect("rainbow")

        assert session.effect.speed == 0.5
        assert controller.settings.effect_speed == 0.5

    def test_static_color_stops_effect(self, controller, sink):
        controller.start_effect(LedEffect.STROBE, speed=0.0)
        assert sink.wait_for_packets(2)

        controller.set_static_color(1, 2, 3)

        assert controller.effects.current_effect is None
        assert sink.snapshot()[-1] == codec.rgb_color(1, 2, 3)


# =============================================================================
# Parameters and modes
# =============================================================================


class TestParameters:
    """Test parameter writes and mode switches."""

    def test_brightness_is_clamped(self, controller, sink):
        controller.set_brightness(150)

        assert sink.packets == [codec.brightness(100)]
        assert controller.settings.brightness == 100

    def test_brightness_keeps_running_effect(self, controller, sink):
        controller.start_effect(LedEffect.RAINBOW, speed=0.0)

        controller.set_brightness(40)

        assert controller.effects.is_running
        assert codec.brightness(40) in sink.snapshot()

    def test_user_brightness_survives_candle(self, controller, sink):
        """After a flickering effect the device is still at the user's level."""
        controller.set_brightness(100)
        controller.start_effect(LedEffect.CANDLE, speed=0.0, seed=1)
        assert sink.wait_for_packets(6)
        controller.stop_effect()
        controller.set_static_color(0, 255, 0)

        brightness_packets = [p for p in sink.snapshot() if p[2] == 0x01]
        assert brightness_packets[-1] == codec.brightness(controller.settings.brightness)
        assert controller.get_status()["settings"]["brightness"] == 100

    def test_power_off_stops_sessions(self, controller, sink):
        controller.start_effect(LedEffect.STROBE, speed=0.0)

        assert controller.power_off() is True

        assert controller.sessions.current is None
        assert sink.snapshot()[-1] == codec.power_off()
        assert controller.settings.powered is False

    def test_power_on(self, controller, sink):
        controller.power_on()

        assert sink.packets == [codec.power_on()]

    def test_native_effect_by_name(self, controller, sink):
        assert controller.set_native_effect("jump_rgb") is True

        assert sink.packets == [codec.effect_mode(NativeEffect.JUMP_RGB)]
        assert controller.settings.mode == "effect"
        assert controller.settings.native_effect == "JUMP_RGB"

    def test_unknown_native_effect(self, controller):
        with pytest.raises(KeyError):
            controller.set_native_effect("sparkle_party")

    def test_native_effect_speed(self, controller, sink):
        controller.set_native_effect_speed(-10)

        assert sink.packets == [codec.effect_speed(0)]

    def test_grayscale(self, controller, sink):
        controller.set_grayscale(50)

        assert sink.packets == [codec.grayscale_mode(), codec.grayscale_color(50)]
        assert controller.settings.mode == "grayscale"

    def test_temperature(self, controller, sink):
        controller.set_temperature_preset(12)
        controller.set_temperature_color(30)

        assert sink.packets == [codec.temperature_mode(10), codec.temperature_color(30)]
        assert controller.settings.temperature_preset == 10
        assert controller.settings.mode == "temperature"

    def test_dynamic(self, controller, sink):
        controller.set_dynamic_mode(5)
        controller.set_dynamic_sensitivity(70)

        assert sink.packets == [codec.dynamic_mode(5), codec.dynamic_sensitivity(70)]

    def test_pin_order(self, controller, sink):
        controller.set_pin_order(3)
        controller.set_custom_pin_order(3, 2, 1)

        assert sink.packets == [codec.rgb_pin_order(3), codec.custom_pin_order(3, 2, 1)]

    def test_audio_sync_toggle(self, controller):
        controller.set_audio_sync(False)

        assert controller.sync_config.audio_sync is False
        assert controller.get_status()["settings"]["audio_sync"] is False

    def test_audio_sync_applies_to_next_session(self, sync_controller, sink):
        """Each sync session gets its own copy of the sync settings."""
        session = sync_controller.start_sync()
        assert sink.wait_for_packets(1)

        sync_controller.set_audio_sync(False)

        assert session.pipeline.config.audio_sync is True
        assert sync_controller.start_sync().pipeline.config.audio_sync is False

    def test_writes_skipped_when_disconnected(self, sink):
        """Transport failure is reported, not raised."""
        sink.connected = False
        led = LedController(sink)

        assert led.set_brightness(50) is False
        assert led.power_on() is False


class TestStatus:
    def test_status_fields(self, controller):
        status = controller.get_status()

        assert status["connected"] is True
        assert status["active_session"] is None
        assert status["syncing"] is False
        assert status["effect"] is None
        assert status["settings"]["brightness"] == 100

    def test_initial_settings(self, sink):
        led = LedController(sink, settings=ControllerSettings(brightness=40, audio_sync=False))

        assert led.get_status()["settings"]["brightness"] == 40
        assert led.sync_config.audio_sync is False

    def test_shutdown_closes_sink(self, controller, sink):
        controller.start_effect(LedEffect.RAINBOW, speed=0.0)

        controller.shutdown()

        assert sink.closed
        assert controller.sessions.current is None
