"""
LED controller facade.

Single entry point used by the CLI and the HTTP API. Owns the device sink,
the session manager and the long-lived analysis components, and turns
user-level operations into sessions and packets:

- start_sync / stop_sync          screen (and audio) sync session
- start_effect / stop_effect      software effect session
- set_static_color                one-shot color session
- power, brightness, native effects, modes and wiring settings
"""

import logging
from dataclasses import asdict, dataclass, replace
from typing import Callable, Optional, Union

from ..consumer import packet_codec as codec
from ..consumer.beat_detector import BeatDetector
from ..consumer.ble_sink import DeviceSink
from ..consumer.color_analyzer import AnalyzerConfig, ColorAnalyzer
from ..consumer.color_smoother import ColorSmoother, SmootherConfig
from ..consumer.packet_codec import ColorTemperature, LedMode, NativeEffect, RgbPinOrder
from ..producer.effect_engine import EffectEngine
from ..producer.effects import DEFAULT_SPEED, LedEffect
from ..producer.frame_source import FrameSource
from ..producer.screen_sync import SyncConfig, SyncPipeline, SyncSession
from ..utils.color import RGB, clamp_rgb
from .session import SessionManager, StaticSession

logger = logging.getLogger(__name__)


@dataclass
class ControllerSettings:
    """Current user-facing settings, mirrored back through get_status()."""

    powered: bool = True
    brightness: int = 100
    effect_speed: float = DEFAULT_SPEED
    native_effect_speed: int = 50
    temperature: int = 50
    temperature_preset: int = int(ColorTemperature.NATURAL)
    grayscale: int = 100
    dynamic_sensitivity: int = 50
    audio_sync: bool = True
    mode: str = LedMode.RGB.value
    color: tuple = (255, 255, 255)
    native_effect: Optional[str] = None
    pin_order: int = int(RgbPinOrder.RGB)


class LedController:
    """High-level control of one LED controller."""

    def __init__(
        self,
        sink: DeviceSink,
        frame_source_factory: Optional[Callable[[], FrameSource]] = None,
        beat_detector: Optional[BeatDetector] = None,
        analyzer_config: Optional[AnalyzerConfig] = None,
        smoother_config: Optional[SmootherConfig] = None,
        sync_config: Optional[SyncConfig] = None,
        settings: Optional[ControllerSettings] = None,
    ):
        """
        Args:
            sink: Device sink all packets go to
            frame_source_factory: Builds a fresh frame source for each sync session
            beat_detector: Optional beat detector for audio-modulated sync
            analyzer_config: Analyzer tuning for sync sessions
            smoother_config: Smoother tuning for sync sessions and the color picker
            sync_config: Sync loop configuration
            settings: Initial settings
        """
        self.sink = sink
        self.frame_source_factory = frame_source_factory
        self.beat_detector = beat_detector
        self.analyzer_config = analyzer_config or AnalyzerConfig()
        self.smoother_config = smoother_config or SmootherConfig()
        self.sync_config = sync_config or SyncConfig()
        self.settings = settings or ControllerSettings()
        self.sync_config.audio_sync = self.settings.audio_sync

        self.sessions = SessionManager()
        self.effects = EffectEngine(sink, self.sessions)
        self._picker_smoother = ColorSmoother(self.smoother_config, initial_color=self.settings.color)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def start_sync(self) -> SyncSession:
        """Start screen sync, replacing any running session."""
        if self.frame_source_factory is None:
            raise RuntimeError("Screen sync requires a frame source")

        def build_pipeline(session_sink: DeviceSink) -> SyncPipeline:
            return SyncPipeline(
                sink=session_sink,
                frame_source=self.frame_source_factory(),
                analyzer=ColorAnalyzer(self.analyzer_config),
                smoother=ColorSmoother(self.smoother_config),
                beat_detector=self.beat_detector,
                config=replace(self.sync_config),
            )

        session = SyncSession(self.sink, build_pipeline)
        self.settings.mode = LedMode.RGB.value
        return self.sessions.activate(session)

    def stop_sync(self) -> bool:
        return self.sessions.stop(kind=SyncSession.kind)

    @property
    def is_syncing(self) -> bool:
        return self.sessions.is_active(SyncSession.kind)

    def start_effect(self, effect: Union[LedEffect, str], speed: Optional[float] = None, seed: Optional[int] = None):
        """Start a software effect, replacing any running session."""
        if speed is None:
            speed = self.settings.effect_speed
        else:
            self.settings.effect_speed = speed
        self.settings.mode = LedMode.RGB.value
        return self.effects.start_effect(effect, speed=speed, seed=seed)

    def stop_effect(self) -> bool:
        return self.effects.stop_effect()

    def stop_all(self) -> bool:
        """Stop whatever session is active."""
        return self.sessions.stop()

    def set_static_color(self, r: int, g: int, b: int, responsiveness: Optional[float] = None) -> RGB:
        """
        Show a static color, replacing any running session.

        Args:
            r, g, b: Target color (clamped to 0-255)
            responsiveness: If given, move toward the target through the
                color-picker smoother (1.0 = instant) instead of jumping

        Returns:
            The color actually written
        """
        target = clamp_rgb(r, g, b)
        if responsiveness is None:
            self._picker_smoother.reset(target)
            color = target
        else:
            color = self._picker_smoother.smooth_with_responsiveness(target, responsiveness)

        self.sessions.activate(StaticSession(self.sink, codec.rgb_color(*color), name="static-color"))
        self.settings.color = color
        self.settings.mode = LedMode.RGB.value
        return color

    def _mode_switch(self, packet: bytes, name: str) -> bool:
        """Stop any session, then send a one-shot mode command."""
        session = self.sessions.activate(StaticSession(self.sink, packet, name=name))
        return session.delivered

    # -------------------------------------------------------------------------
    # Parameter writes (do not replace the active session)
    # -------------------------------------------------------------------------

    def set_brightness(self, level: int) -> bool:
        level = max(0, min(100, int(level)))
        self.settings.brightness = level
        return self.sink.write(codec.brightness(level))

    def set_native_effect_speed(self, speed: int) -> bool:
        speed = max(0, min(100, int(speed)))
        self.settings.native_effect_speed = speed
        return self.sink.write(codec.effect_speed(speed))

    def set_effect_speed(self, speed: float) -> None:
        """Speed used by the next start_effect() call."""
        self.settings.effect_speed = max(0.0, float(speed))

    def set_dynamic_sensitivity(self, value: int) -> bool:
        value = max(0, min(100, int(value)))
        self.settings.dynamic_sensitivity = value
        return self.sink.write(codec.dynamic_sensitivity(value))

    def set_audio_sync(self, enabled: bool) -> None:
        """Enable or disable beat modulation; a running sync session keeps its setting until restarted."""
        self.settings.audio_sync = bool(enabled)
        self.sync_config.audio_sync = self.settings.audio_sync

    # -------------------------------------------------------------------------
    # Power and modes (stop the active session first)
    # -------------------------------------------------------------------------

    def power_on(self) -> bool:
        self.settings.powered = True
        return self.sink.write(codec.power_on())

    def power_off(self) -> bool:
        self.stop_all()
        self.settings.powered = False
        return self.sink.write(codec.power_off())

    def set_native_effect(self, effect: Union[NativeEffect, str]) -> bool:
        if isinstance(effect, str):
            effect = NativeEffect[effect.upper()]
        self.settings.mode = LedMode.EFFECT.value
        self.settings.native_effect = effect.name
        return self._mode_switch(codec.effect_mode(effect), name=f"native-{effect.name.lower()}")

    def set_grayscale(self, level: Optional[int] = None) -> bool:
        """Switch to grayscale mode, optionally setting the level (0-100)."""
        delivered = self._mode_switch(codec.grayscale_mode(), name="grayscale")
        if level is not None:
            self.settings.grayscale = max(0, min(100, int(level)))
            delivered = self.sink.write(codec.grayscale_color(self.settings.grayscale)) and delivered
        self.settings.mode = LedMode.GRAYSCALE.value
        return delivered

    def set_temperature_preset(self, preset: Union[ColorTemperature, int]) -> bool:
        self.settings.temperature_preset = max(0, min(10, int(preset)))
        self.settings.mode = LedMode.TEMPERATURE.value
        return self._mode_switch(codec.temperature_mode(self.settings.temperature_preset), name="temperature")

    def set_temperature_color(self, value: int) -> bool:
        self.settings.temperature = max(0, min(100, int(value)))
        self.settings.mode = LedMode.TEMPERATURE.value
        return self._mode_switch(codec.temperature_color(self.settings.temperature), name="temperature")

    def set_dynamic_mode(self, value: int) -> bool:
        self.settings.mode = LedMode.DYNAMIC.value
        return self._mode_switch(codec.dynamic_mode(value), name="dynamic")

    def set_pin_order(self, order: Union[RgbPinOrder, int]) -> bool:
        self.settings.pin_order = max(1, min(6, int(order)))
        return self.sink.write(codec.rgb_pin_order(self.settings.pin_order))

    def set_custom_pin_order(self, first: int, second: int, third: int) -> bool:
        return self.sink.write(codec.custom_pin_order(first, second, third))

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_status(self) -> dict:
        current = self.effects.current_effect
        status = {
            "connected": self.sink.is_connected,
            "active_session": self.sessions.active_kind,
            "syncing": self.is_syncing,
            "effect": current.effect_id if current is not None else None,
            "settings": asdict(self.settings),
        }
        if self.beat_detector is not None:
            status["audio"] = self.beat_detector.get_statistics()
        session = self.sessions.current
        if isinstance(session, SyncSession):
            status["sync"] = session.pipeline.get_statistics()
        return status

    def shutdown(self) -> None:
        self.stop_all()
        self.sink.close()
        logger.info("LED controller shut down")
