"""
Effect engine: runs one software effect at a time against the device.

Each effect is an infinite generator of EffectSteps. The engine pulls a
step, writes it, then waits the step's delay on the session's stop event
so cancellation interrupts the wait instead of sleeping it out.
"""

import logging
import threading
from typing import Optional, Union

from ..consumer import packet_codec as codec
from ..consumer.ble_sink import DeviceSink
from ..core.session import Session, SessionManager
from .effects import DEFAULT_SPEED, BaseEffect, EffectRegistry, LedEffect

logger = logging.getLogger(__name__)


class EffectSession(Session):
    """Session that plays one effect until stopped."""

    kind = "effect"

    def __init__(self, sink: DeviceSink, effect: BaseEffect, effect_id: Optional[LedEffect] = None):
        name = effect_id.effect_id if effect_id is not None else type(effect).__name__
        super().__init__(sink, name=name)
        self.effect = effect
        self.effect_id = effect_id

    def run(self, stop_event: threading.Event) -> None:
        for step in self.effect.steps():
            if stop_event.is_set():
                break
            self.sink.write(codec.rgb_color(*step.color))
            if stop_event.wait(step.delay):
                break


class EffectEngine:
    """Starts, replaces and stops software effects."""

    def __init__(self, sink: DeviceSink, sessions: Optional[SessionManager] = None):
        self.sink = sink
        self.sessions = sessions or SessionManager()

    def start_effect(
        self,
        effect: Union[LedEffect, str, BaseEffect],
        speed: float = DEFAULT_SPEED,
        seed: Optional[int] = None,
        config: Optional[dict] = None,
    ) -> EffectSession:
        """
        Start an effect, stopping whatever session currently owns the device.

        Args:
            effect: LedEffect, effect id string, or a ready-made effect instance
            speed: Delay multiplier (ignored for instances)
            seed: Random seed for effects that use randomness
            config: Overrides for the effect's default config

        Returns:
            The new, running session
        """
        if isinstance(effect, BaseEffect):
            session = EffectSession(self.sink, effect)
        else:
            if isinstance(effect, str):
                effect = LedEffect.from_id(effect)
            instance = EffectRegistry.create_effect(effect, speed=speed, seed=seed, config=config)
            session = EffectSession(self.sink, instance, effect)

        logger.info(f"Starting effect '{session.name}' (speed={speed})")
        return self.sessions.activate(session)

    def stop_effect(self) -> bool:
        """Stop the running effect. Returns True if one was running."""
        return self.sessions.stop(kind=EffectSession.kind)

    @property
    def is_running(self) -> bool:
        return self.sessions.is_active(EffectSession.kind)

    @property
    def current_effect(self) -> Optional[LedEffect]:
        session = self.sessions.current
        if isinstance(session, EffectSession) and session.is_running:
            return session.effect_id
        return None
