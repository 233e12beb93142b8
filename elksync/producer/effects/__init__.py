"""Software LED effects"""

from .ambient_effects import Breathe, ColorWave, Heartbeat, Meteor, NeonPulse, Orbit, Plasma, Relaxation
from .base_effect import DEFAULT_SPEED, BaseEffect, EffectCategory, EffectRegistry, EffectStep, LedEffect
from .nature_effects import Aurora, Candle, Fire, Lightning, Ocean, Rainbow, Sunset
from .party_effects import Disco, Ice, Lava, Police, Strobe

__all__ = [
    "BaseEffect",
    "DEFAULT_SPEED",
    "EffectCategory",
    "EffectRegistry",
    "EffectStep",
    "LedEffect",
    # Nature
    "Rainbow",
    "Aurora",
    "Ocean",
    "Sunset",
    "Fire",
    "Candle",
    "Lightning",
    # Ambient
    "Breathe",
    "Heartbeat",
    "Orbit",
    "Meteor",
    "Plasma",
    "NeonPulse",
    "ColorWave",
    # Temperature
    "Ice",
    "Lava",
    # Party
    "Police",
    "Disco",
    "Strobe",
    # Relaxation
    "Relaxation",
]
