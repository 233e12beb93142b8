"""Base class and registry for software-driven LED effects"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence

import numpy as np

from ...utils.color import RGB, clamp_rgb, hsv_to_rgb, lerp_rgb

DEFAULT_SPEED = 0.1  # Multiplier on each effect's per-step delay (lower is faster)


class EffectCategory(Enum):
    NATURE = "Nature"
    AMBIENT = "Ambient"
    TEMPERATURE = "Temperature"
    PARTY = "Party"
    RELAXATION = "Relaxation"


class LedEffect(Enum):
    """Software effects: (id, display name, category)."""

    RAINBOW = ("rainbow", "Rainbow", EffectCategory.NATURE)
    AURORA = ("aurora", "Aurora Borealis", EffectCategory.NATURE)
    OCEAN = ("ocean", "Ocean Wave", EffectCategory.NATURE)
    SUNSET = ("sunset", "Sunset", EffectCategory.NATURE)
    FIRE = ("fire", "Fire", EffectCategory.NATURE)
    CANDLE = ("candle", "Candle", EffectCategory.NATURE)
    LIGHTNING = ("lightning", "Lightning Storm", EffectCategory.NATURE)

    BREATHE = ("breathe", "Breathe", EffectCategory.AMBIENT)
    HEARTBEAT = ("heartbeat", "Heartbeat", EffectCategory.AMBIENT)
    ORBIT = ("orbit", "Orbit", EffectCategory.AMBIENT)
    METEOR = ("meteor", "Meteor", EffectCategory.AMBIENT)
    PLASMA = ("plasma", "Plasma", EffectCategory.AMBIENT)
    NEON_PULSE = ("neon_pulse", "Neon Pulse", EffectCategory.AMBIENT)
    COLOR_WAVE = ("color_wave", "Color Wave", EffectCategory.AMBIENT)

    ICE = ("ice", "Ice", EffectCategory.TEMPERATURE)
    LAVA = ("lava", "Lava", EffectCategory.TEMPERATURE)

    POLICE = ("police", "Police", EffectCategory.PARTY)
    DISCO = ("disco", "Disco", EffectCategory.PARTY)
    STROBE = ("strobe", "Strobe", EffectCategory.PARTY)

    RELAXATION = ("relaxation", "Relaxation", EffectCategory.RELAXATION)

    def __init__(self, effect_id: str, display_name: str, category: EffectCategory):
        self.effect_id = effect_id
        self.display_name = display_name
        self.category = category

    @classmethod
    def from_id(cls, effect_id: str) -> "LedEffect":
        """Look up an effect by id (``"rainbow"``) or member name (``"RAINBOW"``)."""
        for effect in cls:
            if effect.effect_id == effect_id or effect.name == effect_id:
                return effect
        raise KeyError(f"Unknown effect: {effect_id}")


@dataclass(frozen=True)
class EffectStep:
    """One iteration of an effect: what to send, then how long to wait."""

    color: RGB
    delay: float  # Seconds


class BaseEffect(ABC):
    """Base class for all software effects.

    An effect is an infinite generator of EffectSteps. It holds no
    reference to the transport; the engine decides what to do with each
    step and when to stop iterating.
    """

    def __init__(self, speed: float = DEFAULT_SPEED, seed: Optional[int] = None, config: Optional[Dict[str, Any]] = None):
        """Initialize effect.

        Args:
            speed: Delay multiplier (lower is faster)
            seed: Seed for the effect's random generator
            config: Effect-specific configuration
        """
        self.speed = max(0.0, float(speed))
        self.seed = seed
        self.config = config or {}
        self.rng = np.random.default_rng(seed)
        self.step_count = 0
        self.initialize()

    def initialize(self):
        """Initialize effect-specific parameters."""

    @abstractmethod
    def generate(self) -> Iterator[EffectStep]:
        """Yield steps forever."""

    def steps(self) -> Iterator[EffectStep]:
        for step in self.generate():
            self.step_count += 1
            yield step

    def reset(self):
        """Restart the effect from its first step with the original seed."""
        self.rng = np.random.default_rng(self.seed)
        self.step_count = 0
        self.initialize()

    # -------------------------------------------------------------------------
    # Helpers for subclasses
    # -------------------------------------------------------------------------

    def delay(self, factor_ms: float, floor_ms: float = 0.0) -> float:
        """Per-step delay in seconds: ``max(speed * factor_ms, floor_ms)``."""
        return max(self.speed * factor_ms, floor_ms) / 1000.0

    def random_delay(self, low_ms: float, high_ms: float, floor_ms: float = 0.0) -> float:
        return self.delay(self.rng.uniform(low_ms, high_ms), floor_ms)

    def step(self, color, delay: float) -> EffectStep:
        return EffectStep(clamp_rgb(*color), delay)

    def hsv_step(self, hue: float, saturation: float, value: float, delay: float) -> EffectStep:
        return EffectStep(hsv_to_rgb(hue, saturation, value), delay)

    def crossfade(self, palette: Sequence[RGB], steps: int, factor_ms: float, floor_ms: float) -> Iterator[EffectStep]:
        """Cycle through ``palette`` forever, blending each pair over ``steps`` steps."""
        index = 0
        while True:
            current = palette[index]
            following = palette[(index + 1) % len(palette)]
            for i in range(steps + 1):
                yield EffectStep(lerp_rgb(current, following, i / steps), self.delay(factor_ms, floor_ms))
            index = (index + 1) % len(palette)


class EffectRegistry:
    """Registry for available effects."""

    _effects: Dict[LedEffect, Dict[str, Any]] = {}

    @classmethod
    def register(cls, effect: LedEffect, effect_class: type, description: str, default_config: Optional[Dict] = None):
        """Register an effect."""
        cls._effects[effect] = {
            "class": effect_class,
            "description": description,
            "config": default_config or {},
        }

    @classmethod
    def get_effect(cls, effect: LedEffect) -> Optional[Dict[str, Any]]:
        """Get effect info."""
        return cls._effects.get(effect)

    @classmethod
    def list_effects(cls) -> List[Dict[str, Any]]:
        """List all registered effects in declaration order."""
        return [
            {
                "id": effect.effect_id,
                "name": effect.display_name,
                "category": effect.category.value,
                "description": cls._effects[effect]["description"],
                "icon": cls._get_icon_for_category(effect.category),
            }
            for effect in LedEffect
            if effect in cls._effects
        ]

    @classmethod
    def by_category(cls) -> Dict[str, List[Dict[str, Any]]]:
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for info in cls.list_effects():
            grouped.setdefault(info["category"], []).append(info)
        return grouped

    @classmethod
    def create_effect(
        cls,
        effect: LedEffect,
        speed: float = DEFAULT_SPEED,
        seed: Optional[int] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> BaseEffect:
        """Create an effect instance."""
        info = cls._effects.get(effect)
        if info is None:
            raise KeyError(f"Effect not registered: {effect.effect_id}")

        merged = dict(info["config"])
        if config:
            merged.update(config)
        return info["class"](speed=speed, seed=seed, config=merged)

    @staticmethod
    def _get_icon_for_category(category: EffectCategory) -> str:
        """Get emoji icon for category."""
        icons = {
            EffectCategory.NATURE: "🌿",
            EffectCategory.AMBIENT: "✨",
            EffectCategory.TEMPERATURE: "🌡️",
            EffectCategory.PARTY: "🎉",
            EffectCategory.RELAXATION: "🧘",
        }
        return icons.get(category, "🎭")
