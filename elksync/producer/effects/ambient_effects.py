"""Ambient and relaxation effects"""

import math

from ...utils.color import lerp_rgb, scale_rgb
from .base_effect import BaseEffect, EffectRegistry, EffectStep, LedEffect

NEON_COLORS = [
    (255, 0, 255),  # Magenta
    (0, 255, 255),  # Cyan
    (255, 0, 100),  # Hot pink
    (100, 0, 255),  # Purple
]

RELAX_COLORS = [
    (100, 150, 200),  # Calm blue
    (100, 180, 150),  # Sage green
    (150, 130, 180),  # Lavender
    (180, 150, 130),  # Warm beige
]


class Breathe(BaseEffect):
    """Slow inhale/exhale with a small hue shift every breath."""

    def initialize(self):
        self.start_hue = self.config.get("start_hue", 200.0)
        self.hue_shift = self.config.get("hue_shift", 15.0)
        self.saturation = self.config.get("saturation", 0.7)

    def generate(self):
        hue = self.start_hue
        while True:
            for level in range(0, 101, 2):
                yield self.hsv_step(hue, self.saturation, level / 100, self.delay(40, 5))
            # Hold at the top of the breath
            yield self.hsv_step(hue, self.saturation, 1.0, self.delay(300))
            for level in range(100, -1, -2):
                yield self.hsv_step(hue, self.saturation, level / 100, self.delay(40, 5))
            yield self.hsv_step(hue, self.saturation, 0.0, self.delay(500))
            hue = (hue + self.hue_shift) % 360.0


class Heartbeat(BaseEffect):
    """Lub-dub double pulse in red."""

    def initialize(self):
        self.color = tuple(self.config.get("color", (255, 20, 40)))

    def _ramp(self, levels):
        for level in levels:
            yield EffectStep(scale_rgb(self.color, level / 100), self.delay(15, 5))

    def generate(self):
        while True:
            yield from self._ramp(range(0, 101, 10))
            yield from self._ramp(range(100, 29, -10))
            yield EffectStep(scale_rgb(self.color, 0.3), self.delay(100))
            yield from self._ramp(range(30, 71, 10))
            yield from self._ramp(range(70, 4, -10))
            yield EffectStep((10, 0, 5), self.delay(700))


class Orbit(BaseEffect):
    """Hue rotation with a sine brightness swell."""

    def generate(self):
        angle = 0.0
        while True:
            angle = (angle + 2.0) % 360.0
            brightness = (math.sin(math.radians(angle * 2)) + 1) / 2 * 0.7 + 0.3
            yield self.hsv_step(angle, 1.0, brightness, self.delay(50, 10))


class Meteor(BaseEffect):
    """Approaching star, white flash, then a tail fading through orange to red."""

    def generate(self):
        while True:
            for level in range(0, 101, 5):
                yield EffectStep(scale_rgb((255, 200, 150), level / 100), self.delay(30, 5))
            yield EffectStep((255, 255, 255), self.delay(50))
            for level in range(100, -1, -3):
                brightness = level / 100
                hue = 30 + (100 - level) * 0.3
                yield self.hsv_step(hue, 1.0 - brightness * 0.5, brightness, self.delay(20, 5))
            yield EffectStep((0, 0, 0), self.random_delay(500, 2000, 200))


class Plasma(BaseEffect):
    """Three detuned sine waves mixed into a sci-fi glow."""

    def generate(self):
        phase = 0.0
        while True:
            phase += 0.1
            r = (math.sin(phase) + 1) / 2 * 150 + 50
            g = (math.sin(phase * 1.5 + 1) + 1) / 2 * 80
            b = (math.cos(phase * 0.7) + 1) / 2 * 150 + 100
            yield self.step((r, g, b), self.delay(50, 10))


class NeonPulse(BaseEffect):
    """Fast rise, short hold and slow fade through neon colors."""

    def initialize(self):
        self.colors = [tuple(c) for c in self.config.get("colors", NEON_COLORS)]

    def generate(self):
        index = 0
        while True:
            color = self.colors[index]
            for level in range(30, 101, 5):
                yield EffectStep(scale_rgb(color, level / 100), self.delay(20, 5))
            yield EffectStep(color, self.delay(200))
            for level in range(100, 29, -3):
                yield EffectStep(scale_rgb(color, level / 100), self.delay(25, 5))
            index = (index + 1) % len(self.colors)


class ColorWave(BaseEffect):
    """Hue sweep with gently modulated saturation and value."""

    def generate(self):
        hue = 0.0
        while True:
            hue = (hue + 0.3) % 360.0
            saturation = 0.8 + math.sin(hue * 0.1) * 0.2
            value = 0.9 + math.sin(hue * 0.05) * 0.1
            yield self.hsv_step(hue, saturation, value, self.delay(60, 10))


class Relaxation(BaseEffect):
    """Very slow pastel transitions with a subtle breath."""

    def initialize(self):
        self.colors = [tuple(c) for c in self.config.get("colors", RELAX_COLORS)]
        self.transition_steps = self.config.get("transition_steps", 100)

    def generate(self):
        index = 0
        steps = self.transition_steps
        while True:
            current = self.colors[index]
            following = self.colors[(index + 1) % len(self.colors)]
            for i in range(steps + 1):
                breath = math.sin(i * 0.1) * 0.1 + 0.9
                yield EffectStep(scale_rgb(lerp_rgb(current, following, i / steps), breath), self.delay(100, 30))
            index = (index + 1) % len(self.colors)


EffectRegistry.register(LedEffect.BREATHE, Breathe, "Smooth pulsing with color shift", {"start_hue": 200.0})
EffectRegistry.register(LedEffect.HEARTBEAT, Heartbeat, "Realistic double-beat pattern")
EffectRegistry.register(LedEffect.ORBIT, Orbit, "Color cycling with pulsing brightness")
EffectRegistry.register(LedEffect.METEOR, Meteor, "Shooting star effect")
EffectRegistry.register(LedEffect.PLASMA, Plasma, "Sci-fi energy effect")
EffectRegistry.register(LedEffect.NEON_PULSE, NeonPulse, "Cyberpunk-style neon glow", {"colors": NEON_COLORS})
EffectRegistry.register(LedEffect.COLOR_WAVE, ColorWave, "Smooth color transitions")
EffectRegistry.register(
    LedEffect.RELAXATION,
    Relaxation,
    "Calm, slow color breathing",
    {"colors": RELAX_COLORS, "transition_steps": 100},
)
