"""Party and temperature effects: police, disco, strobe, ice, lava"""

import math

from .base_effect import BaseEffect, EffectRegistry, EffectStep, LedEffect

DISCO_COLORS = [
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
    (255, 0, 255),
    (0, 255, 255),
    (255, 128, 0),
    (128, 0, 255),
]


class Police(BaseEffect):
    """Triple red flashes, then triple blue flashes."""

    def _flashes(self, bright, dim):
        for _ in range(3):
            yield EffectStep(bright, self.delay(80, 20))
            yield EffectStep(dim, self.delay(60, 20))
        yield EffectStep((0, 0, 0), self.delay(50))

    def generate(self):
        while True:
            yield from self._flashes((255, 0, 0), (50, 0, 0))
            yield from self._flashes((0, 0, 255), (0, 0, 50))


class Disco(BaseEffect):
    """Random saturated colors at a random tempo."""

    def initialize(self):
        self.colors = [tuple(c) for c in self.config.get("colors", DISCO_COLORS)]

    def generate(self):
        while True:
            color = self.colors[int(self.rng.integers(len(self.colors)))]
            yield EffectStep(color, self.random_delay(100, 300, 50))


class Strobe(BaseEffect):
    """White strobe with a short duty cycle."""

    def generate(self):
        while True:
            yield EffectStep((255, 255, 255), self.delay(30, 10))
            yield EffectStep((0, 0, 0), self.delay(70, 20))


class Ice(BaseEffect):
    """Cold blue shimmer with occasional sparkles."""

    def generate(self):
        while True:
            shimmer = self.rng.uniform(0.8, 1.0)
            sparkle = 1.3 if self.rng.random() > 0.95 else 1.0
            color = (180 * shimmer * sparkle, 220 * shimmer * sparkle, 255 * shimmer)
            yield self.step(color, self.random_delay(50, 150, 10))


class Lava(BaseEffect):
    """Slow molten flow with random bubbles."""

    def generate(self):
        phase = 0.0
        while True:
            phase += 0.08
            flow = (math.sin(phase) + 1) / 2
            bubble = self.rng.uniform(0.2, 0.5) if self.rng.random() > 0.9 else 0.0
            r = 200 + 55 * flow + bubble * 55
            g = min(150.0, 50 + 80 * flow + bubble * 30)
            b = bubble * 20
            yield self.step((r, g, b), self.delay(80, 10))


EffectRegistry.register(LedEffect.POLICE, Police, "Classic police lights")
EffectRegistry.register(LedEffect.DISCO, Disco, "Random party colors", {"colors": DISCO_COLORS})
EffectRegistry.register(LedEffect.STROBE, Strobe, "Classic strobe effect")
EffectRegistry.register(LedEffect.ICE, Ice, "Cold blue shimmer")
EffectRegistry.register(LedEffect.LAVA, Lava, "Molten rock effect")
