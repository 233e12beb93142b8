"""Nature-inspired effects: rainbow, aurora, ocean, sunset, fire, candle, lightning"""

import math

from ...utils.color import lerp_rgb, scale_rgb
from .base_effect import BaseEffect, EffectRegistry, EffectStep, LedEffect

AURORA_PALETTE = [
    (0, 255, 100),  # Green
    (0, 200, 150),  # Teal
    (50, 150, 255),  # Light blue
    (100, 100, 255),  # Purple blue
    (150, 50, 200),  # Purple
    (50, 200, 100),  # Mint
]

# Golden -> purple -> golden, so the loop has no seam
SUNSET_PALETTE = [
    (255, 200, 50),
    (255, 150, 50),
    (255, 100, 80),
    (255, 80, 100),
    (200, 80, 150),
    (150, 80, 180),
    (200, 80, 150),
    (255, 80, 100),
    (255, 100, 80),
    (255, 150, 50),
]


class Rainbow(BaseEffect):
    """Smooth rainbow hue cycling."""

    def initialize(self):
        self.hue_step = self.config.get("hue_step", 0.5)  # Degrees per step

    def generate(self):
        hue = 0.0
        while True:
            hue = (hue + self.hue_step) % 360.0
            yield self.hsv_step(hue, 1.0, 1.0, self.delay(100, 10))


class Aurora(BaseEffect):
    """Northern lights: greens, blues and purples with a red shimmer."""

    def initialize(self):
        self.palette = [tuple(c) for c in self.config.get("palette", AURORA_PALETTE)]
        self.transition_steps = self.config.get("transition_steps", 50)

    def generate(self):
        index = 0
        steps = self.transition_steps
        while True:
            current = self.palette[index]
            following = self.palette[(index + 1) % len(self.palette)]
            for i in range(steps + 1):
                r, g, b = lerp_rgb(current, following, i / steps)
                shimmer = int(math.sin(i * 0.3) * 20)
                yield self.step((r + shimmer, g, b), self.delay(80, 10))
            index = (index + 1) % len(self.palette)


class Ocean(BaseEffect):
    """Deep-sea to surface blue-green wave."""

    def generate(self):
        phase = 0.0
        while True:
            phase += 0.05
            wave = (math.sin(phase) + 1) / 2
            yield self.step((wave * 30, 100 + wave * 100, 150 + wave * 105), self.delay(100, 10))


class Sunset(BaseEffect):
    """Golden to purple and back."""

    def initialize(self):
        self.palette = [tuple(c) for c in self.config.get("palette", SUNSET_PALETTE)]

    def generate(self):
        yield from self.crossfade(self.palette, 40, 100, 10)


class Fire(BaseEffect):
    """Flickering flames."""

    def generate(self):
        while True:
            intensity = self.rng.uniform(0.6, 1.0)
            flicker = self.rng.uniform(0.8, 1.0)
            color = (
                255 * intensity * flicker,
                self.rng.integers(40, 120) * intensity,
                self.rng.integers(0, 20) * intensity,
            )
            yield self.step(color, self.random_delay(40, 120, 10))


class Candle(BaseEffect):
    """Warm flame; the flicker scales the color, the device brightness is left alone."""

    def initialize(self):
        self.color = tuple(self.config.get("color", (255, 150, 15)))

    def generate(self):
        base = 0.9
        while True:
            level = base * self.rng.uniform(0.95, 1.0)
            yield self.step(scale_rgb(self.color, level), self.random_delay(80, 150, 20))
            base = min(1.0, max(0.7, base + self.rng.uniform(-0.1, 0.1)))


class Lightning(BaseEffect):
    """Dark stormy sky with bursts of strikes and a purple afterglow."""

    def generate(self):
        while True:
            calm = self.delay(self.rng.uniform(2000, 5000), 500)
            yield EffectStep((10, 10, 30), calm)

            for _ in range(int(self.rng.integers(1, 4))):
                yield EffectStep((255, 255, 255), self.rng.uniform(0.030, 0.080))
                yield EffectStep((100, 100, 150), self.rng.uniform(0.030, 0.060))
                if self.rng.random() > 0.5:
                    yield EffectStep((200, 200, 255), self.rng.uniform(0.020, 0.050))
                    yield EffectStep((50, 50, 80), self.rng.uniform(0.040, 0.080))

            for level in range(80, 9, -10):
                yield EffectStep((level // 2, level // 4, level), 0.050)


EffectRegistry.register(LedEffect.RAINBOW, Rainbow, "Smooth rainbow color cycling", {"hue_step": 0.5})
EffectRegistry.register(
    LedEffect.AURORA,
    Aurora,
    "Northern lights with greens, blues and purples",
    {"palette": AURORA_PALETTE, "transition_steps": 50},
)
EffectRegistry.register(LedEffect.OCEAN, Ocean, "Calming blue-green wave")
EffectRegistry.register(LedEffect.SUNSET, Sunset, "Warm orange, pink and purple gradient", {"palette": SUNSET_PALETTE})
EffectRegistry.register(LedEffect.FIRE, Fire, "Realistic flickering fire")
EffectRegistry.register(LedEffect.CANDLE, Candle, "Gentle flickering candle flame")
EffectRegistry.register(LedEffect.LIGHTNING, Lightning, "Dramatic lightning storm")
