"""
Rate-limited color smoothing for consecutive LED writes.

Raw colors from the analyzer can jump on scene cuts, flashes and video
noise. ColorSmoother turns them into a trajectory that is pleasant on a
physical strip, in two stages:

1. Target smoothing: the raw HSV input is low-pass filtered (hue along the
   shorter arc) into a smoothed target.
2. Rate-limited chase: the displayed HSV moves toward that target by
   ``delta * speed`` per channel, clamped to a maximum step per update.

Large hue jumps and runs of rapidly changing input apply a slowdown
multiplier to both stages for as long as the episode lasts.
"""

import logging
from dataclasses import dataclass
from typing import NamedTuple, Optional

from ..utils.color import HSV, RGB, clamp, clamp_rgb, hsv_to_rgb, hue_delta, lerp, normalize_hue, rgb_to_hsv

logger = logging.getLogger(__name__)


@dataclass
class SmootherConfig:
    """Configuration for the color smoother"""

    target_smoothing: float = 0.35  # Fraction of the raw/target gap closed per update
    hue_speed: float = 0.25  # Chase speed (fraction of remaining delta per update)
    saturation_speed: float = 0.25
    value_speed: float = 0.3
    max_hue_step: float = 12.0  # Degrees per update
    max_saturation_step: float = 0.08
    max_value_step: float = 0.08
    large_jump_hue: float = 90.0  # Hue delta (degrees) that counts as a scene cut
    rapid_hue_delta: float = 30.0  # Raw frame-to-frame hue change that counts as rapid
    rapid_value_delta: float = 0.25  # Raw frame-to-frame value change that counts as rapid
    rapid_run_length: int = 3  # Consecutive rapid frames before an episode starts
    slowdown: float = 0.4  # Speed multiplier during jumps and rapid-change episodes
    min_brightness: float = 0.02  # Current and target below this snap to black
    hue_saturation_floor: float = 0.1  # Below this saturation the hue is treated as undefined
    instant_threshold: float = 0.95  # Responsiveness at or above this snaps immediately


class SmoothingRates(NamedTuple):
    """Per-update speeds and step caps used by one smoothing call."""

    target_smoothing: float
    hue_speed: float
    saturation_speed: float
    value_speed: float
    max_hue_step: float
    max_saturation_step: float
    max_value_step: float

    @classmethod
    def from_config(cls, config: SmootherConfig) -> "SmoothingRates":
        return cls(
            config.target_smoothing,
            config.hue_speed,
            config.saturation_speed,
            config.value_speed,
            config.max_hue_step,
            config.max_saturation_step,
            config.max_value_step,
        )

    def interpolate(self, other: "SmoothingRates", t: float) -> "SmoothingRates":
        return SmoothingRates(*(lerp(a, b, t) for a, b in zip(self, other)))


# Extremes for the responsiveness entry point
SLOWEST_RATES = SmoothingRates(0.05, 0.05, 0.05, 0.05, 2.0, 0.01, 0.01)
INSTANT_RATES = SmoothingRates(1.0, 1.0, 1.0, 1.0, 180.0, 1.0, 1.0)


@dataclass
class SmootherState:
    """Mutable smoother state: displayed, smoothed-target and last raw HSV."""

    current: HSV = (0.0, 0.0, 0.0)
    target: HSV = (0.0, 0.0, 0.0)
    raw: HSV = (0.0, 0.0, 0.0)
    rapid_run: int = 0
    updates: int = 0


class ColorSmoother:
    """Two-stage HSV smoother with rate limiting and scene-cut slowdown."""

    def __init__(self, config: Optional[SmootherConfig] = None, initial_color: RGB = (0, 0, 0)):
        self.config = config or SmootherConfig()
        self.rates = SmoothingRates.from_config(self.config)
        self.state = SmootherState()
        self.reset(initial_color)

    def reset(self, color: RGB) -> None:
        """Snap every stage to ``color`` and clear rapid-change tracking."""
        hsv = rgb_to_hsv(*clamp_rgb(*color))
        self.state = SmootherState(current=hsv, target=hsv, raw=hsv)

    @property
    def current_color(self) -> RGB:
        return hsv_to_rgb(*self.state.current)

    @property
    def current_hsv(self) -> HSV:
        return self.state.current

    @property
    def in_rapid_change(self) -> bool:
        return self.state.rapid_run >= self.config.rapid_run_length

    def smooth(self, color: RGB) -> RGB:
        """
        Advance one update toward ``color`` using the configured rates.

        Args:
            color: Raw target color

        Returns:
            Color to display for this update
        """
        raw = rgb_to_hsv(*clamp_rgb(*color))
        rapid = self._track_rapid_change(raw)
        slow = rapid or self._is_large_jump(raw)
        return self._update(raw, self.rates, self.config.slowdown if slow else 1.0)

    def smooth_with_responsiveness(self, color: RGB, responsiveness: float) -> RGB:
        """
        Advance one update with speeds interpolated by ``responsiveness``.

        0 is very slow, 1 is instant. Values at or above the instant
        threshold bypass rate limiting and snap straight to ``color``.
        """
        responsiveness = clamp(responsiveness, 0.0, 1.0)
        if responsiveness >= self.config.instant_threshold:
            color = clamp_rgb(*color)
            self.reset(color)
            return color

        raw = rgb_to_hsv(*clamp_rgb(*color))
        self.state.rapid_run = 0
        rates = SLOWEST_RATES.interpolate(INSTANT_RATES, responsiveness)
        return self._update(raw, rates, 1.0)

    def _track_rapid_change(self, raw: HSV) -> bool:
        cfg = self.config
        previous = self.state.raw
        hue_change = 0.0
        if previous[1] >= cfg.hue_saturation_floor and raw[1] >= cfg.hue_saturation_floor:
            hue_change = abs(hue_delta(previous[0], raw[0]))
        value_change = abs(raw[2] - previous[2])

        if hue_change > cfg.rapid_hue_delta or value_change > cfg.rapid_value_delta:
            self.state.rapid_run += 1
            if self.state.rapid_run == cfg.rapid_run_length:
                logger.debug("Rapid color change episode started")
        else:
            self.state.rapid_run = 0
        return self.in_rapid_change

    def _is_large_jump(self, raw: HSV) -> bool:
        floor = self.config.hue_saturation_floor
        current = self.state.current
        if current[1] < floor or raw[1] < floor:
            return False
        return abs(hue_delta(current[0], raw[0])) > self.config.large_jump_hue

    def _update(self, raw: HSV, rates: SmoothingRates, slowdown: float) -> RGB:
        cfg = self.config
        state = self.state
        floor = cfg.hue_saturation_floor

        # Stage 1: low-pass the raw input into the smoothed target
        t = clamp(rates.target_smoothing * slowdown, 0.0, 1.0)
        target_h, target_s, target_v = state.target
        if target_s < floor:
            target_h = raw[0]
        elif raw[1] >= floor:
            target_h = normalize_hue(target_h + hue_delta(target_h, raw[0]) * t)
        target = (target_h, lerp(target_s, raw[1], t), lerp(target_v, raw[2], t))

        # Stage 2: rate-limited chase of the target
        cur_h, cur_s, cur_v = state.current
        if cur_s < floor:
            new_h = target[0]
        else:
            step = hue_delta(cur_h, target[0]) * rates.hue_speed * slowdown
            new_h = normalize_hue(cur_h + clamp(step, -rates.max_hue_step, rates.max_hue_step))

        step_s = (target[1] - cur_s) * rates.saturation_speed * slowdown
        new_s = clamp(cur_s + clamp(step_s, -rates.max_saturation_step, rates.max_saturation_step), 0.0, 1.0)

        step_v = (target[2] - cur_v) * rates.value_speed * slowdown
        new_v = clamp(cur_v + clamp(step_v, -rates.max_value_step, rates.max_value_step), 0.0, 1.0)

        if new_v < cfg.min_brightness and target[2] < cfg.min_brightness:
            new_v = 0.0

        state.target = target
        state.current = (new_h, new_s, new_v)
        state.raw = raw
        state.updates += 1
        return hsv_to_rgb(*state.current)
