"""
Dominant color extraction for screen sync.

Reduces a captured RGB frame to the single "mood" color the LEDs should
show. Key Features:
- Strided sampling so a full frame costs a few thousand pixels, not millions
- Hue-binned voting where a bin's score rewards both prevalence and vividness
- Per-bin exponential smoothing plus a bonus for the incumbent bin, so two
  near-tied hues cannot flip the output every frame
- Weighted-average fallback for grey or near-black scenes
- Output blending and an adaptive boost that lifts dull colors more than
  vivid ones
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..utils.color import BLACK, HSV, RGB, clamp, hsv_to_rgb, lerp, lerp_hue, rgb_array_to_hsv, rgb_to_hsv

logger = logging.getLogger(__name__)


@dataclass
class AnalyzerConfig:
    """Configuration for dominant color extraction"""

    hue_bins: int = 24  # 15 degrees per bin
    samples_per_axis: int = 48  # Target sample count along each frame axis
    min_dimension: int = 4  # Frames smaller than this on either side are treated as black
    min_saturation: float = 0.15  # Samples below this are greys and do not vote
    min_value: float = 0.10  # Samples below this are near-black and do not vote
    score_smoothing: float = 0.25  # Weight of the current frame in each bin's smoothed score
    hysteresis_bonus: float = 1.5  # Multiplier applied to the incumbent bin before comparison
    min_score: float = 0.02  # Smoothed score the winner needs, else fall back to weighted average
    output_blend: float = 0.6  # Weight of the new color when blending with the previous output
    saturation_boost: float = 0.8  # Extra saturation for dull colors (0 disables)
    value_gamma: float = 0.7  # Gamma applied to value before gain
    value_gain: float = 1.2  # Brightness gain after gamma
    black_value: float = 0.05  # Output value below this is forced to black


@dataclass
class AnalyzerState:
    """Mutable per-session analyzer state."""

    bin_scores: np.ndarray
    dominant_bin: Optional[int] = None
    last_hsv: Optional[HSV] = None
    frames_analyzed: int = 0
    fallback_frames: int = 0

    @classmethod
    def empty(cls, bins: int) -> "AnalyzerState":
        return cls(bin_scores=np.zeros(bins, dtype=np.float64))


@dataclass
class _BinStats:
    counts: np.ndarray
    hue_sums: np.ndarray
    saturation_sums: np.ndarray
    value_sums: np.ndarray
    total_samples: int = 0


class ColorAnalyzer:
    """
    Extracts a temporally stable dominant color from RGB frames.

    Call reset() at the start of every sync session so bias from a previous
    session does not carry over.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None):
        self.config = config or AnalyzerConfig()
        if self.config.hue_bins < 2:
            raise ValueError(f"hue_bins must be at least 2, got {self.config.hue_bins}")
        self.bin_width = 360.0 / self.config.hue_bins
        self.state = AnalyzerState.empty(self.config.hue_bins)

    def reset(self) -> None:
        """Clear bin scores, the dominant-bin memory and the previous output."""
        self.state = AnalyzerState.empty(self.config.hue_bins)

    @property
    def dominant_bin(self) -> Optional[int]:
        return self.state.dominant_bin

    def analyze(self, frame: Optional[np.ndarray]) -> RGB:
        """
        Analyze one frame.

        Args:
            frame: RGB frame of shape (height, width, 3+) with 0-255 values

        Returns:
            Dominant color as an (r, g, b) tuple
        """
        cfg = self.config
        if frame is None or frame.ndim != 3 or frame.shape[2] < 3:
            return BLACK
        height, width = frame.shape[:2]
        if height < cfg.min_dimension or width < cfg.min_dimension:
            return BLACK

        samples = self._sample(frame)
        hue, saturation, value = rgb_array_to_hsv(samples)
        stats = self._bin_samples(hue, saturation, value)

        state = self.state
        state.frames_analyzed += 1

        # Raw score rewards prevalence (share of sampled pixels) and vividness
        with np.errstate(divide="ignore", invalid="ignore"):
            avg_saturation = np.where(stats.counts > 0, stats.saturation_sums / stats.counts, 0.0)
        raw_scores = (stats.counts / max(stats.total_samples, 1)) * avg_saturation

        alpha = cfg.score_smoothing
        state.bin_scores = (1.0 - alpha) * state.bin_scores + alpha * raw_scores

        winner = self._select_winner(state.bin_scores, state.dominant_bin)

        if winner is None:
            state.dominant_bin = None
            state.fallback_frames += 1
            hsv = self._weighted_average(samples)
        else:
            state.dominant_bin = winner
            count = stats.counts[winner]
            if count > 0:
                hsv = (
                    float(stats.hue_sums[winner] / count),
                    float(stats.saturation_sums[winner] / count),
                    float(stats.value_sums[winner] / count),
                )
            elif state.last_hsv is not None:
                # Incumbent held on hysteresis without samples this frame
                hsv = state.last_hsv
            else:
                hsv = self._weighted_average(samples)

        blended = self._blend(state.last_hsv, hsv)
        state.last_hsv = blended
        return hsv_to_rgb(*self._boost(blended))

    def _sample(self, frame: np.ndarray) -> np.ndarray:
        height, width = frame.shape[:2]
        step_y = max(1, height // self.config.samples_per_axis)
        step_x = max(1, width // self.config.samples_per_axis)
        samples = frame[::step_y, ::step_x, :3].reshape(-1, 3)
        if samples.dtype != np.uint8:
            samples = np.clip(samples, 0, 255).astype(np.uint8)
        return samples

    def _bin_samples(self, hue: np.ndarray, saturation: np.ndarray, value: np.ndarray) -> _BinStats:
        cfg = self.config
        n = cfg.hue_bins
        colored = (saturation >= cfg.min_saturation) & (value >= cfg.min_value)

        hue = hue[colored]
        bins = np.floor(hue / self.bin_width).astype(np.int64) % n

        return _BinStats(
            counts=np.bincount(bins, minlength=n).astype(np.float64),
            hue_sums=np.bincount(bins, weights=hue, minlength=n),
            saturation_sums=np.bincount(bins, weights=saturation[colored], minlength=n),
            value_sums=np.bincount(bins, weights=value[colored], minlength=n),
            total_samples=int(colored.size),
        )

    def _select_winner(self, scores: np.ndarray, incumbent: Optional[int]) -> Optional[int]:
        effective = scores.copy()
        if incumbent is not None:
            effective[incumbent] *= self.config.hysteresis_bonus

        winner = int(np.argmax(effective))
        if incumbent is not None and effective[incumbent] >= effective[winner]:
            winner = incumbent

        if scores[winner] < self.config.min_score:
            return None
        return winner

    def _weighted_average(self, samples: np.ndarray) -> HSV:
        """Saturation-weighted mean of every sample, for colorless scenes."""
        _, saturation, value = rgb_array_to_hsv(samples)
        weights = saturation**3 + 0.1 * value + 0.01
        mean_rgb = (samples.astype(np.float64) * weights[:, None]).sum(axis=0) / weights.sum()
        return rgb_to_hsv(*(int(round(c)) for c in mean_rgb))

    def _blend(self, previous: Optional[HSV], current: HSV) -> HSV:
        if previous is None:
            return current
        t = self.config.output_blend
        prev_h, prev_s, prev_v = previous
        h, s, v = current
        # Hue of a grey is meaningless; take the new hue outright
        if prev_s < 0.05:
            hue = h
        elif s < 0.05:
            hue = prev_h
        else:
            hue = lerp_hue(prev_h, h, t)
        return hue, lerp(prev_s, s, t), lerp(prev_v, v, t)

    def _boost(self, hsv: HSV) -> HSV:
        cfg = self.config
        hue, saturation, value = hsv
        if value < cfg.black_value:
            return hue, saturation, 0.0
        saturation = clamp(saturation * (1.0 + cfg.saturation_boost * (1.0 - saturation)), 0.0, 1.0)
        value = clamp(value**cfg.value_gamma * cfg.value_gain, 0.0, 1.0)
        return hue, saturation, value
