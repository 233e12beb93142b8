"""
Color-space helpers shared by the analyzer, smoother and effects.

Hue is expressed in degrees [0, 360), saturation and value in [0, 1].
RGB colors are ``(r, g, b)`` tuples of ints in [0, 255].
"""

import math
from typing import Tuple

import numpy as np

RGB = Tuple[int, int, int]
HSV = Tuple[float, float, float]

BLACK: RGB = (0, 0, 0)
WHITE: RGB = (255, 255, 255)


def clamp(value: float, low: float, high: float) -> float:
    return low if value < low else high if value > high else value


def clamp_channel(value: float) -> int:
    """Round and saturate a channel value into 0-255."""
    return int(clamp(round(value), 0, 255))


def clamp_rgb(r: float, g: float, b: float) -> RGB:
    return clamp_channel(r), clamp_channel(g), clamp_channel(b)


def normalize_hue(hue: float) -> float:
    """Wrap any angle into [0, 360)."""
    hue = math.fmod(hue, 360.0)
    if hue < 0:
        hue += 360.0
    # fmod of a tiny negative can round up to exactly 360
    return 0.0 if hue >= 360.0 else hue


def hue_delta(from_hue: float, to_hue: float) -> float:
    """
    Signed shortest angular distance from ``from_hue`` to ``to_hue``.

    Result is in (-180, 180]; e.g. hue_delta(350, 10) == 20.
    """
    delta = math.fmod(to_hue - from_hue, 360.0)
    if delta > 180.0:
        delta -= 360.0
    elif delta <= -180.0:
        delta += 360.0
    return delta


def lerp_hue(from_hue: float, to_hue: float, t: float) -> float:
    """Interpolate hue along the shorter arc."""
    return normalize_hue(from_hue + hue_delta(from_hue, to_hue) * t)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def lerp_rgb(c1: RGB, c2: RGB, t: float) -> RGB:
    """Linear blend of two RGB colors in RGB space."""
    t = clamp(t, 0.0, 1.0)
    return clamp_rgb(lerp(c1[0], c2[0], t), lerp(c1[1], c2[1], t), lerp(c1[2], c2[2], t))


def scale_rgb(color: RGB, factor: float) -> RGB:
    """Scale a color's intensity by ``factor`` (0-1)."""
    factor = clamp(factor, 0.0, 1.0)
    return clamp_rgb(color[0] * factor, color[1] * factor, color[2] * factor)


def rgb_to_hsv(r: int, g: int, b: int) -> HSV:
    """Convert 0-255 RGB to (hue degrees, saturation, value)."""
    rf, gf, bf = r / 255.0, g / 255.0, b / 255.0
    cmax = max(rf, gf, bf)
    cmin = min(rf, gf, bf)
    delta = cmax - cmin

    if delta == 0:
        hue = 0.0
    elif cmax == rf:
        hue = 60.0 * (((gf - bf) / delta) % 6)
    elif cmax == gf:
        hue = 60.0 * (((bf - rf) / delta) + 2)
    else:
        hue = 60.0 * (((rf - gf) / delta) + 4)

    saturation = 0.0 if cmax == 0 else delta / cmax
    return normalize_hue(hue), saturation, cmax


def hsv_to_rgb(hue: float, saturation: float, value: float) -> RGB:
    """Convert (hue degrees, saturation, value) to 0-255 RGB, clamping inputs."""
    hue = normalize_hue(hue)
    saturation = clamp(saturation, 0.0, 1.0)
    value = clamp(value, 0.0, 1.0)

    c = value * saturation
    x = c * (1 - abs((hue / 60.0) % 2 - 1))
    m = value - c

    sector = int(hue // 60) % 6
    if sector == 0:
        rf, gf, bf = c, x, 0.0
    elif sector == 1:
        rf, gf, bf = x, c, 0.0
    elif sector == 2:
        rf, gf, bf = 0.0, c, x
    elif sector == 3:
        rf, gf, bf = 0.0, x, c
    elif sector == 4:
        rf, gf, bf = x, 0.0, c
    else:
        rf, gf, bf = c, 0.0, x

    return clamp_rgb((rf + m) * 255, (gf + m) * 255, (bf + m) * 255)


def rgb_array_to_hsv(pixels: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorised RGB -> HSV for an (..., 3) uint8 array.

    Returns:
        Tuple of (hue degrees, saturation, value) float arrays with the
        input's leading shape
    """
    rgb = pixels.astype(np.float32) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    cmax = rgb.max(axis=-1)
    cmin = rgb.min(axis=-1)
    delta = cmax - cmin

    hue = np.zeros_like(cmax)
    safe = np.where(delta > 0, delta, 1.0)
    red_max = (delta > 0) & (cmax == r)
    green_max = (delta > 0) & (cmax == g) & ~red_max
    blue_max = (delta > 0) & ~red_max & ~green_max
    hue[red_max] = (60.0 * ((g - b) / safe) % 360.0)[red_max]
    hue[green_max] = (60.0 * ((b - r) / safe) + 120.0)[green_max]
    hue[blue_max] = (60.0 * ((r - g) / safe) + 240.0)[blue_max]
    hue = np.mod(hue, 360.0)

    saturation = np.where(cmax > 0, delta / np.where(cmax > 0, cmax, 1.0), 0.0)
    return hue, saturation, cmax
