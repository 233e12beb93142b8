"""
Packet codec for ELK-BLEDOM style BLE LED controllers.

Every command is a fixed 9-byte frame::

    0x7E OP1 OP2 B3 B4 B5 B6 B7 0xEF

The builders here are pure functions: numeric arguments are saturated into
the range the hardware accepts instead of being rejected, so callers can
pass raw slider or computed values straight through.
"""

from enum import Enum, IntEnum
from typing import Dict, List, Sequence

from ..const import (
    CHANNEL_MAX,
    COLOR_GRAYSCALE,
    COLOR_RGB,
    COLOR_TEMPERATURE,
    CUSTOM_PIN_MAX,
    CUSTOM_PIN_MIN,
    MODE_DYNAMIC,
    MODE_EFFECT,
    MODE_GRAYSCALE,
    MODE_TEMPERATURE,
    OP_BRIGHTNESS,
    OP_COLOR,
    OP_CUSTOM_PIN_ORDER,
    OP_DYNAMIC_SENSITIVITY,
    OP_DYNAMIC_VALUE,
    OP_EFFECT_SPEED,
    OP_MODE,
    OP_PIN_ORDER,
    OP_POWER,
    PACKET_END,
    PACKET_LENGTH,
    PACKET_START,
    PERCENT_MAX,
    PIN_ORDER_MAX,
    PIN_ORDER_MIN,
    TEMPERATURE_PRESET_MAX,
    TEMPERATURE_PRESET_OFFSET,
)


class LedMode(Enum):
    """Operating modes the controller can be switched into."""

    RGB = "rgb"
    GRAYSCALE = "grayscale"
    TEMPERATURE = "temperature"
    EFFECT = "effect"
    DYNAMIC = "dynamic"


class NativeEffectCategory(Enum):
    SOLID = "Solid"
    JUMP = "Jump"
    GRADIENT = "Gradient"
    BLINK = "Blink"


class NativeEffect(Enum):
    """Effects built into the controller firmware: (id, display name, category)."""

    RED = (0x80, "Red", NativeEffectCategory.SOLID)
    GREEN = (0x81, "Green", NativeEffectCategory.SOLID)
    BLUE = (0x82, "Blue", NativeEffectCategory.SOLID)
    YELLOW = (0x83, "Yellow", NativeEffectCategory.SOLID)
    CYAN = (0x84, "Cyan", NativeEffectCategory.SOLID)
    MAGENTA = (0x85, "Magenta", NativeEffectCategory.SOLID)
    WHITE = (0x86, "White", NativeEffectCategory.SOLID)

    JUMP_RGB = (0x87, "Jump RGB", NativeEffectCategory.JUMP)
    JUMP_RGBYCMW = (0x88, "Jump RGBYCMW", NativeEffectCategory.JUMP)

    GRADIENT_RGB = (0x89, "Gradient RGB", NativeEffectCategory.GRADIENT)
    GRADIENT_RGBYCMW = (0x8A, "Gradient RGBYCMW", NativeEffectCategory.GRADIENT)
    GRADIENT_R = (0x8B, "Gradient Red", NativeEffectCategory.GRADIENT)
    GRADIENT_G = (0x8C, "Gradient Green", NativeEffectCategory.GRADIENT)
    GRADIENT_B = (0x8D, "Gradient Blue", NativeEffectCategory.GRADIENT)
    GRADIENT_Y = (0x8E, "Gradient Yellow", NativeEffectCategory.GRADIENT)
    GRADIENT_C = (0x8F, "Gradient Cyan", NativeEffectCategory.GRADIENT)
    GRADIENT_M = (0x90, "Gradient Magenta", NativeEffectCategory.GRADIENT)
    GRADIENT_W = (0x91, "Gradient White", NativeEffectCategory.GRADIENT)
    GRADIENT_RG = (0x92, "Gradient Red-Green", NativeEffectCategory.GRADIENT)
    GRADIENT_RB = (0x93, "Gradient Red-Blue", NativeEffectCategory.GRADIENT)
    GRADIENT_GB = (0x94, "Gradient Green-Blue", NativeEffectCategory.GRADIENT)

    BLINK_RGBYCMW = (0x95, "Blink RGBYCMW", NativeEffectCategory.BLINK)
    BLINK_R = (0x96, "Blink Red", NativeEffectCategory.BLINK)
    BLINK_G = (0x97, "Blink Green", NativeEffectCategory.BLINK)
    BLINK_B = (0x98, "Blink Blue", NativeEffectCategory.BLINK)
    BLINK_Y = (0x99, "Blink Yellow", NativeEffectCategory.BLINK)
    BLINK_C = (0x9A, "Blink Cyan", NativeEffectCategory.BLINK)
    BLINK_M = (0x9B, "Blink Magenta", NativeEffectCategory.BLINK)
    BLINK_W = (0x9C, "Blink White", NativeEffectCategory.BLINK)

    def __init__(self, effect_id: int, display_name: str, category: NativeEffectCategory):
        self.effect_id = effect_id
        self.display_name = display_name
        self.category = category

    @classmethod
    def by_category(cls) -> Dict[NativeEffectCategory, List["NativeEffect"]]:
        grouped: Dict[NativeEffectCategory, List[NativeEffect]] = {c: [] for c in NativeEffectCategory}
        for effect in cls:
            grouped[effect.category].append(effect)
        return grouped


class ColorTemperature(IntEnum):
    """Temperature presets accepted by the temperature mode packet."""

    COLD = 0
    NATURAL = 5
    WARM = 10


class RgbPinOrder(IntEnum):
    """Preset channel orderings for strips wired in a non-RGB order."""

    RGB = 1
    RBG = 2
    GRB = 3
    GBR = 4
    BRG = 5
    BGR = 6


def _clamp_int(value, low: int, high: int) -> int:
    value = int(round(value))
    return max(low, min(high, value))


def _percent(value) -> int:
    return _clamp_int(value, 0, PERCENT_MAX)


def _byte(value) -> int:
    return _clamp_int(value, 0, CHANNEL_MAX)


def build_packet(op1: int, op2: int, payload: Sequence[int] = ()) -> bytes:
    """
    Frame up to five payload bytes (B3..B7) into a 9-byte packet.

    Missing payload bytes are zero-filled.
    """
    if len(payload) > PACKET_LENGTH - 4:
        raise ValueError(f"Payload too long: {len(payload)} bytes (max {PACKET_LENGTH - 4})")
    body = list(payload) + [0x00] * (PACKET_LENGTH - 4 - len(payload))
    return bytes([PACKET_START, op1 & 0xFF, op2 & 0xFF, *(b & 0xFF for b in body), PACKET_END])


def is_valid_packet(packet: bytes) -> bool:
    """True if ``packet`` has the fixed length and framing markers."""
    return len(packet) == PACKET_LENGTH and packet[0] == PACKET_START and packet[-1] == PACKET_END


# =============================================================================
# Power, brightness and speed
# =============================================================================


def power_on() -> bytes:
    return build_packet(0x00, OP_POWER, [0x01])


def power_off() -> bytes:
    # Trailing bytes stay zero; controllers in the field accept this form.
    return build_packet(0x00, OP_POWER, [0x00])


def power(on: bool) -> bytes:
    return power_on() if on else power_off()


def brightness(level) -> bytes:
    """Brightness 0-100."""
    return build_packet(0x00, OP_BRIGHTNESS, [_percent(level)])


def effect_speed(speed) -> bytes:
    """Native effect speed 0-100."""
    return build_packet(0x00, OP_EFFECT_SPEED, [_percent(speed)])


# =============================================================================
# Colors
# =============================================================================


def rgb_color(r, g, b) -> bytes:
    """Set an RGB color; also switches the controller into RGB mode."""
    return build_packet(0x00, OP_COLOR, [COLOR_RGB, _byte(r), _byte(g), _byte(b)])


def rgb_mode() -> bytes:
    """Switch to RGB mode showing white."""
    return rgb_color(CHANNEL_MAX, CHANNEL_MAX, CHANNEL_MAX)


def grayscale_color(level) -> bytes:
    return build_packet(0x00, OP_COLOR, [COLOR_GRAYSCALE, _percent(level)])


def temperature_color(value) -> bytes:
    return build_packet(0x00, OP_COLOR, [COLOR_TEMPERATURE, _percent(value)])


# =============================================================================
# Mode selection
# =============================================================================


def grayscale_mode() -> bytes:
    return build_packet(0x00, OP_MODE, [0x00, MODE_GRAYSCALE])


def temperature_mode(preset=ColorTemperature.NATURAL) -> bytes:
    """Temperature preset 0 (cold) to 10 (warm)."""
    value = TEMPERATURE_PRESET_OFFSET + _clamp_int(preset, 0, TEMPERATURE_PRESET_MAX)
    return build_packet(0x00, OP_MODE, [value, MODE_TEMPERATURE])


def effect_mode(effect) -> bytes:
    """Run a built-in effect, given a NativeEffect or a raw effect id."""
    effect_id = effect.effect_id if isinstance(effect, NativeEffect) else _byte(effect)
    return build_packet(0x00, OP_MODE, [effect_id, MODE_EFFECT])


def dynamic_mode(value) -> bytes:
    return build_packet(0x00, OP_MODE, [_byte(value), MODE_DYNAMIC])


def dynamic_value(value) -> bytes:
    return build_packet(0x00, OP_DYNAMIC_VALUE, [_byte(value)])


def dynamic_sensitivity(value) -> bytes:
    return build_packet(0x00, OP_DYNAMIC_SENSITIVITY, [_percent(value)])


# =============================================================================
# Wiring
# =============================================================================


def rgb_pin_order(order) -> bytes:
    """Preset channel order 1-6 (see RgbPinOrder)."""
    return build_packet(0x00, OP_PIN_ORDER, [_clamp_int(order, PIN_ORDER_MIN, PIN_ORDER_MAX)])


def custom_pin_order(first, second, third) -> bytes:
    """Explicit channel permutation, each position 1-3."""
    pins = [_clamp_int(p, CUSTOM_PIN_MIN, CUSTOM_PIN_MAX) for p in (first, second, third)]
    return build_packet(0x00, OP_CUSTOM_PIN_ORDER, pins)


def describe(packet: bytes) -> str:
    """Hex dump used in debug logs."""
    return " ".join(f"{b:02X}" for b in packet)


COMMANDS = {
    "power_on": power_on,
    "power_off": power_off,
    "brightness": brightness,
    "effect_speed": effect_speed,
    "rgb_color": rgb_color,
    "rgb_mode": rgb_mode,
    "grayscale_color": grayscale_color,
    "temperature_color": temperature_color,
    "grayscale_mode": grayscale_mode,
    "temperature_mode": temperature_mode,
    "effect_mode": effect_mode,
    "dynamic_mode": dynamic_mode,
    "dynamic_value": dynamic_value,
    "dynamic_sensitivity": dynamic_sensitivity,
    "rgb_pin_order": rgb_pin_order,
    "custom_pin_order": custom_pin_order,
}


def encode(command: str, *params) -> bytes:
    """
    Encode a command by name, e.g. ``encode("rgb_color", 255, 0, 0)``.

    Raises:
        KeyError: Unknown command name
    """
    try:
        builder = COMMANDS[command]
    except KeyError:
        raise KeyError(f"Unknown command: {command}") from None
    return builder(*params)
