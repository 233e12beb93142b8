"""
Global constants for the elk-sync LED controller.

This module contains the wire-protocol bytes, device identifiers and
timing constants shared across the consumer and producer components.
"""

# Packet framing (fixed 9-byte frames)
PACKET_LENGTH = 9
PACKET_START = 0x7E
PACKET_END = 0xEF

# Command selectors (OP2 byte, OP1 is always 0x00)
OP_BRIGHTNESS = 0x01
OP_EFFECT_SPEED = 0x02
OP_MODE = 0x03
OP_POWER = 0x04
OP_COLOR = 0x05
OP_DYNAMIC_VALUE = 0x06
OP_DYNAMIC_SENSITIVITY = 0x07
OP_PIN_ORDER = 0x08
OP_CUSTOM_PIN_ORDER = 0x81

# Mode ids (B4 of a mode-select packet)
MODE_GRAYSCALE = 0x01
MODE_TEMPERATURE = 0x02
MODE_EFFECT = 0x03
MODE_DYNAMIC = 0x04

# Color selectors (B3 of a color-set packet)
COLOR_GRAYSCALE = 0x01
COLOR_TEMPERATURE = 0x02
COLOR_RGB = 0x03

TEMPERATURE_PRESET_OFFSET = 0x80  # Preset 0-10 is sent as 0x80 + preset

# Hardware parameter ranges
PERCENT_MAX = 100  # Brightness, speed, grayscale, temperature color, sensitivity
CHANNEL_MAX = 255  # RGB channels and dynamic raw value
TEMPERATURE_PRESET_MAX = 10
PIN_ORDER_MIN = 1
PIN_ORDER_MAX = 6
CUSTOM_PIN_MIN = 1
CUSTOM_PIN_MAX = 3

# BLE device identifiers
WRITE_CHARACTERISTIC_UUID = "0000fff3-0000-1000-8000-00805f9b34fb"

# Screen sync
SYNC_TARGET_FPS = 30  # Capture cadence
CAPTURE_WIDTH = 160  # Frames are downscaled to this width before analysis
BLACK_THRESHOLD = 25  # Analyzed colors with every channel below this are sent as black
CAPTURE_ERROR_BACKOFF = 0.5  # Seconds to wait after a capture failure

# Logging intervals (seconds)
TRANSPORT_LOG_INTERVAL = 2.0
CAPTURE_LOG_INTERVAL = 1.0
STATUS_LOG_INTERVAL = 1.0
