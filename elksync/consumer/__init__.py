"""
Device-side components.

This package contains everything between a color or audio signal and the
LED controller:
- Packet encoding for ELK-BLEDOM controllers
- BLE device sink
- Dominant color extraction and color smoothing
- Audio capture and beat detection
"""

from .ble_sink import BleDeviceSink, BleSinkConfig, DeviceSink
from .beat_detector import BeatDetector, BeatDetectorConfig, BeatPhase
from .color_analyzer import AnalyzerConfig, ColorAnalyzer
from .color_smoother import ColorSmoother, SmootherConfig
from .packet_codec import ColorTemperature, LedMode, NativeEffect, RgbPinOrder

__all__ = [
    "AnalyzerConfig",
    "BeatDetector",
    "BeatDetectorConfig",
    "BeatPhase",
    "BleDeviceSink",
    "BleSinkConfig",
    "ColorAnalyzer",
    "ColorSmoother",
    "ColorTemperature",
    "DeviceSink",
    "LedMode",
    "NativeEffect",
    "RgbPinOrder",
    "SmootherConfig",
]
