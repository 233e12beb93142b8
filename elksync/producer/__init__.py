"""
Producer components.

Everything that generates colors for the device:
- Screen frame acquisition and the screen sync pipeline
- Software effect library and the effect engine
"""

from .effect_engine import EffectEngine, EffectSession
from .frame_source import FrameSource, FrameSourceConfig, ScreenFrameSource
from .screen_sync import SyncConfig, SyncPipeline, SyncSession

__all__ = [
    "EffectEngine",
    "EffectSession",
    "FrameSource",
    "FrameSourceConfig",
    "ScreenFrameSource",
    "SyncConfig",
    "SyncPipeline",
    "SyncSession",
]
