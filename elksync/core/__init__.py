"""
Core coordination components.

- Session ownership: at most one output session writes to the device
- LedController facade (import from elksync.core.led_controller)
"""

from .session import Session, SessionManager, StaticSession

__all__ = ["Session", "SessionManager", "StaticSession"]
