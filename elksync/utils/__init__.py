"""
Utility modules for elk-sync.

Shared color math and logging helpers used by the consumer and producer
components.
"""

from .logging_utils import RateLimitedLogger, create_app_time_formatter

__all__ = ["RateLimitedLogger", "create_app_time_formatter"]
