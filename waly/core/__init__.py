"""Core components for log storage."""

from waly.core import log

__all__ = ["log"]
