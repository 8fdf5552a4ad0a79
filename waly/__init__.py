"""
waly - A minimal durable write-ahead log.

Callers append opaque payloads; each one is assigned an increasing id and a
timestamp, written as a single line and made durable before the call returns.
The log can be replayed, truncated, or edited one entry at a time, and replay
skips records left corrupt by a crash.
"""

__version__ = "0.1.0"

from waly.core.log import (
    InvalidEntryError,
    LogEntry,
    LogFullError,
    SerializationError,
    WalError,
    WalIOError,
    WriteAheadLog,
)

__all__ = [
    "InvalidEntryError",
    "LogEntry",
    "LogFullError",
    "SerializationError",
    "WalError",
    "WalIOError",
    "WriteAheadLog",
]
