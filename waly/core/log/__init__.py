"""
Core write-ahead log implementation.

This package provides a single-file append-only log with:
- Line-delimited JSON entry format
- Durable appends with fsync
- Replay that skips corrupt lines
- Truncation and removal of single entries
"""

from waly.core.log.errors import (
    InvalidEntryError,
    LogFullError,
    SerializationError,
    WalError,
    WalIOError,
)
from waly.core.log.format import LogEntry, decode_entries, decode_entry, encode_entry
from waly.core.log.log import WriteAheadLog
from waly.core.log.reader import LogReader, RecoveryResult

__all__ = [
    "InvalidEntryError",
    "LogEntry",
    "LogFullError",
    "LogReader",
    "RecoveryResult",
    "SerializationError",
    "WalError",
    "WalIOError",
    "WriteAheadLog",
    "decode_entries",
    "decode_entry",
    "encode_entry",
]
