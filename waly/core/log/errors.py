"""
Error taxonomy for the write-ahead log.

Corrupted records found while scanning a whole log are not errors: they are
skipped by the lenient decoder and only logged.
"""


class WalError(Exception):
    """Base class for all write-ahead log errors."""
    pass


class WalIOError(WalError):
    """Raised when the backing file cannot be opened, read, written or truncated."""
    pass


class SerializationError(WalError):
    """Raised when an entry cannot be encoded, or a single line cannot be decoded."""
    pass


class InvalidEntryError(SerializationError):
    """Raised when well-formed input does not describe a valid log entry."""
    pass


class LogFullError(WalError):
    """Raised when an append would grow the log past its configured maximum size."""
    pass
