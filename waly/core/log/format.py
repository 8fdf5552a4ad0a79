"""
Entry format for the write-ahead log.

Each entry is stored as one line of compact JSON terminated by a newline:

    {"id":0,"timestamp":1640995200,"data":[72,101,108,108,111]}

The payload is rendered as an array of byte values so the file stays
human-readable regardless of what the caller stores.
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Union

from waly.core.log.errors import InvalidEntryError, SerializationError
from waly.utils.logging import get_logger

logger = get_logger(__name__)

U64_MAX = 2**64 - 1

DELIMITER = b"\n"


def _check_u64(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} must fit in an unsigned 64-bit integer, got {value}")


@dataclass(frozen=True)
class LogEntry:
    """
    A single entry in the write-ahead log.

    Attributes:
        id: Identifier assigned by the log, strictly increasing
        timestamp: Unix timestamp in seconds, captured at append
        data: Opaque payload
    """

    id: int
    timestamp: int
    data: bytes

    def __post_init__(self) -> None:
        """Validate entry fields."""
        _check_u64("id", self.id)
        _check_u64("timestamp", self.timestamp)
        if not isinstance(self.data, bytes):
            raise TypeError(f"data must be bytes, got {type(self.data).__name__}")

    def to_dict(self) -> dict:
        return {"id": self.id, "timestamp": self.timestamp, "data": list(self.data)}


def make_entry(id: int, timestamp: int, data: Any) -> LogEntry:
    """
    Build an entry, reporting invalid fields as InvalidEntryError.

    bytearray and memoryview payloads are copied into bytes.
    """
    if isinstance(data, (bytearray, memoryview)):
        data = bytes(data)
    try:
        return LogEntry(id=id, timestamp=timestamp, data=data)
    except (TypeError, ValueError) as e:
        raise InvalidEntryError(str(e)) from e


def encode_entry(entry: LogEntry) -> bytes:
    """
    Serialize an entry to its on-disk line, including the trailing newline.

    Raises:
        SerializationError: If the entry cannot be encoded
    """
    try:
        line = json.dumps(entry.to_dict(), separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to encode entry {entry.id}: {e}") from e
    return line.encode("utf-8") + DELIMITER


def decode_entry(line: Union[bytes, str]) -> LogEntry:
    """
    Strictly decode one line into an entry.

    Args:
        line: A single serialized entry, with or without the trailing newline

    Returns:
        Decoded entry

    Raises:
        SerializationError: If the line is not valid JSON text
        InvalidEntryError: If the JSON does not describe a valid entry
    """
    try:
        obj = json.loads(line)
    except (ValueError, RecursionError) as e:
        raise SerializationError(f"Malformed entry: {e}") from e

    if not isinstance(obj, dict):
        raise InvalidEntryError(f"Entry must be a JSON object, got {type(obj).__name__}")

    missing = [field for field in ("id", "timestamp", "data") if field not in obj]
    if missing:
        raise InvalidEntryError(f"Entry is missing fields: {', '.join(missing)}")

    data = obj["data"]
    if not isinstance(data, list):
        raise InvalidEntryError(f"data must be an array, got {type(data).__name__}")
    for value in data:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
            raise InvalidEntryError(f"data holds a non-byte value: {value!r}")

    return make_entry(obj["id"], obj["timestamp"], bytes(data))


def decode_entries(lines: Iterable[Union[bytes, str]]) -> Iterator[LogEntry]:
    """
    Leniently decode a sequence of lines.

    Blank lines are ignored. Lines that fail to decode are logged and skipped so
    that one corrupt record never hides the records around it.

    Yields:
        Entries in line order
    """
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue

        try:
            yield decode_entry(line)
        except SerializationError as e:
            logger.warning(
                "Skipping corrupt log entry",
                line=line_number,
                size=len(line),
                error=str(e),
            )
