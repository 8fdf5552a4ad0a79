"""
Sequential reader for write-ahead log files.

Reads the whole log image from an open handle and decodes it leniently:
- Corrupt lines are skipped
- A torn (unterminated) tail from an interrupted write is detected
- The next free entry id is recovered for bootstrap
"""

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List

from waly.core.log.errors import WalIOError
from waly.core.log.format import DELIMITER, LogEntry, decode_entries
from waly.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RecoveryResult:
    """
    Outcome of a bootstrap scan.

    Attributes:
        entries: Number of entries that decoded cleanly
        next_id: Id to assign to the next appended entry
        size: Size of the log image in bytes
        torn_tail: Whether the image ends without a delimiter
    """

    entries: int
    next_id: int
    size: int
    torn_tail: bool


class LogReader:
    """
    Reads entries from a log file handle.

    The handle is shared with the writer; callers are expected to hold the
    log's lock while reading.
    """

    def __init__(self, file: BinaryIO, path: Path):
        self._file = file
        self.path = Path(path)

    def read_image(self) -> bytes:
        """
        Read the raw contents of the log from the start.

        Raises:
            WalIOError: If the file cannot be read
        """
        try:
            self._file.seek(0)
            return self._file.read()
        except OSError as e:
            logger.error("Failed to read log", path=str(self.path), error=str(e))
            raise WalIOError(f"Failed to read {self.path}: {e}") from e

    def read_all(self) -> List[LogEntry]:
        """
        Read every decodable entry in file order.

        Returns:
            Entries, with corrupt lines omitted
        """
        image = self.read_image()
        return list(decode_entries(image.split(DELIMITER)))

    def recover(self) -> RecoveryResult:
        """
        Scan the log once to find the next free id.

        Returns:
            RecoveryResult describing the scanned image
        """
        image = self.read_image()

        count = 0
        max_id = -1
        for entry in decode_entries(image.split(DELIMITER)):
            count += 1
            max_id = max(max_id, entry.id)

        torn_tail = bool(image) and not image.endswith(DELIMITER)

        logger.info(
            "Recovery complete",
            path=str(self.path),
            entries=count,
            bytes=len(image),
            torn_tail=torn_tail,
        )

        return RecoveryResult(
            entries=count,
            next_id=max_id + 1,
            size=len(image),
            torn_tail=torn_tail,
        )
