"""
Write-ahead log backed by a single append-only file.

Entries are assigned increasing ids, written as one line each and made durable
before append returns. Reads replay the whole file and skip corrupt lines, so a
crash in the middle of a write never hides the entries around it.
"""

import os
import threading
import time
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from waly.core.log.errors import LogFullError, WalIOError
from waly.core.log.format import LogEntry, encode_entry, make_entry
from waly.core.log.reader import LogReader
from waly.utils.logging import get_logger

logger = get_logger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class WriteAheadLog:
    """
    Durable append-only log of opaque payloads.

    All operations, reads included, hold one lock for their full duration, so
    threads sharing a log never observe a half-written or half-rewritten file.
    Nothing guards against other processes opening the same path.

    Attributes:
        path: Path to the log file
        fsync_on_append: Whether to fsync after each append
        max_size_bytes: Maximum file size in bytes (-1 = unlimited)
    """

    def __init__(
        self,
        path: Union[str, Path],
        fsync_on_append: bool = True,
        max_size_bytes: int = -1,
    ):
        """
        Open a log, creating the file if it does not exist.

        Args:
            path: Path to the log file
            fsync_on_append: Whether to fsync after each append
            max_size_bytes: Maximum file size in bytes (-1 = unlimited)

        Raises:
            WalIOError: If the file cannot be created, opened or read
        """
        self.path = Path(path)
        self.fsync_on_append = fsync_on_append
        self.max_size_bytes = max_size_bytes

        self._lock = threading.RLock()
        self._file: Optional[BinaryIO] = self._open_file()
        self._next_id = 0
        self._size = 0

        try:
            self._recover()
        except WalIOError:
            self._file.close()
            self._file = None
            raise

        logger.info(
            "Opened write-ahead log",
            path=str(self.path),
            next_id=self._next_id,
            size=self._size,
            fsync_on_append=self.fsync_on_append,
        )

    @classmethod
    def from_config(cls, config) -> "WriteAheadLog":
        """
        Build a log from the ``wal`` section of a Config.

        Args:
            config: A waly.utils.config.Config instance
        """
        return cls(
            path=config.get("wal.path"),
            fsync_on_append=config.get("wal.fsync_on_append", True),
            max_size_bytes=config.get("wal.max_size_bytes", -1),
        )

    def _open_file(self) -> BinaryIO:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            return open(self.path, "a+b")
        except OSError as e:
            logger.error("Failed to open log", path=str(self.path), error=str(e))
            raise WalIOError(f"Failed to open {self.path}: {e}") from e

    def _handle(self) -> BinaryIO:
        if self._file is None:
            raise WalIOError(f"Log is closed: {self.path}")
        return self._file

    def _sync(self) -> None:
        file = self._handle()
        file.flush()
        os.fsync(file.fileno())

    def _recover(self) -> None:
        """Bootstrap the id counter from the existing file."""
        result = LogReader(self._handle(), self.path).recover()

        self._next_id = result.next_id
        self._size = result.size

        if result.torn_tail:
            # Terminate the fragment so the next entry starts on its own line.
            logger.warning(
                "Torn write detected at end of log",
                path=str(self.path),
                size=result.size,
            )
            try:
                self._handle().write(b"\n")
                self._sync()
            except OSError as e:
                raise WalIOError(f"Failed to repair torn tail of {self.path}: {e}") from e
            self._size += 1

    def append(self, data: BytesLike) -> LogEntry:
        """
        Append a payload to the log.

        The entry is flushed (and fsynced unless disabled) before returning.

        Args:
            data: Payload bytes

        Returns:
            The entry as written, with its assigned id and timestamp

        Raises:
            SerializationError: If the payload cannot be encoded
            LogFullError: If the append would exceed max_size_bytes
            WalIOError: If the write, flush or fsync fails
        """
        with self._lock:
            file = self._handle()

            entry = make_entry(self._next_id, int(time.time()), data)
            line = encode_entry(entry)

            if 0 <= self.max_size_bytes < self._size + len(line):
                raise LogFullError(
                    f"Appending {len(line)} bytes would exceed max size "
                    f"{self.max_size_bytes} of {self.path}"
                )

            try:
                file.write(line)
                if self.fsync_on_append:
                    self._sync()
                else:
                    file.flush()
            except OSError as e:
                logger.error(
                    "Append failed",
                    path=str(self.path),
                    id=entry.id,
                    error=str(e),
                )
                self._rollback_tail()
                raise WalIOError(f"Failed to append to {self.path}: {e}") from e

            self._size += len(line)
            self._next_id += 1

            logger.debug(
                "Appended entry",
                id=entry.id,
                size=len(entry.data),
                total_size=self._size,
            )

            return entry

    def _rollback_tail(self) -> None:
        """Cut off whatever a failed append managed to write."""
        try:
            self._handle().truncate(self._size)
        except OSError as e:
            logger.error(
                "Failed to roll back partial append",
                path=str(self.path),
                size=self._size,
                error=str(e),
            )

    def read_all(self) -> List[LogEntry]:
        """
        Read every entry in the log, oldest first.

        Lines that fail to decode are skipped.

        Returns:
            List of entries in append order

        Raises:
            WalIOError: If the file cannot be read
        """
        with self._lock:
            return LogReader(self._handle(), self.path).read_all()

    def clear(self) -> None:
        """
        Truncate the log to zero length.

        The id counter keeps running so ids are never reused.

        Raises:
            WalIOError: If the truncate fails
        """
        with self._lock:
            file = self._handle()
            try:
                file.seek(0)
                file.truncate(0)
                self._sync()
            except OSError as e:
                logger.error("Failed to clear log", path=str(self.path), error=str(e))
                raise WalIOError(f"Failed to clear {self.path}: {e}") from e

            self._size = 0

            logger.info("Cleared log", path=str(self.path), next_id=self._next_id)

    def delete_id(self, entry_id: int) -> None:
        """
        Remove the entry with the given id.

        Rewrites the remaining entries to a temporary file and moves it over the
        log. Corrupt lines are not carried over. Deleting an id that is not in
        the log is a no-op.

        Args:
            entry_id: Id of the entry to remove

        Raises:
            WalIOError: If the read or rewrite fails
        """
        with self._lock:
            entries = LogReader(self._handle(), self.path).read_all()
            survivors = [entry for entry in entries if entry.id != entry_id]

            if len(survivors) == len(entries):
                logger.debug("No entry to delete", id=entry_id)
                return

            self._rewrite(survivors)

            logger.info(
                "Deleted entry",
                id=entry_id,
                remaining=len(survivors),
            )

    def clear_id(self, entry_id: int) -> None:
        """Alias of delete_id."""
        self.delete_id(entry_id)

    def _rewrite(self, entries: List[LogEntry]) -> None:
        """
        Replace the log contents with the given entries.

        Args:
            entries: Entries to keep, in order
        """
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        lines = [encode_entry(entry) for entry in entries]

        try:
            with open(tmp_path, "wb") as tmp:
                for line in lines:
                    tmp.write(line)
                tmp.flush()
                os.fsync(tmp.fileno())

            file, self._file = self._handle(), None
            file.close()
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error("Failed to rewrite log", path=str(self.path), error=str(e))
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning("Failed to remove temporary file", path=str(tmp_path))
            raise WalIOError(f"Failed to rewrite {self.path}: {e}") from e
        finally:
            if self._file is None:
                self._file = self._open_file()

        self._size = sum(len(line) for line in lines)

    @property
    def next_id(self) -> int:
        """Id that the next appended entry will receive."""
        with self._lock:
            return self._next_id

    def size(self) -> int:
        """
        Get the size of the log file in bytes.

        Returns:
            Size in bytes
        """
        with self._lock:
            return self._size

    def flush(self) -> None:
        """Flush buffered data and fsync the log file."""
        with self._lock:
            try:
                self._sync()
            except OSError as e:
                raise WalIOError(f"Failed to flush {self.path}: {e}") from e

    def close(self) -> None:
        """Flush and close the log. Closing twice is a no-op."""
        with self._lock:
            if self._file is None:
                return
            try:
                self._sync()
            except OSError as e:
                raise WalIOError(f"Failed to flush {self.path}: {e}") from e
            finally:
                file, self._file = self._file, None
                file.close()

            logger.info("Closed write-ahead log", path=str(self.path), next_id=self._next_id)

    def __enter__(self) -> "WriteAheadLog":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"WriteAheadLog(path={str(self.path)!r}, "
            f"size={self._size}, "
            f"next_id={self._next_id})"
        )
