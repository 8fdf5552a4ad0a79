"""Tests for the log reader and bootstrap recovery."""

import tempfile
from pathlib import Path

import pytest

from waly.core.log.reader import LogReader


class TestLogReader:
    """Test LogReader scanning."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for tests."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def open_log(self, path: Path, contents: bytes):
        path.write_bytes(contents)
        return open(path, "a+b")

    def test_recover_empty_file(self, temp_dir):
        """Test recovery of an empty log."""
        path = temp_dir / "wal.log"

        with self.open_log(path, b"") as f:
            result = LogReader(f, path).recover()

        assert result.entries == 0
        assert result.next_id == 0
        assert result.size == 0
        assert result.torn_tail is False

    def test_recover_counts_entries(self, temp_dir):
        """Test recovery finds the next id after the highest entry."""
        path = temp_dir / "wal.log"
        contents = (
            b'{"id":0,"timestamp":1,"data":[]}\n'
            b'{"id":1,"timestamp":1,"data":[]}\n'
        )

        with self.open_log(path, contents) as f:
            result = LogReader(f, path).recover()

        assert result.entries == 2
        assert result.next_id == 2
        assert result.size == len(contents)

    def test_recover_detects_torn_tail(self, temp_dir):
        """Test that an unterminated last line is reported."""
        path = temp_dir / "wal.log"
        contents = b'{"id":0,"timestamp":1,"data":[]}\n{"id":1,"tim'

        with self.open_log(path, contents) as f:
            result = LogReader(f, path).recover()

        assert result.entries == 1
        assert result.next_id == 1
        assert result.torn_tail is True

    def test_complete_unterminated_line_is_read(self, temp_dir):
        """Test that a valid last line without newline still decodes."""
        path = temp_dir / "wal.log"
        contents = b'{"id":4,"timestamp":1,"data":[1]}'

        with self.open_log(path, contents) as f:
            reader = LogReader(f, path)
            entries = reader.read_all()
            result = reader.recover()

        assert [e.id for e in entries] == [4]
        assert result.next_id == 5
        assert result.torn_tail is True

    def test_read_all_skips_garbage(self, temp_dir):
        """Test that garbage lines are skipped in order."""
        path = temp_dir / "wal.log"
        contents = (
            b'{"id":0,"timestamp":1,"data":[65]}\n'
            b"\x00\x01\x02\n"
            b'{"id":1,"timestamp":1,"data":[66]}\n'
        )

        with self.open_log(path, contents) as f:
            entries = LogReader(f, path).read_all()

        assert [e.data for e in entries] == [b"A", b"B"]
