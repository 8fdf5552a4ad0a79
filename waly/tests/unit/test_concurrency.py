"""Tests for concurrent access to the write-ahead log."""

import tempfile
import threading
from pathlib import Path

import pytest

from waly.core.log.log import WriteAheadLog


class TestConcurrentAccess:
    """Test concurrent read/write operations."""

    @pytest.fixture
    def temp_dir(self):
        """Create a temporary directory for tests."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_concurrent_writes(self, temp_dir):
        """Test concurrent appends from multiple threads."""
        wal = WriteAheadLog(temp_dir / "wal.log")
        returned_ids = []
        ids_lock = threading.Lock()

        def writer(thread_id, count):
            for i in range(count):
                entry = wal.append(f"thread-{thread_id}-msg-{i}".encode())
                with ids_lock:
                    returned_ids.append(entry.id)

        threads = []
        for i in range(5):
            t = threading.Thread(target=writer, args=(i, 20))
            threads.append(t)
            t.start()

        for t in threads:
            t.join()

        entries = wal.read_all()

        assert len(entries) == 100
        assert sorted(returned_ids) == list(range(100))
        assert [e.id for e in entries] == list(range(100))
        assert wal.next_id == 100

        wal.close()

    def test_concurrent_read_write(self, temp_dir):
        """Test that readers never see a partial entry during appends."""
        wal = WriteAheadLog(temp_dir / "wal.log", fsync_on_append=False)
        snapshots = []
        done = threading.Event()

        def writer():
            for i in range(50):
                wal.append(f"msg-{i}".encode())
            done.set()

        def reader():
            while not done.is_set():
                snapshots.append([e.id for e in wal.read_all()])

        write_thread = threading.Thread(target=writer)
        read_thread = threading.Thread(target=reader)

        write_thread.start()
        read_thread.start()

        write_thread.join()
        read_thread.join()

        for ids in snapshots:
            assert ids == list(range(len(ids)))
        assert len(wal.read_all()) == 50

        wal.close()

    def test_delete_during_writes(self, temp_dir):
        """Test that deletes and appends serialize without losing entries."""
        wal = WriteAheadLog(temp_dir / "wal.log", fsync_on_append=False)
        for i in range(10):
            wal.append(f"seed-{i}".encode())

        def writer():
            for i in range(20):
                wal.append(f"msg-{i}".encode())

        def deleter():
            for entry_id in range(0, 10, 2):
                wal.delete_id(entry_id)

        threads = [
            threading.Thread(target=writer),
            threading.Thread(target=writer),
            threading.Thread(target=deleter),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = [e.id for e in wal.read_all()]

        assert len(ids) == 10 + 40 - 5
        assert len(set(ids)) == len(ids)
        assert ids == sorted(ids)
        assert not any(entry_id in ids for entry_id in range(0, 10, 2))

        wal.close()

    def test_clear_during_writes(self, temp_dir):
        """Test that ids stay unique across a concurrent clear."""
        wal = WriteAheadLog(temp_dir / "wal.log", fsync_on_append=False)
        returned_ids = []
        ids_lock = threading.Lock()

        def writer():
            for i in range(25):
                entry = wal.append(f"msg-{i}".encode())
                with ids_lock:
                    returned_ids.append(entry.id)

        threads = [threading.Thread(target=writer) for _ in range(4)]
        for t in threads:
            t.start()
        wal.clear()
        for t in threads:
            t.join()

        assert sorted(returned_ids) == list(range(100))

        ids = [e.id for e in wal.read_all()]
        assert ids == sorted(set(ids))

        wal.close()
