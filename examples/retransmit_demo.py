#!/usr/bin/env python3
"""
Retransmission demo for the waly write-ahead log.

Payloads are persisted before they are processed. Processed entries are
removed from the log; anything left behind after a failure is replayed and
retransmitted on the next pass.
"""

from waly import WriteAheadLog
from waly.utils.config import get_config
from waly.utils.logging import configure_from_config


def main():
    config = get_config()
    configure_from_config(config)

    print("=" * 60)
    print("waly - Write-ahead log retransmission demo")
    print("=" * 60)

    with WriteAheadLog.from_config(config) as wal:
        print(f"\n[1] Opened {wal.path} (next id {wal.next_id})")

        # Persist before processing, then drop once processed.
        entry = wal.append(b"Test persistent log 1")
        print(f"\n[2] Processing entry {entry.id}: {entry.data.decode('utf-8')}")
        wal.delete_id(entry.id)
        print(f"  Processed, removed entry {entry.id}")

        # Persist another payload and simulate a failed transmission.
        entry = wal.append(b"Test persistent log 2")
        print(f"\n[3] Processing entry {entry.id}: {entry.data.decode('utf-8')}")
        print("  Transmission failed, entry stays in the log")

        print("\n[4] Recovering pending entries...")
        for pending in wal.read_all():
            print(f"  Retransmitting entry {pending.id}: {pending.data.decode('utf-8')}")
            wal.delete_id(pending.id)
            print("  Retransmission successful")

    print("\n" + "=" * 60)
    print("Demo completed successfully!")
    print("=" * 60)


if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nDemo interrupted by user")
