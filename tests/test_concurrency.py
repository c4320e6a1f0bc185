"""
tests/test_concurrency.py

Concurrency safety for the ledger.
Simultaneous submissions must never share an index, and a device
deauthorized mid-stream must never get a reading in after the
DeviceDeauthorized event.

Run:
    pytest tests/test_concurrency.py -v --tb=short
"""

import threading

from voltledger import (
    AuthorizationRegistry,
    DeviceDeauthorized,
    NewReading,
    ReadingLedger,
    Unauthorized,
)

OWNER = "0xowner"


class TestConcurrency:

    def test_concurrent_submits_get_unique_indices(self, tmp_path):
        """Eight threads submitting at once must produce 0..N-1 with no gaps."""
        ledger  = ReadingLedger.open(owner=OWNER, journal_path=tmp_path / "journal.jsonl")
        devices = [f"0xdev{i}" for i in range(8)]
        for device in devices:
            ledger.registry.authorize(OWNER, device)

        per_thread = 50
        results    = {device: [] for device in devices}
        errors     = []

        def worker(device):
            try:
                for i in range(per_thread):
                    results[device].append(ledger.submit(device, i, f"{device}-{i}"))
            except Exception as e:
                errors.append(str(e))

        threads = [threading.Thread(target=worker, args=(d,)) for d in devices]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == [], f"Concurrent submits raised: {errors}"

        total = per_thread * len(devices)
        all_indices = sorted(i for indices in results.values() for i in indices)
        assert all_indices == list(range(total))
        assert ledger.total_count() == total

        for device in devices:
            assert results[device] == ledger.get_device_indices(device)
            assert ledger.get_device_readings(device) == [
                (i, f"{device}-{i}") for i in range(per_thread)
            ]

        # Journal replays to the same state
        restored = ReadingLedger.open(owner=OWNER, journal_path=tmp_path / "journal.jsonl")
        assert restored.total_count() == total
        assert restored.feed.events() == ledger.feed.events()

    def test_no_reading_after_deauthorization(self):
        """Submissions racing a deauthorize are all-or-nothing around it."""
        registry = AuthorizationRegistry(OWNER)
        ledger   = ReadingLedger(registry)
        device   = "0xracer"
        registry.authorize(OWNER, device)

        accepted = []
        rejected = []
        started  = threading.Event()

        def submitter():
            started.set()
            for i in range(2000):
                try:
                    accepted.append(ledger.submit(device, i, f"t{i}"))
                except Unauthorized:
                    rejected.append(i)

        t = threading.Thread(target=submitter)
        t.start()
        started.wait()
        registry.deauthorize(OWNER, device)
        t.join()

        events = ledger.feed.events()
        cut = next(e.sequence for e in events if isinstance(e, DeviceDeauthorized))
        late = [e for e in events[cut:] if isinstance(e, NewReading)]

        assert late == []
        assert len(accepted) + len(rejected) == 2000
        assert ledger.device_count(device) == len(accepted)
        assert accepted == list(range(len(accepted)))

    def test_stats_wait_for_in_flight_commit(self):
        """get_stats() never mixes counts from before and after a commit."""
        registry = AuthorizationRegistry(OWNER)
        ledger   = ReadingLedger(registry)
        registry.authorize(OWNER, "0xdev")
        ledger.submit("0xdev", 1, "t0")

        done   = threading.Event()
        result = {}

        def read_stats():
            result["stats"] = ledger.get_stats()
            done.set()

        with registry.lock:
            reader = threading.Thread(target=read_stats)
            reader.start()
            assert not done.wait(0.2)
            ledger.submit("0xdev", 2, "t1")
        reader.join(timeout=5)

        stats = result["stats"]
        assert stats["total_readings"] == 2
        assert stats["readings_by_device"] == {"0xdev": 2}
        assert stats["next_sequence"] == 3
