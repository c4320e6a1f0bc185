"""
tests/test_events.py

Event feed: commit order, emitted iff committed, subscriber isolation.
"""

import logging

import pytest

from voltledger import (
    AuthorizationRegistry,
    DeviceAuthorized,
    DeviceDeauthorized,
    EventFeed,
    NewReading,
    ReadingLedger,
    StorageError,
    Unauthorized,
)

OWNER = "0xowner"
DEV   = "0xdevice"


@pytest.fixture
def ledger():
    return ReadingLedger(AuthorizationRegistry(OWNER))


class _FailingJournal:
    """Journal stand-in whose writes always fail."""
    path = "unwritable.jsonl"

    def append(self, entry_type, payload):
        raise StorageError("disk full")


class TestCommitOrder:

    def test_events_in_commit_order(self, ledger):
        ledger.registry.authorize(OWNER, DEV)
        ledger.submit(DEV, 2201234, "t0")
        ledger.registry.deauthorize(OWNER, DEV)

        assert ledger.feed.events() == [
            DeviceAuthorized(sequence=0, device=DEV),
            NewReading(sequence=1, device=DEV, voltage=2201234, timestamp="t0", index=0),
            DeviceDeauthorized(sequence=2, device=DEV),
        ]

    def test_events_since(self, ledger):
        ledger.registry.authorize(OWNER, DEV)
        ledger.submit(DEV, 1, "t0")
        ledger.submit(DEV, 2, "t1")

        tail = ledger.feed.events(since=1)
        assert [e.sequence for e in tail] == [1, 2]
        assert ledger.feed.events(since=3) == []

    def test_negative_since_rejected(self):
        with pytest.raises(ValueError):
            EventFeed().events(since=-1)

    def test_out_of_order_commit_rejected(self):
        feed = EventFeed()
        applied = []
        with pytest.raises(ValueError):
            feed.commit(DeviceAuthorized(sequence=5, device=DEV), lambda: applied.append(1))
        assert applied == []
        assert len(feed) == 0


class TestEmittedIffCommitted:

    def test_rejected_submit_emits_nothing(self, ledger):
        with pytest.raises(Unauthorized):
            ledger.submit(DEV, 1, "t0")
        assert ledger.feed.events() == []

    def test_journal_failure_leaves_state_untouched(self):
        registry = AuthorizationRegistry(OWNER)
        ledger   = ReadingLedger(registry)
        registry.authorize(OWNER, DEV)

        registry.feed.journal = _FailingJournal()
        with pytest.raises(StorageError):
            ledger.submit(DEV, 1, "t0")
        with pytest.raises(StorageError):
            registry.deauthorize(OWNER, DEV)

        assert ledger.total_count() == 0
        assert ledger.device_count(DEV) == 0
        assert registry.is_authorized(DEV)
        assert len(ledger.feed) == 1


class TestSubscribers:

    def test_subscriber_receives_committed_events(self, ledger):
        received = []
        ledger.feed.subscribe(received.append)

        ledger.registry.authorize(OWNER, DEV)
        index = ledger.submit(DEV, 42, "t0")

        assert [type(e) for e in received] == [DeviceAuthorized, NewReading]
        assert received[1].index == index

    def test_unsubscribe(self, ledger):
        received = []
        unsubscribe = ledger.feed.subscribe(received.append)
        ledger.registry.authorize(OWNER, DEV)
        unsubscribe()
        unsubscribe()
        ledger.submit(DEV, 1, "t0")
        assert len(received) == 1

    def test_failing_subscriber_does_not_undo_commit(self, ledger, caplog):
        def boom(event):
            raise RuntimeError("dashboard offline")

        received = []
        ledger.feed.subscribe(boom)
        ledger.feed.subscribe(received.append)

        with caplog.at_level(logging.ERROR, logger="voltledger.core.events"):
            ledger.registry.authorize(OWNER, DEV)
            assert ledger.submit(DEV, 1, "t0") == 0

        assert ledger.total_count() == 1
        assert len(received) == 2
        assert "dashboard offline" in caplog.text
