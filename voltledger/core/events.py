"""
VoltLedger Event Feed

In-process, append-only log of committed ledger events plus a
subscriber list for reactive consumers (indexers, dashboards).

commit() is the single path through which state changes. It MUST,
in this exact order:
  1. Journal the event      - if a journal is attached
  2. Apply the mutation     - only after the journal write succeeded
  3. Append to the feed     - event is now observable
  4. Notify subscribers     - failures are logged, never undo the commit

The feed does not lock on its own. The registry and the ledger call
commit() while holding their shared mutation lock, which is what gives
the feed its total commit order.
"""

import logging
from typing import Callable, List, Optional

from voltledger.core.models import LedgerEvent
from voltledger.storage.journal import Journal

logger = logging.getLogger(__name__)

Subscriber = Callable[[LedgerEvent], None]


class EventFeed:
    """
    Ordered log of committed events.

    Usage:
        feed = EventFeed()
        unsubscribe = feed.subscribe(print)
        ...
        feed.events(since=10)   # everything from commit sequence 10 on
        unsubscribe()
    """

    def __init__(self, journal: Optional[Journal] = None) -> None:
        self.journal = journal

        self._events:      List[LedgerEvent] = []
        self._subscribers: List[Subscriber]  = []

    def __len__(self) -> int:
        return len(self._events)

    @property
    def next_sequence(self) -> int:
        """Sequence number the next committed event must carry."""
        return len(self._events)

    def commit(self, event: LedgerEvent, apply: Callable[[], None]) -> None:
        """
        Durably record event, run apply(), then publish.

        Raises ValueError if event.sequence is not next_sequence.
        Raises StorageError if the journal write fails; apply() is
        not called and nothing is published in that case.
        """
        self._check_sequence(event)
        if self.journal is not None:
            self.journal.append(event.event_type, event.payload())
        apply()
        self._publish(event, notify=True)

    def replay(self, event: LedgerEvent, apply: Callable[[], None]) -> None:
        """
        Re-apply an event read back from the journal.

        Same as commit() minus the journal write and subscriber
        notification: the event was already committed in an earlier run.
        """
        self._check_sequence(event)
        apply()
        self._publish(event, notify=False)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that removes it again."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def events(self, since: int = 0) -> List[LedgerEvent]:
        """Snapshot of events with sequence >= since, in commit order."""
        if since < 0:
            raise ValueError(f"since must be non-negative, got {since!r}")
        return self._events[since:]

    # ── Internal ──────────────────────────────────────────────

    def _check_sequence(self, event: LedgerEvent) -> None:
        if event.sequence != len(self._events):
            raise ValueError(
                f"Event sequence mismatch: expected={len(self._events)}, "
                f"got={event.sequence}"
            )

    def _publish(self, event: LedgerEvent, notify: bool) -> None:
        self._events.append(event)
        logger.debug("Committed %s #%d", event.event_type, event.sequence)

        if not notify:
            return
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    "Event subscriber %r failed on %s #%d",
                    callback, event.event_type, event.sequence,
                )
