"""
voltledger/core/ledger.py

Reading Ledger - append-only store of device measurements.

submit() MUST, in this exact order:
  1. Acquire the registry's mutation lock
  2. Check the caller is an authorized device   → Unauthorized
  3. Check 0 ≤ voltage ≤ MAX_VOLTAGE            → VoltageOutOfRange
  4. Check timestamp is non-empty               → EmptyTimestamp
  5. Commit through the event feed:
       journal NewReading → append reading → append index to device list
       → publish NewReading
  6. Return the assigned index

Every check runs before any mutation, so a raised error means nothing
changed. The device index list is only ever extended inside step 5,
after the reading it points at, so it can never reference a position
beyond the global sequence.

Point reads take no lock. They only see list slots that are already
filled. get_stats() locks because it combines several reads into one view.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from voltledger.core.events import EventFeed
from voltledger.core.exceptions import (
    EmptyTimestamp,
    IndexOutOfBounds,
    JournalCorruptedError,
    NoReadings,
    OwnerMismatchError,
    Unauthorized,
    VoltageOutOfRange,
)
from voltledger.core.models import (
    MAX_VOLTAGE,
    DeviceAuthorized,
    DeviceDeauthorized,
    NewReading,
    Reading,
    event_from_payload,
)
from voltledger.core.registry import AuthorizationRegistry
from voltledger.storage.journal import Journal, JournalEntry

logger = logging.getLogger(__name__)


class ReadingLedger:
    """
    Global reading sequence plus a per-device index into it.

    Internal state:
        _readings   - List[Reading], position == permanent index
        _by_device  - Dict[device, List[int]] of global indices,
                      strictly increasing, in submission order

    Build one directly on a registry for in-memory use, or via
    ReadingLedger.open() to back it with a journal.
    """

    def __init__(self, registry: AuthorizationRegistry) -> None:
        self.registry = registry
        self.feed     = registry.feed

        self._readings:  List[Reading]         = []
        self._by_device: Dict[str, List[int]]  = {}

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def open(
        cls,
        owner:        Optional[str] = None,
        journal_path: Optional[Path] = None,
        fsync:        bool = False,
    ) -> "ReadingLedger":
        """
        Build a ledger, restoring state from journal_path if it exists.

        owner may be None only when reopening an existing journal, in
        which case the journal's genesis owner is adopted.

        Raises:
            ValueError             - no owner and no journal file to restore from
            OwnerMismatchError     - journal belongs to a different owner
            JournalCorruptedError  - journal fails validation or replay, or is
                                     an empty file and no owner was given
        """
        if journal_path is None:
            if owner is None:
                raise ValueError("owner is required for an in-memory ledger")
            return cls(AuthorizationRegistry(owner))

        journal = Journal(Path(journal_path), fsync=fsync)
        entries: List[JournalEntry] = []

        if journal.exists():
            entries      = journal.load()
            stored_owner = journal.genesis_owner(entries)
            if owner is not None and owner != stored_owner:
                raise OwnerMismatchError(
                    "Journal belongs to a different owner",
                    {"path": str(journal.path), "owner": stored_owner},
                )
            owner = stored_owner
        elif owner is None:
            if journal.path.exists():
                raise JournalCorruptedError(
                    "Journal is empty and has no genesis entry",
                    {"path": str(journal.path)},
                )
            raise ValueError(
                f"owner is required to create a new journal at {journal.path}"
            )

        ledger = cls(AuthorizationRegistry(owner, EventFeed(journal=journal)))

        if entries:
            ledger._replay(entries[1:])
            logger.info(
                "Restored ledger from %s: %d events, %d readings",
                journal.path, len(ledger.feed), ledger.total_count(),
            )
        else:
            journal.create(owner)
        return ledger

    # ── Submission ────────────────────────────────────────────

    def submit(self, caller: str, voltage: int, timestamp: str) -> int:
        """
        Append a reading from caller and return its global index.

        Args:
            caller:    Authenticated identity of the submitting device.
            voltage:   Scaled integer voltage (123.4567 V → 1234567).
            timestamp: Caller-supplied, opaque, non-empty.

        Raises:
            Unauthorized      - caller is not an authorized device
            VoltageOutOfRange - voltage < 0 or voltage > MAX_VOLTAGE
            EmptyTimestamp    - timestamp == ""
            TypeError         - voltage is not an int, or timestamp not a str
        """
        with self.registry.lock:
            if not self.registry.is_authorized(caller):
                raise Unauthorized(
                    "Caller is not an authorized device", {"caller": caller}
                )
            self._check_voltage(voltage)
            self._check_timestamp(timestamp)

            index = len(self._readings)
            event = NewReading(
                sequence=  self.feed.next_sequence,
                device=    caller,
                voltage=   voltage,
                timestamp= timestamp,
                index=     index,
            )
            self.feed.commit(event, lambda: self._append(event))
            return index

    # ── Queries ───────────────────────────────────────────────

    def total_count(self) -> int:
        return len(self._readings)

    def device_count(self, device: str) -> int:
        return len(self._by_device.get(device, ()))

    def get_reading(self, index: int) -> Reading:
        """Raises IndexOutOfBounds unless 0 ≤ index < total_count()."""
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"index must be int, got {type(index).__name__}")
        readings = self._readings
        if index < 0 or index >= len(readings):
            raise IndexOutOfBounds(
                "Reading index out of bounds",
                {"index": index, "total": len(readings)},
            )
        return readings[index]

    def get_device_readings(self, device: str) -> List[Tuple[int, str]]:
        """(voltage, timestamp) pairs in submission order. Empty if none."""
        indices = list(self._by_device.get(device, ()))
        return [self._readings[i].as_pair() for i in indices]

    def get_latest_reading(self, device: str) -> Tuple[int, str]:
        """Raises NoReadings if device has never submitted."""
        indices = self._by_device.get(device)
        if not indices:
            raise NoReadings("Device has no readings", {"device": device})
        return self._readings[indices[-1]].as_pair()

    def get_device_indices(self, device: str) -> List[int]:
        """Global indices of device's readings, in submission order."""
        return list(self._by_device.get(device, ()))

    def devices(self) -> List[str]:
        """Every device that has ever submitted, sorted."""
        return sorted(list(self._by_device))

    def get_stats(self) -> Dict[str, Any]:
        """
        Return a consistent ledger state snapshot.

        Taken under the mutation lock, so every field describes the same commit.
        """
        journal = self.feed.journal
        with self.registry.lock:
            return {
                "owner":              self.registry.owner,
                "total_readings":     self.total_count(),
                "readings_by_device": {
                    d: self.device_count(d) for d in self.devices()
                },
                "authorized_devices": self.registry.authorized_devices(),
                "next_sequence":      self.feed.next_sequence,
                "journal":            str(journal.path) if journal else None,
            }

    # ── Internal ──────────────────────────────────────────────

    def _append(self, event: NewReading) -> None:
        # Reading first, index second: a visible index always resolves.
        self._readings.append(
            Reading(voltage=event.voltage, timestamp=event.timestamp, device=event.device)
        )
        self._by_device.setdefault(event.device, []).append(event.index)

    @staticmethod
    def _check_voltage(voltage: int) -> None:
        if isinstance(voltage, bool) or not isinstance(voltage, int):
            raise TypeError(
                f"voltage must be a scaled int, got {type(voltage).__name__}"
            )
        if voltage < 0 or voltage > MAX_VOLTAGE:
            raise VoltageOutOfRange(
                "Voltage out of range",
                {"voltage": voltage, "max": MAX_VOLTAGE},
            )

    @staticmethod
    def _check_timestamp(timestamp: str) -> None:
        if not isinstance(timestamp, str):
            raise TypeError(
                f"timestamp must be str, got {type(timestamp).__name__}"
            )
        if not timestamp:
            raise EmptyTimestamp("Timestamp must not be empty")

    def _replay(self, entries: List[JournalEntry]) -> None:
        """Rebuild registry, readings and feed from journaled events."""
        with self.registry.lock:
            for entry in entries:
                try:
                    event = event_from_payload(
                        entry.entry_type, entry.event_sequence, entry.payload
                    )
                except ValueError as exc:
                    raise JournalCorruptedError(
                        str(exc), {"sequence": entry.sequence}
                    ) from exc

                if isinstance(event, (DeviceAuthorized, DeviceDeauthorized)):
                    self.registry.replay(event)
                    continue

                self._check_replayed_reading(event)
                self.feed.replay(event, lambda: self._append(event))

    def _check_replayed_reading(self, event: NewReading) -> None:
        problem = None
        if not self.registry.is_authorized(event.device):
            problem = "reading from a device that was not authorized"
        elif event.index != len(self._readings):
            problem = f"reading index {event.index} != expected {len(self._readings)}"
        else:
            try:
                self._check_voltage(event.voltage)
                self._check_timestamp(event.timestamp)
            except (TypeError, VoltageOutOfRange, EmptyTimestamp) as exc:
                problem = str(exc)

        if problem:
            raise JournalCorruptedError(
                f"Invalid journaled reading: {problem}",
                {"sequence": event.sequence, "device": event.device},
            )
