"""
voltledger/storage/journal.py

Hash-chained JSONL journal of committed ledger events.

Layout - one JSON object per line:

    {"sequence": 0, "entry_type": "genesis",  "payload": {"owner": ...}, ...}
    {"sequence": 1, "entry_type": "DeviceAuthorized", "payload": {...}, ...}
    {"sequence": 2, "entry_type": "NewReading",       "payload": {...}, ...}

Chain contract:
    entry 0 (genesis)   causal_hash = GENESIS_HASH ("0" * 64)
    entry n (n ≥ 1)     causal_hash = SHA-256(JCS(entry n-1 .to_dict()))

Event entries carry the event's commit sequence implicitly:
    event.sequence == entry.sequence - 1

append() contract, in this exact order:
    1. Acquire lock
    2. Build entry with next sequence and causal_hash from the last entry
    3. Write the line (optionally fsync)
    4. On a failed write, cut the file back to its previous length
    5. Advance chain head - only after the write succeeded

If the file cannot be cut back, the journal refuses every later append:
a torn line would otherwise end up glued to the next entry.
"""

import hashlib
import json
import logging
import os
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import jcs

from voltledger.core.exceptions import JournalCorruptedError, StorageError
from voltledger.core.models import EVENT_TYPES, GENESIS_HASH, MAX_VOLTAGE, VOLTAGE_SCALE

logger = logging.getLogger(__name__)

GENESIS = "genesis"


def _link_hash(entry: Dict[str, Any]) -> str:
    # Entries hold only strings, ints and nested objects, so the RFC 8785
    # form of an entry is the same bytes on every platform.
    return hashlib.sha256(jcs.canonicalize(entry)).hexdigest()


def _committed_at() -> str:
    """Wall-clock UTC stamp for committed_at, millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class JournalEntry:
    """A single journal line."""
    sequence:     int
    entry_type:   str
    committed_at: str
    payload:      Dict[str, Any]
    causal_hash:  str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence":     self.sequence,
            "entry_type":   self.entry_type,
            "committed_at": self.committed_at,
            "payload":      self.payload,
            "causal_hash":  self.causal_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            sequence=     data["sequence"],
            entry_type=   data["entry_type"],
            committed_at= data["committed_at"],
            payload=      data["payload"],
            causal_hash=  data["causal_hash"],
        )

    def compute_hash(self) -> str:
        """Hash the next entry must carry as its causal_hash."""
        return _link_hash(self.to_dict())

    @property
    def event_sequence(self) -> int:
        """Commit sequence of the event this entry records."""
        return self.sequence - 1


@dataclass
class JournalViolation:
    """A single problem found by Journal.verify()."""
    line:   int
    kind:   str   # "parse" | "schema" | "sequence_gap" | "chain_break" | "genesis"
    detail: str


@dataclass
class JournalReport:
    """Aggregate result of a full journal verification pass."""
    path:              str
    total_entries:     int
    chain_valid:       bool
    owner:             Optional[str]
    violations:        List[JournalViolation] = field(default_factory=list)
    entry_type_counts: Dict[str, int]         = field(default_factory=dict)
    head_hash:         Optional[str]          = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path":              self.path,
            "total_entries":     self.total_entries,
            "chain_valid":       self.chain_valid,
            "owner":             self.owner,
            "head_hash":         self.head_hash,
            "entry_type_counts": dict(self.entry_type_counts),
            "violations": [
                {"line": v.line, "kind": v.kind, "detail": v.detail}
                for v in self.violations
            ],
        }


class Journal:
    """
    Append-only journal file.

    Usage:
        journal = Journal(Path("data/ledger.jsonl"))
        if journal.exists():
            entries = journal.load()      # validates chain, restores head
        else:
            journal.create(owner="0xabc")
        journal.append("NewReading", {...})
    """

    def __init__(self, path: Path, fsync: bool = False) -> None:
        self.path  = Path(path)
        self.fsync = fsync

        self._lock:       threading.Lock         = threading.Lock()
        self._sequence:   int                    = 0
        self._last_entry: Optional[JournalEntry] = None
        self._torn:       Optional[str]          = None

    def exists(self) -> bool:
        return self.path.exists() and self.path.stat().st_size > 0

    @property
    def next_sequence(self) -> int:
        return self._sequence

    # ── Writing ───────────────────────────────────────────────

    def create(self, owner: str) -> JournalEntry:
        """Write the genesis entry. Raises StorageError if the journal is not empty."""
        if self.exists() or self._sequence:
            raise StorageError(
                "Journal already initialized", {"path": str(self.path)}
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        entry = self.append(
            GENESIS,
            {
                "owner":         owner,
                "max_voltage":   MAX_VOLTAGE,
                "voltage_scale": VOLTAGE_SCALE,
            },
        )
        logger.info("Created journal %s for owner %s", self.path, owner)
        return entry

    def append(self, entry_type: str, payload: Dict[str, Any]) -> JournalEntry:
        """
        Append one entry. State advances only after the line is on disk.

        Raises StorageError on any I/O failure. A partially written line
        is truncated away; if that also fails, the journal is marked torn
        and every later append raises StorageError without touching the file.
        """
        with self._lock:
            if self._torn is not None:
                raise StorageError(
                    "Journal is torn by an earlier failed write; reopen it to continue",
                    {"path": str(self.path), "cause": self._torn},
                )

            entry = JournalEntry(
                sequence=     self._sequence,
                entry_type=   entry_type,
                committed_at= _committed_at(),
                payload=      payload,
                causal_hash=  (
                    self._last_entry.compute_hash()
                    if self._last_entry else GENESIS_HASH
                ),
            )
            line = json.dumps(entry.to_dict(), sort_keys=True) + "\n"

            try:
                size_before = self.path.stat().st_size if self.path.exists() else 0
            except OSError as exc:
                raise StorageError(
                    f"Cannot stat journal: {exc}", {"path": str(self.path)}
                ) from exc

            try:
                with open(self.path, "a", encoding="utf-8") as f:
                    f.write(line)
                    if self.fsync:
                        f.flush()
                        os.fsync(f.fileno())
            except OSError as exc:
                logger.error("Journal write failed for %s: %s", self.path, exc)
                self._rollback(size_before, exc)
                raise StorageError(
                    f"Journal write failed: {exc}", {"path": str(self.path)}
                ) from exc

            self._sequence  += 1
            self._last_entry = entry
            return entry

    # ── Reading ───────────────────────────────────────────────

    def load(self) -> List[JournalEntry]:
        """
        Read and validate every entry, then restore the chain head.

        Raises:
            FileNotFoundError      - journal does not exist
            JournalCorruptedError  - parse error, bad genesis, gap, or chain break
        """
        report, entries = self._scan()
        if report.violations:
            first = report.violations[0]
            raise JournalCorruptedError(
                f"Journal corrupted at line {first.line}: {first.detail}",
                {"path": str(self.path), "kind": first.kind},
            )

        with self._lock:
            self._sequence   = len(entries)
            self._last_entry = entries[-1] if entries else None
        return entries

    def verify(self) -> JournalReport:
        """
        Full verification pass. Reports problems instead of raising.
        Raises OSError (FileNotFoundError included) only when the file
        itself cannot be opened or read.
        """
        report, _ = self._scan()
        return report

    def genesis_owner(self, entries: List[JournalEntry]) -> str:
        if not entries or entries[0].entry_type != GENESIS:
            raise JournalCorruptedError(
                "Journal has no genesis entry", {"path": str(self.path)}
            )
        return entries[0].payload["owner"]

    # ── Internal ──────────────────────────────────────────────

    def _rollback(self, size: int, cause: OSError) -> None:
        """Cut the file back to size after a failed append. Caller holds the lock."""
        try:
            os.truncate(self.path, size)
        except OSError as exc:
            self._torn = str(cause)
            logger.error(
                "Could not roll back partial write to %s (%s); "
                "refusing further appends", self.path, exc,
            )
        else:
            logger.warning("Rolled back partial write to %s at byte %d", self.path, size)

    def _scan(self):
        if not self.path.exists():
            raise FileNotFoundError(f"Journal not found: {self.path}")

        entries:    List[JournalEntry]     = []
        violations: List[JournalViolation] = []
        owner:      Optional[str]          = None

        with open(self.path, "rb") as f:
            for line_num, raw in enumerate(f, 1):
                try:
                    line = raw.decode("utf-8").strip()
                except UnicodeDecodeError as exc:
                    violations.append(JournalViolation(line_num, "parse", f"not UTF-8: {exc}"))
                    break
                if not line:
                    continue
                try:
                    entry = JournalEntry.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, TypeError) as exc:
                    violations.append(JournalViolation(line_num, "parse", str(exc)))
                    break

                problem = self._check_entry(entry, entries)
                if problem:
                    kind, detail = problem
                    violations.append(JournalViolation(line_num, kind, detail))
                    break

                if entry.entry_type == GENESIS:
                    owner = entry.payload.get("owner")
                entries.append(entry)

        if not entries and not violations:
            violations.append(JournalViolation(1, "genesis", "journal is empty"))

        counts = Counter(e.entry_type for e in entries)
        report = JournalReport(
            path=              str(self.path),
            total_entries=     len(entries),
            chain_valid=       not violations,
            owner=             owner,
            violations=        violations,
            entry_type_counts= dict(counts),
            head_hash=         entries[-1].compute_hash() if entries else None,
        )
        return report, entries

    @staticmethod
    def _check_entry(entry: JournalEntry, previous: List[JournalEntry]):
        """Return (kind, detail) for the first problem with entry, or None."""
        expected_seq = len(previous)
        if entry.sequence != expected_seq:
            return (
                "sequence_gap",
                f"expected sequence {expected_seq}, got {entry.sequence!r}",
            )

        if expected_seq == 0:
            if entry.entry_type != GENESIS:
                return ("genesis", f"first entry is '{entry.entry_type}', not genesis")
            owner = entry.payload.get("owner") if isinstance(entry.payload, dict) else None
            if not isinstance(owner, str) or not owner:
                return ("genesis", "genesis entry has no owner")
            if entry.payload.get("max_voltage") != MAX_VOLTAGE:
                return (
                    "genesis",
                    f"journal max_voltage {entry.payload.get('max_voltage')!r} "
                    f"does not match {MAX_VOLTAGE}",
                )
            expected_hash = GENESIS_HASH
        else:
            if entry.entry_type not in EVENT_TYPES:
                return ("schema", f"unknown entry_type '{entry.entry_type}'")
            if not isinstance(entry.payload, dict):
                return ("schema", "payload must be an object")
            expected_hash = previous[-1].compute_hash()

        if entry.causal_hash != expected_hash:
            return (
                "chain_break",
                f"expected causal_hash ...{expected_hash[-12:]}, "
                f"got ...{str(entry.causal_hash)[-12:]}",
            )
        return None
