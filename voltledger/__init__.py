"""
voltledger/__init__.py

VoltLedger: access-controlled, append-only ledger of device voltage readings.

    registry  - owner-managed device allowlist
    ledger    - global reading sequence + per-device index
    feed      - commit-ordered event log (NewReading, DeviceAuthorized,
                DeviceDeauthorized)
    journal   - hash-chained JSONL file the ledger is rebuilt from
"""

__version__ = "0.1.0"

from voltledger.core.events import EventFeed
from voltledger.core.exceptions import (
    AccessError,
    AlreadyAuthorized,
    ConfigError,
    EmptyTimestamp,
    IndexOutOfBounds,
    JournalCorruptedError,
    NoReadings,
    NotAuthorized,
    OwnerMismatchError,
    QueryError,
    StorageError,
    Unauthorized,
    ValidationError,
    VoltageOutOfRange,
    VoltLedgerError,
)
from voltledger.core.ledger import ReadingLedger
from voltledger.core.models import (
    MAX_VOLTAGE,
    VOLTAGE_SCALE,
    DeviceAuthorized,
    DeviceDeauthorized,
    EventType,
    NewReading,
    Reading,
    format_voltage,
    parse_voltage,
)
from voltledger.core.registry import AuthorizationRegistry
from voltledger.storage.journal import Journal

__all__ = [
    # Core types
    "AuthorizationRegistry",
    "ReadingLedger",
    "EventFeed",
    "Journal",
    "Reading",
    "EventType",
    "NewReading",
    "DeviceAuthorized",
    "DeviceDeauthorized",
    # Errors
    "VoltLedgerError",
    "AccessError",
    "Unauthorized",
    "AlreadyAuthorized",
    "NotAuthorized",
    "ValidationError",
    "VoltageOutOfRange",
    "EmptyTimestamp",
    "QueryError",
    "IndexOutOfBounds",
    "NoReadings",
    "StorageError",
    "JournalCorruptedError",
    "OwnerMismatchError",
    "ConfigError",
    # Helpers
    "parse_voltage",
    "format_voltage",
    # Constants
    "MAX_VOLTAGE",
    "VOLTAGE_SCALE",
]
