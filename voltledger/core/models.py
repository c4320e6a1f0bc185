"""
voltledger/core/models.py

VoltLedger Data Model

Fixed-point voltage
    voltage is an int scaled by VOLTAGE_SCALE (4 decimal digits).
    123.4567 V  →  1234567
    Valid range: 0 ≤ voltage ≤ MAX_VOLTAGE (1000.0000 V).
    No float ever enters or leaves this module.

Records
    Reading           - immutable ledger entry (voltage, timestamp, device)

Events (published in commit order, one per committed mutation)
    NewReading        - device, voltage, timestamp, index
    DeviceAuthorized  - device
    DeviceDeauthorized - device

Every event carries `sequence`: its 0-based position in the commit order.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Tuple, Union


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

VOLTAGE_DECIMALS = 4
VOLTAGE_SCALE    = 10 ** VOLTAGE_DECIMALS
MAX_VOLTAGE      = 1000 * VOLTAGE_SCALE

GENESIS_HASH = "0" * 64


# ─────────────────────────────────────────────────────────────
# Reading
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Reading:
    """A single device measurement. Never mutated after creation."""

    voltage:   int
    timestamp: str
    device:    str

    def as_pair(self) -> Tuple[int, str]:
        """(voltage, timestamp) view used by the per-device queries."""
        return (self.voltage, self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ─────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────

class EventType:
    """Event name constants. Also used as journal entry_type values."""
    NEW_READING         = "NewReading"
    DEVICE_AUTHORIZED   = "DeviceAuthorized"
    DEVICE_DEAUTHORIZED = "DeviceDeauthorized"


@dataclass(frozen=True)
class NewReading:
    sequence:  int
    device:    str
    voltage:   int
    timestamp: str
    index:     int

    event_type = EventType.NEW_READING

    def payload(self) -> Dict[str, Any]:
        return {
            "device":    self.device,
            "voltage":   self.voltage,
            "timestamp": self.timestamp,
            "index":     self.index,
        }


@dataclass(frozen=True)
class DeviceAuthorized:
    sequence: int
    device:   str

    event_type = EventType.DEVICE_AUTHORIZED

    def payload(self) -> Dict[str, Any]:
        return {"device": self.device}


@dataclass(frozen=True)
class DeviceDeauthorized:
    sequence: int
    device:   str

    event_type = EventType.DEVICE_DEAUTHORIZED

    def payload(self) -> Dict[str, Any]:
        return {"device": self.device}


LedgerEvent = Union[NewReading, DeviceAuthorized, DeviceDeauthorized]

_EVENT_CLASSES = {
    EventType.NEW_READING:         NewReading,
    EventType.DEVICE_AUTHORIZED:   DeviceAuthorized,
    EventType.DEVICE_DEAUTHORIZED: DeviceDeauthorized,
}

EVENT_TYPES = frozenset(_EVENT_CLASSES)


def event_from_payload(
    event_type: str,
    sequence:   int,
    payload:    Dict[str, Any],
) -> LedgerEvent:
    """
    Rebuild an event from its journaled form.
    Raises ValueError on an unknown event_type or missing fields.
    """
    cls = _EVENT_CLASSES.get(event_type)
    if cls is None:
        raise ValueError(
            f"Unknown event type '{event_type}'. Valid: {sorted(EVENT_TYPES)}"
        )
    try:
        return cls(sequence=sequence, **payload)
    except TypeError as exc:
        raise ValueError(f"Malformed {event_type} payload: {exc}") from exc


# ─────────────────────────────────────────────────────────────
# Fixed-point helpers
# ─────────────────────────────────────────────────────────────

def parse_voltage(text: str) -> int:
    """
    Parse a decimal voltage string into scaled integer form.

        parse_voltage("220.1234") → 2201234
        parse_voltage("5")        → 50000

    Raises ValueError for non-numeric input or more than
    VOLTAGE_DECIMALS fractional digits. Range is NOT checked here;
    that is the ledger's job at submission time.
    """
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Not a decimal voltage: {text!r}") from exc

    if not value.is_finite():
        raise ValueError(f"Not a decimal voltage: {text!r}")

    scaled = value.scaleb(VOLTAGE_DECIMALS)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Voltage {text!r} has more than {VOLTAGE_DECIMALS} decimal places"
        )
    return int(scaled)


def format_voltage(voltage: int) -> str:
    """Render a scaled voltage with exactly VOLTAGE_DECIMALS places."""
    sign  = "-" if voltage < 0 else ""
    whole, frac = divmod(abs(voltage), VOLTAGE_SCALE)
    return f"{sign}{whole}.{frac:0{VOLTAGE_DECIMALS}d}"
