"""
VoltLedger Exception Hierarchy

All exceptions inherit from VoltLedgerError for easy catching.
Every rejection is raised before any state is touched, so a caught
VoltLedgerError always means "nothing changed".
"""


class VoltLedgerError(Exception):
    """Base exception for all VoltLedger errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# ── Access ────────────────────────────────────────────────────

class AccessError(VoltLedgerError):
    """Raised when an allowlist check or mutation is rejected"""
    pass


class Unauthorized(AccessError):
    """Caller lacks the privilege the operation requires"""
    pass


class AlreadyAuthorized(AccessError):
    """Device is already on the allowlist"""
    pass


class NotAuthorized(AccessError):
    """Device is not on the allowlist"""
    pass


# ── Submission ────────────────────────────────────────────────

class ValidationError(VoltLedgerError):
    """Raised when a submitted reading is rejected"""
    pass


class VoltageOutOfRange(ValidationError):
    """Voltage is negative or above MAX_VOLTAGE"""
    pass


class EmptyTimestamp(ValidationError):
    """Timestamp has no content"""
    pass


# ── Queries ───────────────────────────────────────────────────

class QueryError(VoltLedgerError):
    """Raised when a lookup has nothing to return"""
    pass


class IndexOutOfBounds(QueryError):
    """Requested index is outside the global sequence"""
    pass


class NoReadings(QueryError):
    """Device has never submitted a reading"""
    pass


# ── Storage / config ──────────────────────────────────────────

class StorageError(VoltLedgerError):
    """Raised when journal operations fail"""
    pass


class JournalCorruptedError(StorageError):
    """Raised when a journal fails to load or its hash chain is broken"""
    pass


class OwnerMismatchError(StorageError):
    """Raised when a journal is reopened under a different owner"""
    pass


class ConfigError(VoltLedgerError):
    """Raised when configuration is missing or malformed"""
    pass
