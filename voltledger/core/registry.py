"""
Authorization Registry

Owns the immutable owner identity and the set of devices allowed to
submit readings. Owns the mutation lock that the ReadingLedger shares,
so an allowlist change and a submission never interleave.
"""

import logging
import threading
from typing import List, Optional, Set

from voltledger.core.events import EventFeed
from voltledger.core.exceptions import (
    AlreadyAuthorized,
    JournalCorruptedError,
    NotAuthorized,
    Unauthorized,
)
from voltledger.core.models import DeviceAuthorized, DeviceDeauthorized

logger = logging.getLogger(__name__)


def _check_identity(role: str, value) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{role} must be a non-empty string, got {value!r}")


class AuthorizationRegistry:
    """
    Owner-managed device allowlist.

    Re-authorizing or re-deauthorizing a device already in the target
    state is rejected, so every DeviceAuthorized/DeviceDeauthorized
    event corresponds to a real state transition. A deauthorized device
    may be authorized again later; that emits a fresh DeviceAuthorized.
    """

    def __init__(self, owner: str, feed: Optional[EventFeed] = None) -> None:
        _check_identity("owner", owner)

        self._owner:      str             = owner
        self._authorized: Set[str]        = set()
        self._lock:       threading.RLock = threading.RLock()
        self.feed:        EventFeed       = feed if feed is not None else EventFeed()

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def lock(self) -> threading.RLock:
        """Mutation lock shared with the ledger built on this registry."""
        return self._lock

    # ── Mutations (owner only) ────────────────────────────────

    def authorize(self, caller: str, device: str) -> DeviceAuthorized:
        """
        Add device to the allowlist.

        Raises:
            Unauthorized      - caller is not the owner
            AlreadyAuthorized - device is already on the allowlist
            ValueError        - device is not a non-empty string
        """
        _check_identity("device", device)
        with self._lock:
            self._require_owner(caller, "authorize")
            if device in self._authorized:
                logger.warning("authorize rejected: %s already authorized", device)
                raise AlreadyAuthorized(
                    "Device is already authorized", {"device": device}
                )

            event = DeviceAuthorized(sequence=self.feed.next_sequence, device=device)
            self.feed.commit(event, lambda: self._authorized.add(device))
            logger.info("Authorized device %s", device)
            return event

    def deauthorize(self, caller: str, device: str) -> DeviceDeauthorized:
        """
        Remove device from the allowlist. Its readings stay in the ledger.

        Raises:
            Unauthorized  - caller is not the owner
            NotAuthorized - device is not on the allowlist
            ValueError    - device is not a non-empty string
        """
        _check_identity("device", device)
        with self._lock:
            self._require_owner(caller, "deauthorize")
            if device not in self._authorized:
                logger.warning("deauthorize rejected: %s not authorized", device)
                raise NotAuthorized(
                    "Device is not authorized", {"device": device}
                )

            event = DeviceDeauthorized(sequence=self.feed.next_sequence, device=device)
            self.feed.commit(event, lambda: self._authorized.discard(device))
            logger.info("Deauthorized device %s", device)
            return event

    # ── Queries ───────────────────────────────────────────────

    def is_authorized(self, device: str) -> bool:
        return device in self._authorized

    def authorized_devices(self) -> List[str]:
        """Sorted snapshot of the allowlist."""
        with self._lock:
            return sorted(self._authorized)

    # ── Replay ────────────────────────────────────────────────

    def replay(self, event) -> None:
        """
        Re-apply a journaled allowlist event without re-journaling it.
        Raises JournalCorruptedError if the event is not a valid transition.
        """
        if not isinstance(event, (DeviceAuthorized, DeviceDeauthorized)):
            raise TypeError(f"Not an allowlist event: {type(event).__name__}")
        if not isinstance(event.device, str) or not event.device:
            raise JournalCorruptedError(
                "Journal names an invalid device identity",
                {"device": repr(event.device), "sequence": event.sequence},
            )

        if isinstance(event, DeviceAuthorized):
            if event.device in self._authorized:
                raise JournalCorruptedError(
                    "Journal authorizes an already authorized device",
                    {"device": event.device, "sequence": event.sequence},
                )
            self.feed.replay(event, lambda: self._authorized.add(event.device))
        else:
            if event.device not in self._authorized:
                raise JournalCorruptedError(
                    "Journal deauthorizes a device that is not authorized",
                    {"device": event.device, "sequence": event.sequence},
                )
            self.feed.replay(event, lambda: self._authorized.discard(event.device))

    # ── Internal ──────────────────────────────────────────────

    def _require_owner(self, caller: str, operation: str) -> None:
        if caller != self._owner:
            logger.warning("%s rejected: caller %s is not the owner", operation, caller)
            raise Unauthorized(
                "Only the owner may change the allowlist",
                {"caller": caller, "operation": operation},
            )
