"""
tests/test_registry.py

Authorization registry: owner-only mutations, idempotent rejection,
events emitted exactly once per real transition.
"""

import pytest

from voltledger import (
    AlreadyAuthorized,
    AuthorizationRegistry,
    DeviceAuthorized,
    DeviceDeauthorized,
    NotAuthorized,
    Unauthorized,
)

OWNER = "0xowner"
DEV   = "0xdevice"


@pytest.fixture
def registry():
    return AuthorizationRegistry(OWNER)


class TestOwner:

    def test_owner_fixed_at_construction(self, registry):
        assert registry.owner == OWNER

    def test_owner_is_read_only(self, registry):
        with pytest.raises(AttributeError):
            registry.owner = "0xsomeone-else"

    @pytest.mark.parametrize("owner", ["", None, 42])
    def test_invalid_owner_rejected(self, owner):
        with pytest.raises(ValueError):
            AuthorizationRegistry(owner)


class TestAuthorize:

    def test_authorize_then_lookup(self, registry):
        assert not registry.is_authorized(DEV)
        registry.authorize(OWNER, DEV)
        assert registry.is_authorized(DEV)

    def test_authorize_twice_rejected(self, registry):
        registry.authorize(OWNER, DEV)
        with pytest.raises(AlreadyAuthorized) as exc_info:
            registry.authorize(OWNER, DEV)
        assert exc_info.value.details == {"device": DEV}

    def test_non_owner_cannot_authorize(self, registry):
        with pytest.raises(Unauthorized):
            registry.authorize(DEV, DEV)
        assert not registry.is_authorized(DEV)

    def test_authorized_device_cannot_authorize_others(self, registry):
        registry.authorize(OWNER, DEV)
        with pytest.raises(Unauthorized):
            registry.authorize(DEV, "0xfriend")

    def test_owner_check_precedes_membership_check(self, registry):
        registry.authorize(OWNER, DEV)
        with pytest.raises(Unauthorized):
            registry.authorize("0xstranger", DEV)

    def test_authorize_emits_event(self, registry):
        event = registry.authorize(OWNER, DEV)
        assert event == DeviceAuthorized(sequence=0, device=DEV)
        assert registry.feed.events() == [event]

    @pytest.mark.parametrize("device", ["", None, 7, b"0xdevice"])
    def test_invalid_device_identity_rejected(self, registry, device):
        with pytest.raises(ValueError):
            registry.authorize(OWNER, device)
        assert len(registry.feed) == 0
        assert registry.authorized_devices() == []


class TestDeauthorize:

    def test_deauthorize_removes_device(self, registry):
        registry.authorize(OWNER, DEV)
        registry.deauthorize(OWNER, DEV)
        assert not registry.is_authorized(DEV)

    def test_deauthorize_twice_rejected(self, registry):
        registry.authorize(OWNER, DEV)
        registry.deauthorize(OWNER, DEV)
        with pytest.raises(NotAuthorized):
            registry.deauthorize(OWNER, DEV)

    def test_deauthorize_unknown_rejected(self, registry):
        with pytest.raises(NotAuthorized):
            registry.deauthorize(OWNER, DEV)

    @pytest.mark.parametrize("device", ["", None, 7])
    def test_invalid_device_identity_rejected(self, registry, device):
        registry.authorize(OWNER, DEV)
        with pytest.raises(ValueError):
            registry.deauthorize(OWNER, device)
        assert len(registry.feed) == 1

    def test_non_owner_cannot_deauthorize(self, registry):
        registry.authorize(OWNER, DEV)
        with pytest.raises(Unauthorized):
            registry.deauthorize(DEV, DEV)
        assert registry.is_authorized(DEV)

    def test_reauthorization_emits_fresh_event(self, registry):
        registry.authorize(OWNER, DEV)
        registry.deauthorize(OWNER, DEV)
        registry.authorize(OWNER, DEV)

        assert registry.feed.events() == [
            DeviceAuthorized(sequence=0, device=DEV),
            DeviceDeauthorized(sequence=1, device=DEV),
            DeviceAuthorized(sequence=2, device=DEV),
        ]

    def test_rejections_emit_nothing(self, registry):
        registry.authorize(OWNER, DEV)
        for call in (
            lambda: registry.authorize(OWNER, DEV),
            lambda: registry.authorize("0xstranger", "0xother"),
            lambda: registry.deauthorize(OWNER, "0xother"),
            lambda: registry.deauthorize("0xstranger", DEV),
        ):
            with pytest.raises(Exception):
                call()
        assert len(registry.feed) == 1


class TestSnapshot:

    def test_authorized_devices_sorted(self, registry):
        for device in ("0xc", "0xa", "0xb"):
            registry.authorize(OWNER, device)
        registry.deauthorize(OWNER, "0xb")
        assert registry.authorized_devices() == ["0xa", "0xc"]

    def test_snapshot_survives_rejected_identities(self, registry):
        registry.authorize(OWNER, "0xa")
        with pytest.raises(ValueError):
            registry.authorize(OWNER, 7)
        assert registry.authorized_devices() == ["0xa"]
