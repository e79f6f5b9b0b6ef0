"""AccessControl: the single admin capability and its grant/revoke rules."""

import pytest

from paygate_kernel.exceptions import LastAdministratorError, UnauthorizedError
from paygate_kernel.services.access_control import ADMIN_CAPABILITY, AccessControl


@pytest.fixture
def access():
    return AccessControl(["registrar"])


def test_requires_an_initial_administrator():
    with pytest.raises(ValueError):
        AccessControl([])
    with pytest.raises(ValueError):
        AccessControl([""])


def test_membership(access):
    assert access.has_admin_capability("registrar")
    assert not access.has_admin_capability("alice")


def test_require_admin_raises_with_capability(access, captured_logs):
    with pytest.raises(UnauthorizedError) as exc_info:
        access.require_admin("alice")

    assert exc_info.value.capability == ADMIN_CAPABILITY
    assert exc_info.value.code == "UNAUTHORIZED"
    denied = [r for r in captured_logs() if r["message"] == "admin_capability_denied"]
    assert denied and denied[0]["actor_id"] == "alice"


def test_grant_then_new_admin_can_act(access):
    access.grant_admin("registrar", "bursar")
    assert access.administrators == frozenset({"registrar", "bursar"})
    access.grant_admin("bursar", "dean")
    assert access.has_admin_capability("dean")


def test_grant_is_admin_gated(access):
    with pytest.raises(UnauthorizedError):
        access.grant_admin("alice", "alice")
    assert not access.has_admin_capability("alice")


def test_grant_rejects_blank_identity(access):
    with pytest.raises(ValueError):
        access.grant_admin("registrar", "  ")


def test_revoke(access):
    access.grant_admin("registrar", "bursar")
    access.revoke_admin("bursar", "registrar")
    assert access.administrators == frozenset({"bursar"})


def test_revoke_unknown_is_noop(access):
    access.revoke_admin("registrar", "nobody")
    assert access.administrators == frozenset({"registrar"})


def test_last_administrator_cannot_be_revoked(access):
    with pytest.raises(LastAdministratorError):
        access.revoke_admin("registrar", "registrar")
    assert access.has_admin_capability("registrar")
