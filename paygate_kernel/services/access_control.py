"""
AccessControl -- the single administrative capability.

Responsibility:
    Answers ``has_admin_capability(caller)`` and raises ``UnauthorizedError``
    from ``require_admin``.  Holds the set of administrator identities and
    lets an existing administrator grant or revoke the capability.

Architecture position:
    Kernel > Services.  Consulted by AdminConfig and PeriodState before
    every mutation.  The kernel does not resolve identity; callers are
    opaque strings supplied by the outer surface.

Invariants enforced:
    - There is exactly one capability (ADMIN_CAPABILITY); no hierarchy.
    - At least one administrator always remains (LastAdministratorError).

Failure modes:
    - UnauthorizedError: caller lacks the capability.
    - LastAdministratorError: revoking the final administrator.
"""

from __future__ import annotations

import threading
from typing import Iterable, Protocol

from paygate_kernel.exceptions import LastAdministratorError, UnauthorizedError
from paygate_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.access_control")

ADMIN_CAPABILITY = "admin"


class AdminAuthority(Protocol):
    """What the kernel consumes from an access-control collaborator."""

    def has_admin_capability(self, caller: str) -> bool: ...


def require_admin(authority: AdminAuthority, caller: str) -> None:
    """Raise UnauthorizedError unless ``caller`` holds the admin capability."""
    if not authority.has_admin_capability(caller):
        with LogContext.bind(actor_id=caller):
            logger.warning(
                "admin_capability_denied", extra={"capability": ADMIN_CAPABILITY}
            )
        raise UnauthorizedError(ADMIN_CAPABILITY, caller)


class AccessControl:
    """
    In-process administrator registry.

    Contract:
        Constructed with the initial administrators (at least one).

    Guarantees:
        - Membership checks are O(1).
        - grant/revoke are themselves admin-gated.
    """

    def __init__(self, admins: Iterable[str]):
        self._admins: set[str] = {a for a in admins if a}
        if not self._admins:
            raise ValueError("AccessControl requires at least one administrator")
        self._lock = threading.Lock()

    def has_admin_capability(self, caller: str) -> bool:
        with self._lock:
            return caller in self._admins

    def require_admin(self, caller: str) -> None:
        require_admin(self, caller)

    @property
    def administrators(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._admins)

    def grant_admin(self, caller: str, grantee: str) -> None:
        """Give ``grantee`` the admin capability.  Granting twice is harmless."""
        self.require_admin(caller)
        if not grantee or not grantee.strip():
            raise ValueError("grantee must be a non-empty identity")
        with self._lock:
            self._admins.add(grantee)
        with LogContext.bind(actor_id=caller):
            logger.info("admin_granted", extra={"grantee": grantee})

    def revoke_admin(self, caller: str, revokee: str) -> None:
        """Remove the admin capability from ``revokee``."""
        self.require_admin(caller)
        with self._lock:
            if revokee not in self._admins:
                return
            if len(self._admins) == 1:
                raise LastAdministratorError(revokee)
            self._admins.discard(revokee)
        with LogContext.bind(actor_id=caller):
            logger.info("admin_revoked", extra={"revokee": revokee})
