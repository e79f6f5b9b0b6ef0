"""
EligibilityOracleClient -- classification lookups against an identity oracle.

Responsibility:
    Resolves the identity oracle named by the current oracle reference,
    asks it to classify an account, and adds the expiry check the gateway
    requires.  Suspension is reported, never raised, so callers can tell
    the refusal reasons apart.

Architecture position:
    Kernel > Services.  Called by PaymentGateway as the first step of
    every gated action.  Oracles are injected capability objects, so tests
    substitute ``StaticIdentityOracle``.

Invariants enforced:
    - The oracle is re-resolved from ``oracle_reference`` on every call, so
      an admin ``set_oracle`` applies to the next classification.
    - ``expires_at <= now`` is expired (AttributeExpiredError).
    - Any failure to obtain a well-formed classification is
      OracleUnavailableError.  HTTP calls are bounded by a timeout.

Failure modes:
    - OracleUnavailableError: unknown reference, transport error, timeout,
      non-success status, malformed body.
    - AttributeExpiredError: from ensure_current / classify_current.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Protocol
from urllib.parse import quote

import httpx

from paygate_kernel.domain.clock import Clock, SystemClock
from paygate_kernel.domain.values import Classification, ParticipantKind
from paygate_kernel.exceptions import AttributeExpiredError, OracleUnavailableError
from paygate_kernel.logging_config import get_logger

logger = get_logger("services.oracle")

# Classification returned for accounts the oracle has never seen.
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
UNKNOWN_CLASSIFICATION = Classification(
    kind=ParticipantKind.OTHER, expires_at=EPOCH, suspended=False
)

DEFAULT_TIMEOUT_SECONDS = 5.0


class IdentityOracle(Protocol):
    def classify(self, account: str) -> Classification: ...


class ReferenceSource(Protocol):
    @property
    def oracle_reference(self) -> str: ...


# ---------------------------------------------------------------------------
# Oracle adapters
# ---------------------------------------------------------------------------


class StaticIdentityOracle:
    """
    In-process oracle backed by a dict.

    Used by tests and by the admin shell.  ``set_available(False)``
    simulates an unreachable oracle.
    """

    def __init__(self, name: str = "static"):
        self.name = name
        self._records: dict[str, Classification] = {}
        self._available = True
        self._lock = threading.Lock()

    def register(
        self,
        account: str,
        kind: ParticipantKind | str,
        expires_at: datetime,
        suspended: bool = False,
    ) -> Classification:
        classification = Classification(
            kind=ParticipantKind(kind), expires_at=expires_at, suspended=suspended
        )
        with self._lock:
            self._records[account] = classification
        return classification

    def suspend(self, account: str) -> None:
        self._set_suspended(account, True)

    def reinstate(self, account: str) -> None:
        self._set_suspended(account, False)

    def revoke(self, account: str) -> None:
        with self._lock:
            self._records.pop(account, None)

    def set_available(self, available: bool) -> None:
        self._available = available

    def classify(self, account: str) -> Classification:
        if not self._available:
            raise OracleUnavailableError(self.name, "oracle offline")
        with self._lock:
            return self._records.get(account, UNKNOWN_CLASSIFICATION)

    def _set_suspended(self, account: str, suspended: bool) -> None:
        with self._lock:
            current = self._records.get(account)
            if current is None:
                raise KeyError(f"Account not registered with oracle {self.name}: {account}")
            self._records[account] = replace(current, suspended=suspended)


def parse_expiry(value: Any) -> datetime:
    """Parse ``expires_at`` from ISO-8601 text or epoch seconds (always UTC-aware)."""
    if isinstance(value, bool):
        raise ValueError(f"Cannot parse expiry from {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise ValueError(f"Cannot parse expiry from {value!r}")


def parse_classification(data: Any) -> Classification:
    """
    Build a Classification from an oracle JSON body.

    Raises:
        ValueError / KeyError: if the body is not a well-formed classification.
    """
    if not isinstance(data, dict):
        raise ValueError("classification body must be an object")
    suspended = data.get("suspended", False)
    if not isinstance(suspended, bool):
        raise ValueError(f"suspended must be boolean, got {suspended!r}")
    return Classification(
        kind=ParticipantKind(data["kind"]),
        expires_at=parse_expiry(data["expires_at"]),
        suspended=suspended,
    )


def account_path_segment(account: str) -> str:
    """Percent-encode ``account`` so it stays a single, literal path segment."""
    return quote(account, safe="").replace(".", "%2E")


class HttpIdentityOracle:
    """
    Identity oracle reached over HTTP.

    ``GET {base_url}/classifications/{account}`` returns
    ``{"kind": "payer", "expires_at": "...", "suspended": false}``.
    404 means the oracle does not know the account.

    The account is sent as one fully escaped path segment: slashes, dots
    and query characters never change which resource is asked for.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    def classify(self, account: str) -> Classification:
        try:
            response = self._client.get(f"/classifications/{account_path_segment(account)}")
        except httpx.TimeoutException as exc:
            raise OracleUnavailableError(self.base_url, "timeout") from exc
        except httpx.HTTPError as exc:
            raise OracleUnavailableError(self.base_url, f"transport error: {exc}") from exc

        if response.status_code == 404:
            return UNKNOWN_CLASSIFICATION
        if response.status_code != 200:
            raise OracleUnavailableError(
                self.base_url, f"unexpected status {response.status_code}"
            )
        try:
            return parse_classification(response.json())
        except (ValueError, KeyError) as exc:
            raise OracleUnavailableError(self.base_url, f"malformed response: {exc}") from exc

    def close(self) -> None:
        self._client.close()


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


OracleFactory = Callable[[str], IdentityOracle]


def http_oracle_factory(timeout: float = DEFAULT_TIMEOUT_SECONDS) -> OracleFactory:
    """Factory that builds an HttpIdentityOracle for http(s) references."""

    def _build(reference: str) -> IdentityOracle:
        if not reference.startswith(("http://", "https://")):
            raise OracleUnavailableError(reference, "no oracle registered for reference")
        return HttpIdentityOracle(reference, timeout=timeout)

    return _build


class OracleResolver:
    """Maps oracle references to oracle instances, building them on demand."""

    def __init__(self, factory: OracleFactory | None = None):
        self._oracles: dict[str, IdentityOracle] = {}
        self._factory = factory
        self._lock = threading.Lock()

    def register(self, reference: str, oracle: IdentityOracle) -> None:
        with self._lock:
            self._oracles[reference] = oracle

    def resolve(self, reference: str) -> IdentityOracle:
        with self._lock:
            oracle = self._oracles.get(reference)
            if oracle is not None:
                return oracle
            if self._factory is None:
                raise OracleUnavailableError(reference, "no oracle registered for reference")
            oracle = self._factory(reference)
            self._oracles[reference] = oracle
            return oracle


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class EligibilityOracleClient:
    """
    Contract:
        ``classify`` never inspects expiry or suspension.  ``ensure_current``
        raises AttributeExpiredError when ``expires_at <= clock.now()``.
    """

    def __init__(
        self,
        config: ReferenceSource,
        resolver: OracleResolver,
        clock: Clock | None = None,
    ):
        self._config = config
        self._resolver = resolver
        self._clock = clock or SystemClock()

    def classify(self, account: str) -> Classification:
        return self._lookup(account)

    def ensure_current(self, account: str, classification: Classification) -> Classification:
        if not classification.is_current(self._clock.now()):
            raise AttributeExpiredError(account, classification.expires_at)
        return classification

    def classify_current(self, account: str) -> Classification:
        return self.ensure_current(account, self.classify(account))

    def _lookup(self, account: str) -> Classification:
        reference = self._config.oracle_reference
        oracle = self._resolver.resolve(reference)
        try:
            classification = oracle.classify(account)
        except OracleUnavailableError:
            logger.warning("oracle_unavailable", extra={"reference": reference}, exc_info=True)
            raise
        except (httpx.HTTPError, OSError) as exc:
            logger.warning("oracle_unavailable", extra={"reference": reference}, exc_info=True)
            raise OracleUnavailableError(reference, str(exc)) from exc
        if not isinstance(classification, Classification):
            raise OracleUnavailableError(
                reference, f"oracle returned {type(classification).__name__}"
            )
        logger.debug(
            "account_classified",
            extra={
                "reference": reference,
                "kind": classification.kind,
                "expires_at": classification.expires_at,
                "suspended": classification.suspended,
            },
        )
        return classification
