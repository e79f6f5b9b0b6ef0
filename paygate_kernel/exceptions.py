"""
Typed Exception Hierarchy for the Payment Gate Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A gated payment either happens exactly once or it does not happen at all, and
the caller has to know precisely why it was refused. Every refusal therefore:
  1. Has a TYPED exception class (catch by type, not by message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Carries structured DATA (the account, the period, the expected value)

Example:
    try:
        gateway.collect_fee(account, value)
    except AlreadySettledError as e:
        tell_user(f"Already paid for {e.period_code}")
    except IncorrectAmountError as e:
        api_response(code=e.code, expected=e.expected)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PaygateError (base)
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |   +-- WrongParticipantClassError
    |   +-- SuspendedParticipantError
    |   +-- LastAdministratorError
    |
    +-- ValidationError
    |   +-- ZeroAmountError
    |   +-- InvalidReferenceError
    |   +-- InvalidMonthError
    |   +-- InvalidYearError
    |   +-- IncorrectAmountError
    |
    +-- StateConflictError
    |   +-- AlreadySettledError
    |
    +-- DependencyError
        +-- OracleUnavailableError
        +-- AttributeExpiredError
        +-- TransferFailedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                     | When Raised
----------------|--------------------------|--------------------------------------
Authorization   | UNAUTHORIZED             | Caller lacks the admin capability
                | WRONG_PARTICIPANT_CLASS  | Payer disbursing / payee paying fees
                | SUSPENDED_PARTICIPANT    | Oracle reports the account suspended
                | LAST_ADMINISTRATOR       | Revoking the only administrator
----------------|--------------------------|--------------------------------------
Validation      | ZERO_AMOUNT              | Fee or payout set to zero
                | INVALID_REFERENCE        | Oracle reference empty
                | INVALID_MONTH            | Month outside 1..12
                | INVALID_YEAR             | Year not above the epoch floor
                | INCORRECT_AMOUNT         | Fee value differs from fee amount
----------------|--------------------------|--------------------------------------
State conflict  | ALREADY_SETTLED          | Action already done this period
----------------|--------------------------|--------------------------------------
Dependency      | ORACLE_UNAVAILABLE       | Oracle call could not complete
                | ATTRIBUTE_EXPIRED        | Classification expiry has passed
                | TRANSFER_FAILED          | Funds transfer reported failure

===============================================================================
HANDLING PATTERNS
===============================================================================

1. AUTHORIZATION errors are reported to the caller and never retried.
2. VALIDATION errors mean the caller must correct input and resubmit.
3. ALREADY_SETTLED is a no-op from the caller's point of view: do not
   resubmit within the same period.
4. DEPENDENCY errors are surfaced as-is. Retry policy belongs to the caller.
   TRANSFER_FAILED guarantees the ledger was not marked.
"""

from datetime import datetime
from decimal import Decimal


class PaygateError(Exception):
    """
    Base exception for all payment gate errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYGATE_ERROR"


# Authorization


class AuthorizationError(PaygateError):
    """Base exception for refusals based on who the caller is."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Caller does not hold the capability required for the operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, capability: str, caller: str):
        self.capability = capability
        self.caller = caller
        super().__init__(f"Caller {caller} lacks required capability '{capability}'")


class WrongParticipantClassError(AuthorizationError):
    """Caller's classification does not match the class the action requires."""

    code: str = "WRONG_PARTICIPANT_CLASS"

    def __init__(self, account: str, expected: str, actual: str):
        self.account = account
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Account {account} is classified '{actual}', expected '{expected}'"
        )


class SuspendedParticipantError(AuthorizationError):
    """Oracle reports the caller as suspended."""

    code: str = "SUSPENDED_PARTICIPANT"

    def __init__(self, account: str):
        self.account = account
        super().__init__(f"Account {account} is suspended")


class LastAdministratorError(AuthorizationError):
    """Revoking this administrator would leave nobody able to administer."""

    code: str = "LAST_ADMINISTRATOR"

    def __init__(self, caller: str):
        self.caller = caller
        super().__init__(f"Cannot revoke {caller}: last remaining administrator")


# Validation


class ValidationError(PaygateError):
    """Base exception for rejected input values."""

    code: str = "VALIDATION_ERROR"


class ZeroAmountError(ValidationError):
    """Fee or payout amount must be greater than zero."""

    code: str = "ZERO_AMOUNT"

    def __init__(self, field: str, amount: Decimal):
        self.field = field
        self.amount = amount
        super().__init__(f"{field} must be greater than zero, got {amount}")


class InvalidReferenceError(ValidationError):
    """Oracle reference is empty."""

    code: str = "INVALID_REFERENCE"

    def __init__(self, reference: str | None):
        self.reference = reference
        super().__init__(f"Invalid oracle reference: {reference!r}")


class InvalidMonthError(ValidationError):
    """Month outside 1..12."""

    code: str = "INVALID_MONTH"

    def __init__(self, month: int):
        self.month = month
        super().__init__(f"Invalid month {month}: must be between 1 and 12")


class InvalidYearError(ValidationError):
    """Year is not strictly greater than the configured epoch floor."""

    code: str = "INVALID_YEAR"

    def __init__(self, year: int, floor: int):
        self.year = year
        self.floor = floor
        super().__init__(f"Invalid year {year}: must be greater than {floor}")


class IncorrectAmountError(ValidationError):
    """Supplied fee value is not exactly the configured fee amount."""

    code: str = "INCORRECT_AMOUNT"

    def __init__(self, account: str, expected: Decimal, received: Decimal | object):
        self.account = account
        self.expected = expected
        self.received = received
        super().__init__(
            f"Incorrect amount from {account}: expected {expected}, received {received}"
        )


# State conflict


class StateConflictError(PaygateError):
    """Base exception for actions conflicting with recorded state."""

    code: str = "STATE_CONFLICT"


class AlreadySettledError(StateConflictError):
    """The (account, period, kind) slot is already settled."""

    code: str = "ALREADY_SETTLED"

    def __init__(self, account: str, period_code: str, kind: str):
        self.account = account
        self.period_code = period_code
        self.kind = kind
        super().__init__(f"{kind} for {account} already settled in {period_code}")


# Dependency failures


class DependencyError(PaygateError):
    """Base exception for failures of external collaborators."""

    code: str = "DEPENDENCY_ERROR"


class OracleUnavailableError(DependencyError):
    """Identity oracle call could not complete."""

    code: str = "ORACLE_UNAVAILABLE"

    def __init__(self, reference: str, reason: str):
        self.reference = reference
        self.reason = reason
        super().__init__(f"Oracle {reference} unavailable: {reason}")


class AttributeExpiredError(DependencyError):
    """Classification expiry is not in the future."""

    code: str = "ATTRIBUTE_EXPIRED"

    def __init__(self, account: str, expires_at: datetime):
        self.account = account
        self.expires_at = expires_at
        super().__init__(
            f"Classification for {account} expired at {expires_at.isoformat()}"
        )


class TransferFailedError(DependencyError):
    """Funds transfer did not complete; nothing was recorded."""

    code: str = "TRANSFER_FAILED"

    def __init__(self, account: str, amount: Decimal, reason: str = "transfer rejected"):
        self.account = account
        self.amount = amount
        self.reason = reason
        super().__init__(f"Transfer of {amount} for {account} failed: {reason}")
