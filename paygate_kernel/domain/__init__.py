"""
Domain layer -- pure value types and rules, zero I/O.

Nothing in this package touches the database, the network or the system
clock (except ``SystemClock``).
"""

from paygate_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from paygate_kernel.domain.eligibility import (
    caller_class_matches_required,
    required_class_for,
)
from paygate_kernel.domain.values import (
    ActionKind,
    Classification,
    LedgerKey,
    ParticipantKind,
    Period,
    to_amount,
)

__all__ = [
    "ActionKind",
    "Classification",
    "Clock",
    "DeterministicClock",
    "LedgerKey",
    "ParticipantKind",
    "Period",
    "SystemClock",
    "caller_class_matches_required",
    "required_class_for",
    "to_amount",
]
