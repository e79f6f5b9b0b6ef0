"""
Eligibility -- pure rules deciding who may perform which action.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Called by
    PaymentGateway after the classification has been fetched.

Invariants enforced:
    - Fee collection requires PAYER; payout requires PAYEE.
    - ``caller_class_matches_required`` is the single place the class match
      is decided.  A caller matches only when its class EQUALS the required
      class; OTHER never matches.
"""

from paygate_kernel.domain.values import ActionKind, ParticipantKind

_REQUIRED_CLASS: dict[ActionKind, ParticipantKind] = {
    ActionKind.FEE: ParticipantKind.PAYER,
    ActionKind.PAYOUT: ParticipantKind.PAYEE,
}


def required_class_for(kind: ActionKind) -> ParticipantKind:
    """Participant class an action is reserved for."""
    return _REQUIRED_CLASS[kind]


def caller_class_matches_required(
    caller_kind: ParticipantKind,
    required: ParticipantKind,
) -> bool:
    return caller_kind == required
