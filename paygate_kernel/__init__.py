"""
Payment Gate Kernel

A period-keyed payment ledger where eligibility comes from an external
identity oracle:
- One fee collection per payer per period
- One payout per payee per period
- Ledger marked only after funds moved
- Admin-gated fee, payout, period and oracle configuration
"""

__version__ = "0.1.0"
