#!/usr/bin/env python3
"""
Payment gate admin shell.

Loads a settings file, wires a PaymentSystem and reads commands line by
line.  Every command runs as the session caller (``--as`` at startup) unless
the command itself carries ``--as NAME``.

Usage:
    python scripts/admin_shell.py [--config PATH] [--as CALLER]

Commands:
    set-fee AMOUNT            set-payout AMOUNT
    set-month MONTH           set-year YEAR
    set-oracle REFERENCE
    grant-admin ACCOUNT       revoke-admin ACCOUNT
    register ACCOUNT KIND [DAYS] [--suspended]   (static:// oracles only)
    collect AMOUNT            disburse
    status                    help
    quit
"""

import argparse
import shlex
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

from paygate_config import get_active_settings
from paygate_config.bridges import PaymentSystem, build_payment_system
from paygate_kernel.exceptions import PaygateError
from paygate_kernel.logging_config import configure_logging
from paygate_kernel.services.funds_transfer import Treasury
from paygate_kernel.services.oracle_client import StaticIdentityOracle

PROMPT = "paygate> "
DEFAULT_REGISTRATION_DAYS = 365

HELP_TEXT = """\
  set-fee AMOUNT            exact fee payers must supply
  set-payout AMOUNT         amount paid to each payee per period
  set-month MONTH           1..12, also sends a payment reminder
  set-year YEAR             must be above the year floor
  set-oracle REFERENCE      identity oracle used for eligibility
  grant-admin ACCOUNT       give ACCOUNT the admin capability
  revoke-admin ACCOUNT      remove the admin capability
  register ACCOUNT KIND [DAYS] [--suspended]
                            add ACCOUNT to a static:// oracle
  collect AMOUNT            pay this period's fee as the caller
  disburse                  take this period's payout as the caller
  status                    show period, amounts and oracle
  quit                      leave the shell
  Any command accepts --as NAME to run as a different caller."""


def fmt_amount(v) -> str:
    """Format amount for display (e.g. 1,234.50)."""
    d = Decimal(str(v))
    return f"{d:,.2f}"


def _split_caller(tokens: list[str], default_caller: str) -> tuple[list[str], str]:
    """Pull ``--as NAME`` out of a token list."""
    caller = default_caller
    rest: list[str] = []
    it = iter(tokens)
    for token in it:
        if token == "--as":
            caller = next(it, "")
            if not caller:
                raise ValueError("--as requires a caller name")
        else:
            rest.append(token)
    return rest, caller


def _require_args(command: str, args: list[str], count: int) -> None:
    if len(args) < count:
        raise ValueError(f"{command}: expected {count} argument(s), got {len(args)}")


def _register(system: PaymentSystem, args: list[str], out) -> None:
    suspended = "--suspended" in args
    args = [a for a in args if a != "--suspended"]
    _require_args("register", args, 2)
    account, kind = args[0], args[1]
    days = int(args[2]) if len(args) > 2 else DEFAULT_REGISTRATION_DAYS

    oracle = system.resolver.resolve(system.admin_config.oracle_reference)
    if not isinstance(oracle, StaticIdentityOracle):
        raise ValueError("register only works with a static:// oracle")
    expires_at = system.clock.now() + timedelta(days=days)
    classification = oracle.register(account, kind, expires_at, suspended=suspended)
    print(
        f"  registered {account} as {classification.kind.value} "
        f"until {expires_at.isoformat()}"
        + (" (suspended)" if suspended else ""),
        file=out,
    )


def print_status(system: PaymentSystem, out=None) -> None:
    out = out or sys.stdout
    period = system.period_state.current()
    snapshot = system.admin_config.snapshot()
    print(f"  period:         {period.code} (year floor {system.period_state.year_floor})", file=out)
    print(f"  fee:            {fmt_amount(snapshot.fee_amount)}", file=out)
    print(f"  payout:         {fmt_amount(snapshot.payout_amount)}", file=out)
    print(f"  oracle:         {snapshot.oracle_reference}", file=out)
    admins = ", ".join(sorted(system.access_control.administrators))
    print(f"  administrators: {admins}", file=out)
    if isinstance(system.funds, Treasury):
        print(f"  treasury:       {fmt_amount(system.funds.balance)}", file=out)


def run_command(system: PaymentSystem, caller: str, line: str, out=None) -> bool:
    """
    Execute one shell line.

    Returns False when the shell should stop.  Kernel errors are printed with
    their code and never end the session.
    """
    out = out or sys.stdout
    try:
        tokens = shlex.split(line)
    except ValueError as exc:
        print(f"  ERROR: {exc}", file=out)
        return True
    if not tokens:
        return True

    command, raw_args = tokens[0].lower(), tokens[1:]
    try:
        args, who = _split_caller(raw_args, caller)

        if command in ("quit", "exit"):
            return False
        elif command == "help":
            print(HELP_TEXT, file=out)
        elif command == "status":
            print_status(system, out)
        elif command == "set-fee":
            _require_args(command, args, 1)
            value = system.admin_config.set_fee(who, args[0])
            print(f"  fee set to {fmt_amount(value)}", file=out)
        elif command == "set-payout":
            _require_args(command, args, 1)
            value = system.admin_config.set_payout(who, args[0])
            print(f"  payout set to {fmt_amount(value)}", file=out)
        elif command == "set-month":
            _require_args(command, args, 1)
            period = system.period_state.set_month(who, int(args[0]))
            print(f"  period is now {period.code}", file=out)
        elif command == "set-year":
            _require_args(command, args, 1)
            period = system.period_state.set_year(who, int(args[0]))
            print(f"  period is now {period.code}", file=out)
        elif command == "set-oracle":
            _require_args(command, args, 1)
            reference = system.admin_config.set_oracle(who, args[0])
            print(f"  oracle set to {reference}", file=out)
        elif command == "grant-admin":
            _require_args(command, args, 1)
            system.access_control.grant_admin(who, args[0])
            print(f"  {args[0]} is now an administrator", file=out)
        elif command == "revoke-admin":
            _require_args(command, args, 1)
            system.access_control.revoke_admin(who, args[0])
            print(f"  {args[0]} is no longer an administrator", file=out)
        elif command == "register":
            _register(system, args, out)
        elif command == "collect":
            _require_args(command, args, 1)
            receipt = system.gateway.collect_fee(who, args[0])
            print(
                f"  collected {fmt_amount(receipt.amount)} from {who} for {receipt.period.code}",
                file=out,
            )
        elif command == "disburse":
            receipt = system.gateway.disburse(who)
            print(
                f"  paid {fmt_amount(receipt.amount)} to {who} for {receipt.period.code}",
                file=out,
            )
        else:
            print(f"  Unknown command: {command} (try 'help')", file=out)
    except PaygateError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=out)
    except (ValueError, TypeError, KeyError) as exc:
        print(f"  ERROR: {exc}", file=out)
    return True


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Payment gate admin shell")
    parser.add_argument("--config", type=Path, default=None, help="settings YAML file")
    parser.add_argument(
        "--as", dest="caller", default=None,
        help="caller identity (defaults to the first configured administrator)",
    )
    args = parser.parse_args(argv)

    try:
        settings = get_active_settings(args.config)
    except (FileNotFoundError, KeyError, ValueError) as exc:
        print(f"  ERROR: cannot load settings: {exc}", file=sys.stderr)
        return 1

    configure_logging(level=settings.log_level)
    system = build_payment_system(settings)
    caller = args.caller or settings.administrators[0]

    print(f"  Payment gate {settings.settings_id} v{settings.version}, acting as {caller}")
    print_status(system)
    while True:
        try:
            line = input(PROMPT)
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not run_command(system, caller, line):
            break
    return 0


if __name__ == "__main__":
    sys.exit(main())
