"""
PeriodState -- owner of the single live accounting period.

Responsibility:
    Holds the current (month, year), validates admin updates to it, and
    announces each change.  Optionally mirrors the live period into a
    ``PeriodMarkerStore`` so it survives restarts.

Architecture position:
    Kernel > Services.  Read by PaymentGateway on every action; written only
    through the admin-gated setters.

Invariants enforced:
    - 1 <= month <= 12 (InvalidMonthError).
    - year > year_floor, where year_floor is fixed at construction
      (InvalidYearError).  The initial period obeys the same rules.
    - A rejected update leaves the live period unchanged and emits nothing.
    - Each successful set_month emits CurrentMonthChanged followed by
      PaymentReminder; each successful set_year emits CurrentYearChanged.
    - Notifications are published before the lock is released, so
      observers receive them in commit order.

Failure modes:
    - UnauthorizedError: caller lacks the admin capability.
    - InvalidMonthError / InvalidYearError: value out of range.
    - Store errors propagate; the in-memory period is only replaced after
      the store accepted the new value.
"""

from __future__ import annotations

import threading
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from paygate_kernel.db.engine import session_scope
from paygate_kernel.domain.notifications import (
    CurrentMonthChanged,
    CurrentYearChanged,
    PaymentReminder,
)
from paygate_kernel.domain.values import Period
from paygate_kernel.exceptions import InvalidMonthError, InvalidYearError
from paygate_kernel.logging_config import LogContext, get_logger
from paygate_kernel.models.period_marker import LIVE_SLOT, PeriodMarker
from paygate_kernel.services.access_control import AdminAuthority, require_admin
from paygate_kernel.services.notification_bus import NotificationBus

logger = get_logger("services.period")


class PeriodMarkerStore(Protocol):
    def load(self) -> Period | None: ...

    def save(self, period: Period, actor: str) -> None: ...


class SqlPeriodMarkerStore:
    """Persists the live period as the single ``period_markers`` row."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def load(self) -> Period | None:
        with session_scope(self._session_factory) as session:
            marker = session.execute(
                select(PeriodMarker).where(PeriodMarker.slot == LIVE_SLOT)
            ).scalar_one_or_none()
            if marker is None:
                return None
            return Period(month=marker.month, year=marker.year)

    def save(self, period: Period, actor: str) -> None:
        with session_scope(self._session_factory) as session:
            marker = session.execute(
                select(PeriodMarker).where(PeriodMarker.slot == LIVE_SLOT)
            ).scalar_one_or_none()
            if marker is None:
                session.add(
                    PeriodMarker(
                        slot=LIVE_SLOT,
                        month=period.month,
                        year=period.year,
                        created_by=actor,
                    )
                )
            else:
                marker.month = period.month
                marker.year = period.year
                marker.updated_by = actor


def _check_month(month: int) -> None:
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise InvalidMonthError(month)


def _check_year(year: int, floor: int) -> None:
    if isinstance(year, bool) or not isinstance(year, int) or year <= floor:
        raise InvalidYearError(year, floor)


class PeriodState:
    """
    The live accounting period.

    Contract:
        ``current()`` is a pure read.  ``set_month``/``set_year`` are
        admin-gated and validated.

    Guarantees:
        - Reads and writes are serialized on ``lock`` (shared with the
          gateway when wired through ``paygate_config.bridges``).
    """

    SYSTEM_ACTOR = "system"

    def __init__(
        self,
        initial: Period,
        year_floor: int,
        authority: AdminAuthority,
        notifications: NotificationBus | None = None,
        store: PeriodMarkerStore | None = None,
        lock: threading.RLock | None = None,
    ):
        self._year_floor = year_floor
        self._authority = authority
        self._notifications = notifications or NotificationBus()
        self._store = store
        self._lock = lock or threading.RLock()

        period = initial
        if store is not None:
            stored = store.load()
            if stored is not None:
                period = stored
        _check_year(period.year, year_floor)
        if store is not None and period is initial:
            store.save(period, self.SYSTEM_ACTOR)
        self._period = period

        logger.info(
            "period_state_initialized",
            extra={
                "period_code": period.code,
                "year_floor": year_floor,
                "persistent": store is not None,
            },
        )

    @property
    def year_floor(self) -> int:
        return self._year_floor

    def current(self) -> Period:
        with self._lock:
            return self._period

    def set_month(self, caller: str, month: int) -> Period:
        """
        Make ``month`` the current month of the live period.

        Raises:
            UnauthorizedError: If caller is not an administrator.
            InvalidMonthError: If month is not within 1..12.
        """
        with LogContext.bind(actor_id=caller):
            require_admin(self._authority, caller)
            _check_month(month)
            with self._lock:
                previous = self._period
                updated = previous.with_month(month)
                self._commit(updated, caller)
                logger.info(
                    "current_month_changed",
                    extra={"from": previous.code, "to": updated.code},
                )
                self._notifications.publish(CurrentMonthChanged(month=month))
                self._notifications.publish(PaymentReminder())
        return updated

    def set_year(self, caller: str, year: int) -> Period:
        """
        Make ``year`` the current year of the live period.

        Raises:
            UnauthorizedError: If caller is not an administrator.
            InvalidYearError: If year is not above the epoch floor.
        """
        with LogContext.bind(actor_id=caller):
            require_admin(self._authority, caller)
            _check_year(year, self._year_floor)
            with self._lock:
                previous = self._period
                updated = previous.with_year(year)
                self._commit(updated, caller)
                logger.info(
                    "current_year_changed",
                    extra={"from": previous.code, "to": updated.code},
                )
                self._notifications.publish(CurrentYearChanged(year=year))
        return updated

    def _commit(self, period: Period, actor: str) -> None:
        if self._store is not None:
            self._store.save(period, actor)
        self._period = period
