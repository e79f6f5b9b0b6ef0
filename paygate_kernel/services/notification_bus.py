"""
NotificationBus -- synchronous fan-out of kernel notifications.

Emits every notification as a structured log event (``observability_event``
field, stable extras) and then hands it to each subscriber in subscription
order.  Publishing happens after the state change is committed, so a
subscriber that raises cannot undo it: the failure is logged with the
subscriber name and delivery continues with the next subscriber.

Usage:
    bus = NotificationBus()
    bus.subscribe(lambda n: print(n.to_payload()))
    bus.publish(FeeAmountChanged(amount=Decimal("100")))
"""

from __future__ import annotations

import threading
from typing import Callable

from paygate_kernel.domain.notifications import Notification
from paygate_kernel.logging_config import get_logger

logger = get_logger("services.notifications")

Subscriber = Callable[[Notification], None]


class NotificationBus:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register ``subscriber``; returns a callable that unsubscribes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return _unsubscribe

    def publish(self, notification: Notification) -> None:
        logger.info(
            notification.name,
            extra={"observability_event": "notification", **notification.to_payload()},
        )
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(notification)
            except Exception:
                logger.error(
                    "notification_delivery_failed",
                    exc_info=True,
                    extra={
                        "notification": notification.name,
                        "subscriber": getattr(subscriber, "__qualname__", repr(subscriber)),
                    },
                )
