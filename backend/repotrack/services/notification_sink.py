"""Post-commit notification delivery.

Use-cases collect NotificationIntent values while the transaction is open
(recipients are resolved against the same snapshot) and hand them to a
NotificationSink only after commit. Delivery is best-effort: a failing
recipient is logged and never undoes the state change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol

from sqlalchemy.orm import Session

from ..models import Notification, User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationIntent:
    user_id: int
    type: str
    title: str
    message: str
    reposition_id: int | None = None


class NotificationSink(Protocol):
    def notify(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        reposition_id: int | None,
    ) -> None: ...


def user_ids_in_areas(
    db: Session,
    areas: Iterable[str],
    *,
    exclude_user_ids: Iterable[int] = (),
) -> list[int]:
    excluded = set(exclude_user_ids)
    rows = (
        db.query(User.id)
        .filter(User.area.in_(tuple(areas)), User.is_active == True)  # noqa: E712
        .order_by(User.id.asc())
        .all()
    )
    return [row[0] for row in rows if row[0] not in excluded]


def intents_for(
    user_ids: Iterable[int],
    *,
    type: str,
    title: str,
    message: str,
    reposition_id: int | None,
) -> list[NotificationIntent]:
    return [
        NotificationIntent(user_id=user_id, type=type, title=title, message=message, reposition_id=reposition_id)
        for user_id in user_ids
    ]


def dispatch_notifications(sink: NotificationSink | None, intents: Iterable[NotificationIntent]) -> int:
    """Deliver every intent; returns how many the sink accepted."""
    if sink is None:
        return 0
    delivered = 0
    for intent in intents:
        try:
            sink.notify(intent.user_id, intent.type, intent.title, intent.message, intent.reposition_id)
        except Exception:
            logger.exception(
                f"Notification delivery failed: type={intent.type} user={intent.user_id} "
                f"reposition={intent.reposition_id}"
            )
            continue
        delivered += 1
    return delivered


class DatabaseNotificationSink:
    """Stores each notification in its own session, then pushes it to live clients."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        push: Callable[..., object] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._push = push

    def notify(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        reposition_id: int | None,
    ) -> None:
        db = self._session_factory()
        try:
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                reposition_id=reposition_id,
                read=False,
            )
            db.add(notification)
            db.commit()
            notification_id = notification.id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        if self._push is None:
            return
        try:
            self._push(user_id, notification_id, type, title, message, reposition_id)
        except Exception:
            # Stored row is authoritative; live push is optional.
            logger.warning(f"Live push unavailable for notification {notification_id}", exc_info=True)
