"""Recipient-side notification inbox."""
from __future__ import annotations

from sqlalchemy.orm import Session

from ..domain_errors import Forbidden, NotFound
from ..models import Notification, User


def list_notifications_use_case(*, db: Session, current_user: User, unread_only: bool = True) -> list[Notification]:
    query = db.query(Notification).filter(
        Notification.user_id == current_user.id,
        Notification.reposition_id.isnot(None),
    )
    if unread_only:
        query = query.filter(Notification.read == False)  # noqa: E712
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_notification_read_use_case(*, db: Session, notification_id: int, current_user: User) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if notification is None:
        raise NotFound(code="NOTIFICATION_NOT_FOUND", message="Notificación no encontrada")
    if notification.user_id != current_user.id:
        raise Forbidden(
            code="NOTIFICATION_FORBIDDEN",
            message="Solo el destinatario puede marcar la notificación como leída",
        )
    if not notification.read:
        notification.read = True
        db.commit()
    return notification
