from __future__ import annotations

import logging

import pytest

from repotrack.database import SessionLocal
from repotrack.domain_errors import Forbidden, NotFound
from repotrack.models import Notification
from repotrack.services.notification_sink import (
    DatabaseNotificationSink,
    NotificationIntent,
    dispatch_notifications,
)
from repotrack.use_cases.notifications import list_notifications_use_case, mark_notification_read_use_case

from conftest import RecordingSink


def _intent(user_id: int, reposition_id: int | None = None) -> NotificationIntent:
    return NotificationIntent(
        user_id=user_id,
        type="new_reposition",
        title="Nueva Solicitud de Reposición",
        message="Se ha creado una nueva solicitud",
        reposition_id=reposition_id,
    )


def test_dispatch_logs_and_skips_failed_recipients(caplog) -> None:
    sink = RecordingSink(fail_for={2})
    with caplog.at_level(logging.ERROR, logger="repotrack.services.notification_sink"):
        delivered = dispatch_notifications(sink, [_intent(1), _intent(2), _intent(3)])

    assert delivered == 2
    assert [intent.user_id for intent in sink.delivered] == [1, 3]
    assert "user=2" in caplog.text


def test_dispatch_without_sink_is_a_no_op() -> None:
    assert dispatch_notifications(None, [_intent(1)]) == 0


def test_database_sink_stores_row_and_pushes(db_session, users, approved_reposition) -> None:
    pushed = []
    sink = DatabaseNotificationSink(SessionLocal, push=lambda *args: pushed.append(args))

    sink.notify(users["bordado"].id, "reposition_transfer", "Nueva Transferencia", "Hola", approved_reposition.id)

    rows = db_session.query(Notification).filter(Notification.user_id == users["bordado"].id).all()
    assert len(rows) == 1
    assert rows[0].read is False
    assert pushed == [(users["bordado"].id, rows[0].id, "reposition_transfer", "Nueva Transferencia", "Hola", approved_reposition.id)]


def test_database_sink_survives_push_failure(db_session, users, approved_reposition, caplog) -> None:
    def broken_push(*args):
        raise ConnectionError("redis down")

    sink = DatabaseNotificationSink(SessionLocal, push=broken_push)
    with caplog.at_level(logging.WARNING, logger="repotrack.services.notification_sink"):
        sink.notify(users["corte"].id, "reposition_approved", "Aprobada", "Ok", approved_reposition.id)

    assert db_session.query(Notification).filter(Notification.user_id == users["corte"].id).count() == 1
    assert "Live push unavailable" in caplog.text


def test_inbox_lists_unread_and_marks_read(db_session, users, approved_reposition) -> None:
    mine = Notification(
        user_id=users["corte"].id,
        type="reposition_approved",
        title="Aprobada",
        message="Tu reposición fue aprobada",
        reposition_id=approved_reposition.id,
        read=False,
    )
    unrelated = Notification(
        user_id=users["corte"].id,
        type="reposition_approved",
        title="Sin reposición",
        message="Legado",
        reposition_id=None,
        read=False,
    )
    db_session.add_all([mine, unrelated])
    db_session.commit()

    inbox = list_notifications_use_case(db=db_session, current_user=users["corte"])
    assert [n.id for n in inbox] == [mine.id]

    with pytest.raises(Forbidden):
        mark_notification_read_use_case(db=db_session, notification_id=mine.id, current_user=users["bordado"])

    marked = mark_notification_read_use_case(db=db_session, notification_id=mine.id, current_user=users["corte"])
    assert marked.read is True
    assert list_notifications_use_case(db=db_session, current_user=users["corte"]) == []
    assert len(list_notifications_use_case(db=db_session, current_user=users["corte"], unread_only=False)) == 1

    with pytest.raises(NotFound):
        mark_notification_read_use_case(db=db_session, notification_id=9999, current_user=users["corte"])
