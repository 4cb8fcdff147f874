"""Shared FastAPI dependencies for the workflow routers."""
from __future__ import annotations

from ..celery_app import enqueue_notification_push
from ..config import settings
from ..database import SessionLocal
from ..services.clock import business_now
from ..services.notification_sink import DatabaseNotificationSink
from ..use_cases.common import WorkflowHooks


def get_workflow_hooks() -> WorkflowHooks:
    push = enqueue_notification_push if settings.NOTIFICATIONS_PUSH_ENABLED else None
    return WorkflowHooks(
        now=business_now,
        notifier=DatabaseNotificationSink(SessionLocal, push=push),
    )
