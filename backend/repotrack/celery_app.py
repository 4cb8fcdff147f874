"""
Celery worker that pushes stored notifications to live clients over Redis pub/sub.
"""
from celery import Celery
import json
import logging
import redis
from .config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "repotrack",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone=settings.BUSINESS_TIMEZONE,
    enable_utc=True,
)

_redis_client = None


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def notification_channel(user_id: int) -> str:
    return f"notifications:{user_id}"


@celery_app.task(name="publish_notification", ignore_result=True)
def publish_notification(
    user_id: int,
    notification_id: int,
    notification_type: str,
    title: str,
    message: str,
    reposition_id: int | None = None,
):
    """Publish one notification on the recipient's channel; returns subscriber count."""
    payload = json.dumps(
        {
            "id": notification_id,
            "type": notification_type,
            "title": title,
            "message": message,
            "reposition_id": reposition_id,
        },
        ensure_ascii=False,
    )
    receivers = _get_redis().publish(notification_channel(user_id), payload)
    logger.info(f"📨 Notification {notification_id} pushed to user {user_id} ({receivers} listeners)")
    return receivers


def enqueue_notification_push(
    user_id: int,
    notification_id: int,
    notification_type: str,
    title: str,
    message: str,
    reposition_id: int | None = None,
) -> None:
    publish_notification.delay(user_id, notification_id, notification_type, title, message, reposition_id)
