"""Business clock: every workflow timestamp is taken in one fixed timezone."""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from zoneinfo import ZoneInfo

from ..config import settings


@lru_cache()
def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def business_now() -> datetime:
    return datetime.now(business_tz())


def ensure_aware(value: datetime | None) -> datetime | None:
    """Attach the business timezone to naive values read back from the store."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=business_tz())
    return value
