"""Per-area working-time rows and duration arithmetic."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from ..models import RepositionTimer
from .clock import business_tz, ensure_aware

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: str | None) -> time:
    match = _HHMM.match((value or "").strip())
    if match is None:
        raise ValueError(f"Hora inválida (se espera HH:MM): {value}")
    return time(int(match.group(1)), int(match.group(2)))


def parse_iso_date(value: str | None) -> date:
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError as exc:
        raise ValueError(f"Fecha inválida (se espera YYYY-MM-DD): {value}") from exc


def minutes_between(start: datetime, end: datetime) -> int:
    return int((ensure_aware(end) - ensure_aware(start)).total_seconds() // 60)


def manual_interval(
    *,
    start_time: str,
    end_time: str,
    start_date: str,
    end_date: str | None = None,
) -> tuple[datetime, datetime, int]:
    """Resolve a manually reported interval to (start, end, whole minutes).

    When both wall-clock times fall on the same date and the end is earlier
    than the start, the interval is taken to cross midnight.
    """
    day_start = parse_iso_date(start_date)
    day_end = parse_iso_date(end_date) if end_date else day_start
    tz = business_tz()
    start = datetime.combine(day_start, parse_hhmm(start_time), tzinfo=tz)
    end = datetime.combine(day_end, parse_hhmm(end_time), tzinfo=tz)

    if end < start and day_end == day_start:
        end += timedelta(days=1)
    if end <= start:
        raise ValueError("La hora de fin debe ser posterior a la hora de inicio")
    return start, end, minutes_between(start, end)


def format_clock(minutes: int) -> str:
    """HH:MM:00, used in history descriptions."""
    hours, mins = divmod(max(0, int(minutes)), 60)
    return f"{hours:02d}:{mins:02d}:00"


def format_duration(minutes: int) -> str:
    """Xh Ym, or Ym under an hour."""
    hours, mins = divmod(max(0, int(minutes)), 60)
    if hours:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def get_timer(db: Session, *, reposition_id: int, area: str, lock: bool = False) -> RepositionTimer | None:
    query = db.query(RepositionTimer).filter(
        RepositionTimer.reposition_id == reposition_id,
        RepositionTimer.area == area,
    )
    if lock:
        query = query.with_for_update()
    return query.first()


def list_timers(db: Session, *, reposition_id: int) -> list[RepositionTimer]:
    return (
        db.query(RepositionTimer)
        .filter(RepositionTimer.reposition_id == reposition_id)
        .order_by(RepositionTimer.id.asc())
        .all()
    )


def timer_logged_since(timer: RepositionTimer | None, since: datetime | None) -> bool:
    """True when the row holds a finished duration recorded at or after ``since``."""
    if timer is None or timer.is_running or timer.elapsed_minutes is None:
        return False
    if since is None:
        return True
    touched = ensure_aware(timer.updated_at or timer.created_at)
    return touched is not None and touched >= ensure_aware(since)
