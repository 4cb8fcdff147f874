"""Transfer ledger queries and the per-area transfer cooldown."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..models import RepositionTransfer
from .clock import ensure_aware


@dataclass(frozen=True)
class TransferCooldown:
    blocked: bool
    remaining_minutes: int | None = None


NOT_BLOCKED = TransferCooldown(blocked=False)


def cooldown_remaining_minutes(*, created_at: datetime, now: datetime, window_minutes: int) -> int | None:
    """Whole minutes left in the window (never below 1), or None once it has elapsed."""
    remaining = timedelta(minutes=window_minutes) - (now - ensure_aware(created_at))
    if remaining.total_seconds() <= 0:
        return None
    return max(1, math.ceil(remaining.total_seconds() / 60))


def find_pending_transfer(db: Session, *, reposition_id: int, from_area: str) -> RepositionTransfer | None:
    return (
        db.query(RepositionTransfer)
        .filter(
            RepositionTransfer.reposition_id == reposition_id,
            RepositionTransfer.from_area == from_area,
            RepositionTransfer.status == "pending",
        )
        .order_by(RepositionTransfer.created_at.desc(), RepositionTransfer.id.desc())
        .first()
    )


def find_latest_transfer(db: Session, *, reposition_id: int, from_area: str) -> RepositionTransfer | None:
    return (
        db.query(RepositionTransfer)
        .filter(
            RepositionTransfer.reposition_id == reposition_id,
            RepositionTransfer.from_area == from_area,
        )
        .order_by(RepositionTransfer.created_at.desc(), RepositionTransfer.id.desc())
        .first()
    )


def has_recent_transfer(
    db: Session,
    *,
    reposition_id: int,
    from_area: str,
    now: datetime,
    window_minutes: int,
) -> TransferCooldown:
    """Two-phase check: a pending transfer inside the window, then any transfer inside it."""
    pending = find_pending_transfer(db, reposition_id=reposition_id, from_area=from_area)
    if pending is not None and pending.created_at is not None:
        remaining = cooldown_remaining_minutes(
            created_at=pending.created_at, now=now, window_minutes=window_minutes
        )
        if remaining is not None:
            return TransferCooldown(blocked=True, remaining_minutes=remaining)

    latest = find_latest_transfer(db, reposition_id=reposition_id, from_area=from_area)
    if latest is not None and latest.created_at is not None:
        remaining = cooldown_remaining_minutes(
            created_at=latest.created_at, now=now, window_minutes=window_minutes
        )
        if remaining is not None:
            return TransferCooldown(blocked=True, remaining_minutes=remaining)

    return NOT_BLOCKED


def list_pending_for_area(db: Session, *, to_area: str) -> list[RepositionTransfer]:
    return (
        db.query(RepositionTransfer)
        .filter(RepositionTransfer.to_area == to_area, RepositionTransfer.status == "pending")
        .order_by(RepositionTransfer.created_at.desc(), RepositionTransfer.id.desc())
        .all()
    )

