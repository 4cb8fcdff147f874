"""Append-only reposition history."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session, joinedload

from ..models import RepositionHistory


def append_history(
    db: Session,
    *,
    reposition_id: int,
    action: str,
    description: str,
    user_id: int,
    at: datetime,
    from_area: str | None = None,
    to_area: str | None = None,
    pieces: int | None = None,
) -> RepositionHistory:
    entry = RepositionHistory(
        reposition_id=reposition_id,
        action=action,
        description=description,
        from_area=from_area,
        to_area=to_area,
        pieces=pieces,
        user_id=user_id,
        created_at=at,
    )
    db.add(entry)
    return entry


def list_history(db: Session, *, reposition_id: int, newest_first: bool = True) -> list[RepositionHistory]:
    order = (
        (RepositionHistory.created_at.desc(), RepositionHistory.id.desc())
        if newest_first
        else (RepositionHistory.created_at.asc(), RepositionHistory.id.asc())
    )
    return (
        db.query(RepositionHistory)
        .options(joinedload(RepositionHistory.user))
        .filter(RepositionHistory.reposition_id == reposition_id)
        .order_by(*order)
        .all()
    )
