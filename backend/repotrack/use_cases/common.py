"""Plumbing shared by the reposition workflow use-cases."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ConflictError, NotFound
from ..models import Reposition
from ..services.notification_sink import NotificationIntent, NotificationSink, dispatch_notifications

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowHooks:
    """Collaborators injected into every workflow use-case."""

    now: Callable[[], datetime] | None = None
    notifier: NotificationSink | None = None
    transfer_cooldown_minutes: int | None = None

    @property
    def cooldown_minutes(self) -> int:
        if self.transfer_cooldown_minutes is None:
            return int(settings.TRANSFER_COOLDOWN_MINUTES)
        return int(self.transfer_cooldown_minutes)


def _required(name: str, hook: object):
    if hook is None:
        raise RuntimeError(f"Missing workflow hook: {name}")
    return hook


def current_time(hooks: WorkflowHooks) -> datetime:
    return _required("now", hooks.now)()


def load_reposition(db: Session, reposition_id: int, *, lock: bool = False) -> Reposition:
    query = db.query(Reposition).filter(Reposition.id == reposition_id)
    if lock:
        query = query.with_for_update()
    reposition = query.first()
    if reposition is None:
        raise NotFound(code="REPOSITION_NOT_FOUND", message="Reposición no encontrada")
    return reposition


def flush_or_conflict(db: Session, *, code: str, message: str) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(f"Constraint race lost ({code}): {exc.orig}")
        raise ConflictError(code=code, message=message) from exc


def commit_or_conflict(db: Session, *, code: str, message: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(f"Constraint race lost ({code}): {exc.orig}")
        raise ConflictError(code=code, message=message) from exc


def commit_and_notify(
    db: Session,
    hooks: WorkflowHooks,
    intents: Iterable[NotificationIntent],
    *,
    conflict_code: str,
    conflict_message: str = "La reposición fue modificada por otro usuario; intenta de nuevo",
) -> None:
    """Commit the transaction, then deliver notifications best-effort."""
    pending = list(intents)
    commit_or_conflict(db, code=conflict_code, message=conflict_message)
    dispatch_notifications(hooks.notifier, pending)
