"""Working-time use-cases over the single timer row per (reposition, area)."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..domain_errors import ConflictError, Forbidden, InvalidState, NotFound, ValidationError
from ..models import Reposition, RepositionTimer, User
from ..schemas import ManualTimerRequest
from ..security import belongs_to_creator_area, can_log_time_for, is_creator
from ..services.area_graph import ensure_valid_area
from ..services.history_log import append_history
from ..services.timer_ledger import format_clock, get_timer, manual_interval, minutes_between
from .common import WorkflowHooks, commit_or_conflict, current_time, flush_or_conflict, load_reposition

logger = logging.getLogger(__name__)

_TIMER_CONFLICT = "Otro usuario registró tiempo para esta área al mismo tiempo; intenta de nuevo"


def _resolve_area(current_user: User, area: str | None) -> str:
    try:
        resolved = ensure_valid_area(area or current_user.area)
    except ValueError as error:
        raise ValidationError(code="TIMER_INVALID_AREA", message=str(error)) from error
    if not can_log_time_for(current_user, resolved):
        raise Forbidden(
            code="TIMER_AREA_FORBIDDEN",
            message="Solo puedes registrar tiempo para tu propia área",
        )
    return resolved


def _ensure_time_loggable(reposition: Reposition, current_user: User, area: str) -> None:
    if reposition.status != "aprobado":
        raise InvalidState(
            code="REPOSITION_NOT_APPROVED",
            message="Solo se puede registrar tiempo en reposiciones aprobadas",
        )
    first_pass = int(reposition.returns_to_creator or 0) == 0
    creator_side = is_creator(current_user, reposition) or (
        belongs_to_creator_area(current_user, reposition) and area == reposition.solicitante_area
    )
    if first_pass and creator_side:
        raise Forbidden(
            code="TIMER_CREATOR_FIRST_PASS",
            message="El área solicitante registra tiempo solo cuando la reposición regresa a ella",
        )


def start_timer_use_case(
    *,
    db: Session,
    reposition_id: int,
    area: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionTimer:
    area = _resolve_area(current_user, area)
    reposition = load_reposition(db, reposition_id, lock=True)
    _ensure_time_loggable(reposition, current_user, area)
    now = current_time(hooks)

    timer = get_timer(db, reposition_id=reposition.id, area=area, lock=True)
    if timer is not None and timer.is_running:
        raise ConflictError(
            code="TIMER_ALREADY_RUNNING",
            message=f"Ya hay un cronómetro en marcha para el área {area}",
        )
    if timer is None:
        timer = RepositionTimer(reposition_id=reposition.id, area=area, created_at=now)
        db.add(timer)
    # A restart keeps elapsed_minutes so that stop() accumulates onto it.
    timer.user_id = current_user.id
    timer.start_time = now
    timer.end_time = None
    timer.is_running = True
    timer.manual_start_time = None
    timer.manual_end_time = None
    timer.manual_date = None
    timer.manual_end_date = None
    timer.updated_at = now
    flush_or_conflict(db, code="TIMER_ALREADY_RUNNING", message=_TIMER_CONFLICT)

    append_history(
        db,
        reposition_id=reposition.id,
        action="timer_started",
        description=f"Cronómetro iniciado por {current_user.name} en área {area}",
        user_id=current_user.id,
        at=now,
    )
    commit_or_conflict(db, code="TIMER_ALREADY_RUNNING", message=_TIMER_CONFLICT)
    logger.info(f"Timer started for {reposition.folio} in {area} by user {current_user.id}")
    return timer


def stop_timer_use_case(
    *,
    db: Session,
    reposition_id: int,
    area: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> dict:
    area = _resolve_area(current_user, area)
    reposition = load_reposition(db, reposition_id, lock=True)
    timer = get_timer(db, reposition_id=reposition.id, area=area, lock=True)
    if timer is None or not timer.is_running:
        raise NotFound(
            code="TIMER_NOT_RUNNING",
            message=f"No hay un cronómetro en marcha para el área {area}",
        )

    now = current_time(hooks)
    segment = max(0, minutes_between(timer.start_time, now))
    timer.end_time = now
    timer.elapsed_minutes = int(timer.elapsed_minutes or 0) + segment
    timer.is_running = False
    timer.updated_at = now

    elapsed_time = format_clock(segment)
    append_history(
        db,
        reposition_id=reposition.id,
        action="timer_stopped",
        description=(
            f"Cronómetro detenido por {current_user.name} en área {area}. "
            f"Tiempo transcurrido: {elapsed_time}"
        ),
        user_id=current_user.id,
        at=now,
    )
    commit_or_conflict(db, code="TIMER_STOP_CONFLICT", message=_TIMER_CONFLICT)
    logger.info(f"Timer stopped for {reposition.folio} in {area}: {segment} min")
    return {"elapsed_time": elapsed_time, "elapsed_minutes": timer.elapsed_minutes}


def set_manual_timer_use_case(
    *,
    db: Session,
    reposition_id: int,
    data: ManualTimerRequest,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionTimer:
    """Upsert the area's row with a manually reported interval, replacing what was there."""
    area = _resolve_area(current_user, data.area)
    try:
        start, end, minutes = manual_interval(
            start_time=data.start_time,
            end_time=data.end_time,
            start_date=data.start_date,
            end_date=data.end_date,
        )
    except ValueError as error:
        raise ValidationError(code="TIMER_INVALID_RANGE", message=str(error)) from error

    reposition = load_reposition(db, reposition_id, lock=True)
    _ensure_time_loggable(reposition, current_user, area)
    now = current_time(hooks)

    timer = get_timer(db, reposition_id=reposition.id, area=area, lock=True)
    if timer is None:
        timer = RepositionTimer(reposition_id=reposition.id, area=area, created_at=now)
        db.add(timer)
    timer.user_id = current_user.id
    timer.start_time = start
    timer.end_time = end
    timer.elapsed_minutes = minutes
    timer.is_running = False
    timer.manual_start_time = data.start_time.strip()
    timer.manual_end_time = data.end_time.strip()
    timer.manual_date = start.date().isoformat()
    timer.manual_end_date = end.date().isoformat()
    timer.updated_at = now
    flush_or_conflict(db, code="TIMER_MANUAL_CONFLICT", message=_TIMER_CONFLICT)

    append_history(
        db,
        reposition_id=reposition.id,
        action="manual_time_set",
        description=f"Tiempo manual registrado: {minutes} minutos en área {area}",
        user_id=current_user.id,
        at=now,
    )
    commit_or_conflict(db, code="TIMER_MANUAL_CONFLICT", message=_TIMER_CONFLICT)
    logger.info(f"Manual time for {reposition.folio} in {area}: {minutes} min")
    return timer


def get_timer_use_case(*, db: Session, reposition_id: int, area: str) -> RepositionTimer | None:
    load_reposition(db, reposition_id)
    try:
        area = ensure_valid_area(area)
    except ValueError as error:
        raise ValidationError(code="TIMER_INVALID_AREA", message=str(error)) from error
    return get_timer(db, reposition_id=reposition_id, area=area)
