"""Warehouse material availability and pause/resume of a reposition."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..domain_errors import Forbidden, InvalidState, ValidationError
from ..models import MATERIAL_STATUSES, Reposition, RepositionMaterial, User
from ..schemas import MaterialStatusUpdate
from ..security import can_manage_materials
from ..services.history_log import append_history
from ..services.notification_sink import intents_for, user_ids_in_areas
from ..services.reposition_rules import ensure_reason, is_terminal_status
from .common import (
    WorkflowHooks,
    commit_and_notify,
    commit_or_conflict,
    current_time,
    flush_or_conflict,
    load_reposition,
)

logger = logging.getLogger(__name__)

_MANAGEMENT_AREAS = ("admin", "operaciones", "envios")


def _ensure_warehouse(current_user: User) -> None:
    if not can_manage_materials(current_user):
        raise Forbidden(
            code="MATERIALS_FORBIDDEN",
            message="Solo almacén o admin pueden gestionar materiales",
        )


def _material_row(db: Session, reposition: Reposition, *, lock: bool = False) -> RepositionMaterial | None:
    query = db.query(RepositionMaterial).filter(RepositionMaterial.reposition_id == reposition.id)
    if lock:
        query = query.with_for_update()
    return query.first()


def _get_or_create_material(db: Session, reposition: Reposition) -> RepositionMaterial:
    material = _material_row(db, reposition, lock=True)
    if material is None:
        material = RepositionMaterial(reposition_id=reposition.id, material_status="disponible", is_paused=False)
        db.add(material)
    return material


def get_material_status_use_case(*, db: Session, reposition_id: int) -> RepositionMaterial | None:
    reposition = load_reposition(db, reposition_id)
    return _material_row(db, reposition)


def update_material_status_use_case(
    *,
    db: Session,
    reposition_id: int,
    data: MaterialStatusUpdate,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionMaterial:
    _ensure_warehouse(current_user)
    status = (data.material_status or "").strip().lower()
    if status not in MATERIAL_STATUSES:
        raise ValidationError(code="MATERIALS_INVALID_STATUS", message="Estado de materiales inválido")

    reposition = load_reposition(db, reposition_id, lock=True)
    now = current_time(hooks)
    material = _get_or_create_material(db, reposition)
    material.material_status = status
    material.missing_materials = data.missing_materials
    material.notes = data.notes
    material.updated_at = now
    flush_or_conflict(db, code="MATERIALS_CONFLICT", message="Los materiales fueron actualizados por otro usuario")

    append_history(
        db,
        reposition_id=reposition.id,
        action="material_status_updated",
        description=f"Estado de materiales actualizado a {status}",
        user_id=current_user.id,
        at=now,
    )
    commit_or_conflict(db, code="MATERIALS_CONFLICT", message="Los materiales fueron actualizados por otro usuario")
    return material


def pause_reposition_use_case(
    *,
    db: Session,
    reposition_id: int,
    reason: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionMaterial:
    _ensure_warehouse(current_user)
    try:
        reason = ensure_reason(reason, min_length=1, label="El motivo de pausa")
    except ValueError as error:
        raise ValidationError(code="MATERIALS_PAUSE_REASON_REQUIRED", message=str(error)) from error

    reposition = load_reposition(db, reposition_id, lock=True)
    if is_terminal_status(reposition.status):
        raise InvalidState(
            code="REPOSITION_ALREADY_CLOSED",
            message=f"La reposición está en estado {reposition.status} y no puede pausarse",
        )
    now = current_time(hooks)
    material = _get_or_create_material(db, reposition)
    if material.is_paused:
        raise InvalidState(code="REPOSITION_ALREADY_PAUSED", message="La reposición ya está pausada")
    material.is_paused = True
    material.pause_reason = reason
    material.paused_by = current_user.id
    material.paused_at = now
    material.updated_at = now
    flush_or_conflict(db, code="MATERIALS_CONFLICT", message="Los materiales fueron actualizados por otro usuario")

    append_history(
        db,
        reposition_id=reposition.id,
        action="paused",
        description=f"Reposición pausada por almacén. Motivo: {reason}",
        user_id=current_user.id,
        at=now,
    )
    intents = intents_for(
        user_ids_in_areas(db, _MANAGEMENT_AREAS, exclude_user_ids=[current_user.id]),
        type="reposition_paused",
        title="Reposición Pausada",
        message=f"La reposición {reposition.folio} ha sido pausada por almacén. Motivo: {reason}",
        reposition_id=reposition.id,
    )
    commit_and_notify(db, hooks, intents, conflict_code="MATERIALS_CONFLICT")
    logger.info(f"Reposition {reposition.folio} paused by user {current_user.id}")
    return material


def resume_reposition_use_case(
    *,
    db: Session,
    reposition_id: int,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionMaterial:
    _ensure_warehouse(current_user)
    reposition = load_reposition(db, reposition_id, lock=True)
    material = _material_row(db, reposition, lock=True)
    if material is None or not material.is_paused:
        raise InvalidState(code="REPOSITION_NOT_PAUSED", message="La reposición no está pausada")

    now = current_time(hooks)
    material.is_paused = False
    material.resumed_by = current_user.id
    material.resumed_at = now
    material.updated_at = now

    append_history(
        db,
        reposition_id=reposition.id,
        action="resumed",
        description="Reposición reanudada por almacén",
        user_id=current_user.id,
        at=now,
    )
    intents = intents_for(
        user_ids_in_areas(db, _MANAGEMENT_AREAS, exclude_user_ids=[current_user.id]),
        type="reposition_resumed",
        title="Reposición Reanudada",
        message=f"La reposición {reposition.folio} ha sido reanudada por almacén",
        reposition_id=reposition.id,
    )
    commit_and_notify(db, hooks, intents, conflict_code="MATERIALS_CONFLICT")
    logger.info(f"Reposition {reposition.folio} resumed by user {current_user.id}")
    return material
