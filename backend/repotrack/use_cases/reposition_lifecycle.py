"""Reposition lifecycle use-cases: create, approve, resubmit, complete, cancel, delete."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import Forbidden, InvalidState, ValidationError
from ..models import (
    Reposition,
    RepositionContrastFabric,
    RepositionPiece,
    RepositionProduct,
    User,
)
from ..schemas import RepositionCreate, RepositionUpdate
from ..security import can_approve, can_finalize, is_creator
from ..services.area_graph import APPROVER_AREAS, ensure_valid_area
from ..services.folio import next_folio
from ..services.history_log import append_history
from ..services.notification_sink import NotificationIntent, intents_for, user_ids_in_areas
from ..services.reposition_rules import (
    WITHDRAWABLE_STATUSES,
    collect_pieces,
    ensure_approval_action,
    ensure_reason,
    validate_reposition_payload,
    validate_status_transition,
)
from .common import (
    WorkflowHooks,
    commit_and_notify,
    current_time,
    flush_or_conflict,
    load_reposition,
)

logger = logging.getLogger(__name__)

_HEADER_FIELDS: tuple[str, ...] = (
    "type",
    "urgencia",
    "solicitante_nombre",
    "no_solicitud",
    "no_hoja",
    "fecha_corte",
    "causante_dano",
    "area_causante_dano",
    "tipo_accidente",
    "otro_accidente",
    "descripcion_suceso",
    "modelo_prenda",
    "tela",
    "color",
    "tipo_pieza",
    "consumo_tela",
    "observaciones",
    "volver_hacer",
    "materiales_implicados",
)
_PRODUCT_HEADER_FIELDS: tuple[str, ...] = ("modelo_prenda", "tela", "color", "tipo_pieza", "consumo_tela")


@dataclass(frozen=True)
class CompletionOutcome:
    reposition: Reposition
    completed: bool


def _validate_payload(data: RepositionCreate) -> list:
    pieces = collect_pieces(data.pieces, data.products)
    try:
        validate_reposition_payload(
            type=data.type,
            urgencia=data.urgencia,
            pieces=pieces,
            products=data.products,
            volver_hacer=data.volver_hacer,
            materiales_implicados=data.materiales_implicados,
        )
        if data.area_causante_dano:
            ensure_valid_area(data.area_causante_dano)
    except ValueError as error:
        raise ValidationError(code="REPOSITION_INVALID_PAYLOAD", message=str(error)) from error
    return pieces


def _apply_header(reposition: Reposition, data: RepositionCreate) -> None:
    for field in _HEADER_FIELDS:
        setattr(reposition, field, getattr(data, field))
    if data.area_causante_dano:
        reposition.area_causante_dano = ensure_valid_area(data.area_causante_dano)
    if data.type == "repocision" and data.products:
        first = data.products[0]
        for field in _PRODUCT_HEADER_FIELDS:
            value = getattr(first, field)
            if value is not None:
                setattr(reposition, field, value)


def _replace_children(reposition: Reposition, data: RepositionCreate, pieces: list) -> None:
    """Wholesale replacement; delete-orphan removes the previous rows on flush."""
    reposition.pieces = [
        RepositionPiece(
            talla=piece.talla.strip(),
            cantidad=int(piece.cantidad),
            folio_original=piece.folio_original,
        )
        for piece in pieces
    ]
    reposition.products = [
        RepositionProduct(
            modelo_prenda=product.modelo_prenda,
            tela=product.tela,
            color=product.color,
            tipo_pieza=product.tipo_pieza,
            consumo_tela=product.consumo_tela,
        )
        for product in data.products
    ]
    reposition.contrast_fabrics = [
        RepositionContrastFabric(tela=fabric.tela, color=fabric.color, consumo=fabric.consumo)
        for fabric in data.contrast_fabrics
    ]


def _total_pieces(pieces: list) -> int:
    return sum(int(piece.cantidad) for piece in pieces)


def _creator_intent(reposition: Reposition, *, type: str, title: str, message: str) -> NotificationIntent:
    return NotificationIntent(
        user_id=reposition.created_by,
        type=type,
        title=title,
        message=message,
        reposition_id=reposition.id,
    )


def _with_notes(text: str, notes: str | None) -> str:
    notes = (notes or "").strip()
    return f"{text}: {notes}" if notes else text


def create_reposition_use_case(
    *,
    db: Session,
    data: RepositionCreate,
    current_user: User,
    hooks: WorkflowHooks,
) -> Reposition:
    try:
        creator_area = ensure_valid_area(current_user.area)
    except ValueError as error:
        raise Forbidden(code="REPOSITION_CREATOR_AREA_INVALID", message=str(error)) from error
    pieces = _validate_payload(data)
    now = current_time(hooks)

    folio = next_folio(db, at=now)
    reposition = Reposition(
        folio=folio,
        solicitante_area=creator_area,
        fecha_solicitud=now,
        current_area=creator_area,
        area_entered_at=now,
        returns_to_creator=0,
        status="pendiente",
        created_by=current_user.id,
        created_at=now,
    )
    _apply_header(reposition, data)
    _replace_children(reposition, data, pieces)
    db.add(reposition)
    flush_or_conflict(
        db,
        code="REPOSITION_FOLIO_CONFLICT",
        message="Otro usuario creó una reposición al mismo tiempo; intenta de nuevo",
    )

    append_history(
        db,
        reposition_id=reposition.id,
        action="created",
        description=f"Reposición {reposition.type} creada con folio {folio}",
        user_id=current_user.id,
        at=now,
        to_area=creator_area,
        pieces=_total_pieces(pieces),
    )
    intents = intents_for(
        user_ids_in_areas(db, ("admin", "operaciones", "envios")),
        type="new_reposition",
        title="Nueva Solicitud de Reposición",
        message=f"Se ha creado una nueva solicitud de {reposition.type}: {folio}",
        reposition_id=reposition.id,
    )
    commit_and_notify(db, hooks, intents, conflict_code="REPOSITION_FOLIO_CONFLICT")
    logger.info(f"Reposition {folio} created by user {current_user.id} ({creator_area})")
    return reposition


def approve_reposition_use_case(
    *,
    db: Session,
    reposition_id: int,
    action: str,
    notes: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> Reposition:
    if not can_approve(current_user):
        raise Forbidden(
            code="REPOSITION_APPROVAL_FORBIDDEN",
            message="Solo operaciones, admin o envíos pueden aprobar reposiciones",
        )
    try:
        decision = ensure_approval_action(action)
        if decision == "rechazado":
            notes = ensure_reason(
                notes,
                min_length=settings.REJECTION_REASON_MIN_LENGTH,
                label="El motivo de rechazo",
            )
    except ValueError as error:
        raise ValidationError(code="REPOSITION_APPROVAL_INVALID", message=str(error)) from error

    reposition = load_reposition(db, reposition_id, lock=True)
    if reposition.status != "pendiente":
        raise InvalidState(
            code="REPOSITION_NOT_PENDING",
            message=f"La reposición está en estado {reposition.status} y ya no puede aprobarse",
        )
    reposition.status = validate_status_transition(current_status=reposition.status, next_status=decision)

    now = current_time(hooks)
    reposition.approved_by = current_user.id
    reposition.approved_at = now
    reposition.rejection_reason = notes if decision == "rechazado" else None

    verb = "aprobada" if decision == "aprobado" else "rechazada"
    append_history(
        db,
        reposition_id=reposition.id,
        action="approved" if decision == "aprobado" else "rejected",
        description=_with_notes(f"Reposición {verb}", notes),
        user_id=current_user.id,
        at=now,
    )
    intent = _creator_intent(
        reposition,
        type="reposition_approved" if decision == "aprobado" else "reposition_rejected",
        title="Reposición Aprobada" if decision == "aprobado" else "Reposición Rechazada",
        message=_with_notes(f"Tu reposición {reposition.folio} ha sido {verb}", notes),
    )
    commit_and_notify(db, hooks, [intent], conflict_code="REPOSITION_APPROVAL_CONFLICT")
    logger.info(f"Reposition {reposition.folio} {verb} by user {current_user.id}")
    return reposition


def edit_and_resubmit_use_case(
    *,
    db: Session,
    reposition_id: int,
    data: RepositionUpdate,
    current_user: User,
    hooks: WorkflowHooks,
) -> Reposition:
    reposition = load_reposition(db, reposition_id, lock=True)
    if not is_creator(current_user, reposition):
        raise Forbidden(
            code="REPOSITION_EDIT_FORBIDDEN",
            message="Solo el creador puede editar y reenviar la reposición",
        )
    if reposition.status != "rechazado":
        raise InvalidState(
            code="REPOSITION_NOT_REJECTED",
            message="Solo se pueden editar reposiciones rechazadas",
        )
    pieces = _validate_payload(data)
    now = current_time(hooks)

    _apply_header(reposition, data)
    _replace_children(reposition, data, pieces)
    reposition.status = validate_status_transition(current_status=reposition.status, next_status="pendiente")
    reposition.approved_by = None
    reposition.approved_at = None
    reposition.rejection_reason = None

    append_history(
        db,
        reposition_id=reposition.id,
        action="updated",
        description="Reposición editada y reenviada para aprobación",
        user_id=current_user.id,
        at=now,
        pieces=_total_pieces(pieces),
    )
    intents = intents_for(
        user_ids_in_areas(db, APPROVER_AREAS),
        type="new_reposition",
        title="Reposición Reenviada",
        message=f"La reposición {reposition.folio} ha sido editada y reenviada para aprobación",
        reposition_id=reposition.id,
    )
    commit_and_notify(db, hooks, intents, conflict_code="REPOSITION_EDIT_CONFLICT")
    logger.info(f"Reposition {reposition.folio} resubmitted by user {current_user.id}")
    return reposition


def request_completion_use_case(
    *,
    db: Session,
    reposition_id: int,
    notes: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> Reposition:
    reposition = load_reposition(db, reposition_id, lock=True)
    if reposition.status != "aprobado":
        raise InvalidState(
            code="REPOSITION_NOT_APPROVED",
            message="Solo se puede solicitar la finalización de reposiciones aprobadas",
        )
    now = current_time(hooks)
    append_history(
        db,
        reposition_id=reposition.id,
        action="completion_requested",
        description=_with_notes("Solicitud de finalización enviada", notes),
        user_id=current_user.id,
        at=now,
    )
    intents = intents_for(
        user_ids_in_areas(db, APPROVER_AREAS, exclude_user_ids=[current_user.id]),
        type="completion_approval_needed",
        title="Solicitud de Finalización",
        message=_with_notes(f"Se solicita aprobación para finalizar la reposición {reposition.folio}", notes),
        reposition_id=reposition.id,
    )
    commit_and_notify(db, hooks, intents, conflict_code="REPOSITION_COMPLETION_CONFLICT")
    logger.info(f"Completion of {reposition.folio} requested by user {current_user.id}")
    return reposition


def complete_reposition_use_case(
    *,
    db: Session,
    reposition_id: int,
    notes: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> CompletionOutcome:
    """Finalizer areas complete directly; everyone else files a completion request."""
    if not can_finalize(current_user):
        reposition = request_completion_use_case(
            db=db,
            reposition_id=reposition_id,
            notes=notes,
            current_user=current_user,
            hooks=hooks,
        )
        return CompletionOutcome(reposition=reposition, completed=False)

    reposition = load_reposition(db, reposition_id, lock=True)
    if reposition.status != "aprobado":
        raise InvalidState(
            code="REPOSITION_NOT_APPROVED",
            message=f"La reposición está en estado {reposition.status} y no puede completarse",
        )
    now = current_time(hooks)
    reposition.status = validate_status_transition(current_status=reposition.status, next_status="completado")
    reposition.completed_at = now
    reposition.approved_by = current_user.id

    append_history(
        db,
        reposition_id=reposition.id,
        action="completed",
        description=_with_notes("Reposición finalizada", notes),
        user_id=current_user.id,
        at=now,
    )
    intent = _creator_intent(
        reposition,
        type="reposition_completed",
        title="Reposición Completada",
        message=_with_notes(f"La reposición {reposition.folio} ha sido completada", notes),
    )
    commit_and_notify(db, hooks, [intent], conflict_code="REPOSITION_COMPLETION_CONFLICT")
    logger.info(f"Reposition {reposition.folio} completed by user {current_user.id}")
    return CompletionOutcome(reposition=reposition, completed=True)


def _ensure_withdrawable(reposition: Reposition, verb: str) -> None:
    if reposition.status not in WITHDRAWABLE_STATUSES:
        raise InvalidState(
            code="REPOSITION_ALREADY_CLOSED",
            message=f"La reposición está en estado {reposition.status} y no puede {verb}",
        )


def cancel_reposition_use_case(
    *,
    db: Session,
    reposition_id: int,
    reason: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> Reposition:
    if not can_finalize(current_user):
        raise Forbidden(
            code="REPOSITION_CANCEL_FORBIDDEN",
            message="Solo admin o envíos pueden cancelar reposiciones",
        )
    try:
        reason = ensure_reason(
            reason,
            min_length=settings.REJECTION_REASON_MIN_LENGTH,
            label="El motivo de cancelación",
        )
    except ValueError as error:
        raise ValidationError(code="REPOSITION_CANCEL_REASON_REQUIRED", message=str(error)) from error

    reposition = load_reposition(db, reposition_id, lock=True)
    _ensure_withdrawable(reposition, "cancelarse")
    now = current_time(hooks)
    reposition.status = validate_status_transition(current_status=reposition.status, next_status="cancelado")
    reposition.completed_at = now

    append_history(
        db,
        reposition_id=reposition.id,
        action="canceled",
        description=f"Reposición cancelada. Motivo: {reason}",
        user_id=current_user.id,
        at=now,
    )
    intents = []
    if not is_creator(current_user, reposition):
        intents.append(
            _creator_intent(
                reposition,
                type="reposition_canceled",
                title="Reposición Cancelada",
                message=f"La reposición {reposition.folio} ha sido cancelada. Motivo: {reason}",
            )
        )
    commit_and_notify(db, hooks, intents, conflict_code="REPOSITION_CANCEL_CONFLICT")
    logger.info(f"Reposition {reposition.folio} canceled by user {current_user.id}")
    return reposition


def delete_reposition_use_case(
    *,
    db: Session,
    reposition_id: int,
    reason: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> Reposition:
    """Soft delete; the row stays readable by id with status eliminado."""
    if not can_finalize(current_user):
        raise Forbidden(
            code="REPOSITION_DELETE_FORBIDDEN",
            message="Solo admin o envíos pueden eliminar reposiciones",
        )
    reposition = load_reposition(db, reposition_id, lock=True)
    _ensure_withdrawable(reposition, "eliminarse")
    now = current_time(hooks)
    reposition.status = validate_status_transition(current_status=reposition.status, next_status="eliminado")
    reposition.completed_at = now

    append_history(
        db,
        reposition_id=reposition.id,
        action="deleted",
        description=_with_notes("Reposición eliminada", reason),
        user_id=current_user.id,
        at=now,
    )
    intent = _creator_intent(
        reposition,
        type="reposition_deleted",
        title="Reposición Eliminada",
        message=f"La reposición {reposition.folio} ha sido eliminada permanentemente",
    )
    commit_and_notify(db, hooks, [intent], conflict_code="REPOSITION_DELETE_CONFLICT")
    logger.info(f"Reposition {reposition.folio} deleted by user {current_user.id}")
    return reposition
