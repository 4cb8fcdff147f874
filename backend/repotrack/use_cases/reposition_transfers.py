"""Area handoff use-cases: request a transfer, accept or reject it, list the inbox."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ConflictError, Forbidden, InvalidState, NotFound, RateLimited, ValidationError
from ..models import Reposition, RepositionTransfer, User
from ..schemas import TransferCreate
from ..security import can_process_transfer
from ..services.area_graph import APPROVER_AREAS, ensure_transfer_route
from ..services.history_log import append_history
from ..services.notification_sink import NotificationIntent, intents_for, user_ids_in_areas
from ..services.reposition_rules import ensure_reason
from ..services.timer_ledger import get_timer, timer_logged_since
from ..services.transfer_ledger import find_pending_transfer, has_recent_transfer, list_pending_for_area
from .common import WorkflowHooks, commit_and_notify, current_time, flush_or_conflict, load_reposition

logger = logging.getLogger(__name__)

TRANSFER_ACTIONS: set[str] = {"accepted", "rejected"}


def _requires_time_log(reposition: Reposition, from_area: str) -> bool:
    """Whether ``from_area`` must have logged time for its current stay before handing off."""
    if from_area in APPROVER_AREAS:
        return False
    if from_area == reposition.solicitante_area:
        # The creating area only logs time once the reposition has come back to it.
        return int(reposition.returns_to_creator or 0) > 0
    return True


def request_transfer_use_case(
    *,
    db: Session,
    reposition_id: int,
    data: TransferCreate,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionTransfer:
    try:
        from_area, to_area = ensure_transfer_route(from_area=current_user.area, to_area=data.to_area)
    except ValueError as error:
        raise ValidationError(code="TRANSFER_INVALID_ROUTE", message=str(error)) from error

    reposition = load_reposition(db, reposition_id, lock=True)
    if reposition.status != "aprobado":
        raise InvalidState(
            code="REPOSITION_NOT_APPROVED",
            message="Solo se pueden transferir reposiciones aprobadas",
        )

    now = current_time(hooks)
    cooldown = has_recent_transfer(
        db,
        reposition_id=reposition.id,
        from_area=from_area,
        now=now,
        window_minutes=hooks.cooldown_minutes,
    )
    if cooldown.blocked:
        raise RateLimited(
            code="TRANSFER_COOLDOWN_ACTIVE",
            message=(
                f"Debes esperar {cooldown.remaining_minutes} minuto(s) antes de solicitar "
                f"otra transferencia desde {from_area}"
            ),
            remaining_minutes=cooldown.remaining_minutes,
        )
    if find_pending_transfer(db, reposition_id=reposition.id, from_area=from_area) is not None:
        raise ConflictError(
            code="TRANSFER_PENDING_EXISTS",
            message="Ya existe una transferencia pendiente desde esta área",
        )

    # area_entered_at marks the holding area's stay only.
    if from_area == reposition.current_area and _requires_time_log(reposition, from_area):
        timer = get_timer(db, reposition_id=reposition.id, area=from_area)
        if not timer_logged_since(timer, reposition.area_entered_at):
            raise InvalidState(
                code="TRANSFER_TIME_NOT_LOGGED",
                message=f"Debes registrar el tiempo de trabajo del área {from_area} antes de transferir",
            )

    if from_area == "corte" and reposition.type == "repocision" and data.consumo_tela is not None:
        reposition.consumo_tela = data.consumo_tela

    transfer = RepositionTransfer(
        reposition_id=reposition.id,
        from_area=from_area,
        to_area=to_area,
        notes=data.notes,
        consumo_tela=data.consumo_tela,
        status="pending",
        created_by=current_user.id,
        created_at=now,
    )
    db.add(transfer)
    flush_or_conflict(
        db,
        code="TRANSFER_PENDING_EXISTS",
        message="Ya existe una transferencia pendiente desde esta área",
    )

    append_history(
        db,
        reposition_id=reposition.id,
        action="transfer_requested",
        description=f"Transferencia solicitada de {from_area} a {to_area}",
        user_id=current_user.id,
        at=now,
        from_area=from_area,
        to_area=to_area,
    )
    intents = intents_for(
        user_ids_in_areas(db, (to_area,), exclude_user_ids=[current_user.id]),
        type="reposition_transfer",
        title="Nueva Transferencia de Reposición",
        message=f"Se ha solicitado transferir la reposición {reposition.folio} de {from_area} a {to_area}",
        reposition_id=reposition.id,
    )
    commit_and_notify(
        db,
        hooks,
        intents,
        conflict_code="TRANSFER_PENDING_EXISTS",
        conflict_message="Ya existe una transferencia pendiente desde esta área",
    )
    logger.info(f"Transfer {transfer.id} requested for {reposition.folio}: {from_area} -> {to_area}")
    return transfer


def process_transfer_use_case(
    *,
    db: Session,
    transfer_id: int,
    action: str,
    reason: str | None,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionTransfer:
    decision = (action or "").strip().lower()
    if decision not in TRANSFER_ACTIONS:
        raise ValidationError(
            code="TRANSFER_INVALID_ACTION",
            message="La acción debe ser 'accepted' o 'rejected'",
        )
    if decision == "rejected":
        try:
            reason = ensure_reason(
                reason,
                min_length=settings.TRANSFER_REJECTION_MIN_LENGTH,
                label="El motivo de rechazo",
            )
        except ValueError as error:
            raise ValidationError(code="TRANSFER_REJECTION_REASON_REQUIRED", message=str(error)) from error

    transfer = (
        db.query(RepositionTransfer)
        .filter(RepositionTransfer.id == transfer_id)
        .with_for_update()
        .first()
    )
    if transfer is None:
        raise NotFound(code="TRANSFER_NOT_FOUND", message="Transferencia no encontrada")
    if not can_process_transfer(current_user, transfer):
        raise Forbidden(
            code="TRANSFER_PROCESS_FORBIDDEN",
            message="Solo el área de destino puede procesar esta transferencia",
        )
    if transfer.status != "pending":
        raise InvalidState(
            code="TRANSFER_ALREADY_PROCESSED",
            message=f"La transferencia ya fue procesada ({transfer.status})",
        )

    reposition = load_reposition(db, transfer.reposition_id, lock=True)
    if reposition.status != "aprobado":
        raise InvalidState(
            code="REPOSITION_NOT_APPROVED",
            message=f"La reposición está en estado {reposition.status}; la transferencia ya no aplica",
        )

    now = current_time(hooks)
    transfer.status = decision
    transfer.processed_by = current_user.id
    transfer.processed_at = now
    transfer.rejection_reason = reason if decision == "rejected" else None

    if decision == "accepted":
        reposition.current_area = transfer.to_area
        reposition.area_entered_at = now
        if transfer.to_area == reposition.solicitante_area:
            reposition.returns_to_creator = int(reposition.returns_to_creator or 0) + 1
        description = f"Transferencia aceptada de {transfer.from_area} a {transfer.to_area}"
    else:
        description = f"Transferencia rechazada de {transfer.from_area} a {transfer.to_area}. Motivo: {reason}"

    append_history(
        db,
        reposition_id=reposition.id,
        action="transfer_accepted" if decision == "accepted" else "transfer_rejected",
        description=description,
        user_id=current_user.id,
        at=now,
        from_area=transfer.from_area,
        to_area=transfer.to_area,
    )

    verb = "aceptada" if decision == "accepted" else "rechazada"
    intents: list[NotificationIntent] = [
        NotificationIntent(
            user_id=transfer.created_by,
            type="transfer_processed",
            title=f"Transferencia {verb.capitalize()}",
            message=f"La transferencia de la reposición {reposition.folio} ha sido {verb}",
            reposition_id=reposition.id,
        )
    ]
    if decision == "accepted":
        intents.extend(
            intents_for(
                user_ids_in_areas(db, (transfer.to_area,), exclude_user_ids=[current_user.id]),
                type="reposition_received",
                title="Nueva Reposición Recibida",
                message=f"La reposición {reposition.folio} ha llegado a tu área",
                reposition_id=reposition.id,
            )
        )
    commit_and_notify(db, hooks, intents, conflict_code="TRANSFER_PROCESS_CONFLICT")
    logger.info(f"Transfer {transfer.id} {decision} by user {current_user.id}")
    return transfer


def list_pending_transfers_use_case(*, db: Session, current_user: User) -> list[RepositionTransfer]:
    return list_pending_for_area(db, to_area=current_user.area)
