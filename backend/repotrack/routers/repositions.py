"""Reposition endpoints: lifecycle, listings, transfers request and read models."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    ApprovalRequest,
    CompletionRequest,
    CompletionResponse,
    HistoryEntryResponse,
    PendingCountResponse,
    PieceOut,
    ProductOut,
    ReasonRequest,
    RepositionCreate,
    RepositionResponse,
    RepositionUpdate,
    TrackingResponse,
    TransferCreate,
    TransferResponse,
)
from ..use_cases.common import WorkflowHooks
from ..use_cases.reposition_lifecycle import (
    approve_reposition_use_case,
    cancel_reposition_use_case,
    complete_reposition_use_case,
    create_reposition_use_case,
    delete_reposition_use_case,
    edit_and_resubmit_use_case,
    request_completion_use_case,
)
from ..use_cases.reposition_queries import (
    get_history_use_case,
    get_reposition_use_case,
    get_tracking_use_case,
    list_all_use_case,
    list_by_area_use_case,
    list_for_user_use_case,
    list_pieces_use_case,
    list_products_use_case,
    pending_approvals_use_case,
)
from ..use_cases.reposition_transfers import request_transfer_use_case
from .dependencies import get_workflow_hooks

router = APIRouter(prefix="/repositions", tags=["repositions"])


@router.post("", response_model=RepositionResponse, status_code=status.HTTP_201_CREATED)
def create_reposition(
    data: RepositionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    """Create a reposition in the caller's area."""
    return create_reposition_use_case(db=db, data=data, current_user=current_user, hooks=hooks)


@router.get("", response_model=list[RepositionResponse])
def list_repositions(
    area: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Repositions visible to the caller's area."""
    return list_for_user_use_case(db=db, current_user=current_user, area=area)


@router.get("/all", response_model=list[RepositionResponse])
def list_all_repositions(
    include_deleted: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_all_use_case(db=db, current_user=current_user, include_deleted=include_deleted)


@router.get("/pending-count", response_model=PendingCountResponse)
def pending_approvals_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"count": pending_approvals_use_case(db=db, current_user=current_user)}


@router.get("/area/{area}", response_model=list[RepositionResponse])
def list_repositions_by_area(
    area: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_by_area_use_case(db=db, area=area)


@router.get("/{reposition_id}", response_model=RepositionResponse)
def get_reposition(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_reposition_use_case(db=db, reposition_id=reposition_id)


@router.put("/{reposition_id}", response_model=RepositionResponse)
def edit_and_resubmit(
    reposition_id: int,
    data: RepositionUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    """Creator edits a rejected reposition and sends it back for approval."""
    return edit_and_resubmit_use_case(
        db=db, reposition_id=reposition_id, data=data, current_user=current_user, hooks=hooks
    )


@router.post("/{reposition_id}/approval", response_model=RepositionResponse)
def approve_reposition(
    reposition_id: int,
    data: ApprovalRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return approve_reposition_use_case(
        db=db,
        reposition_id=reposition_id,
        action=data.action,
        notes=data.notes,
        current_user=current_user,
        hooks=hooks,
    )


@router.post("/{reposition_id}/complete", response_model=CompletionResponse)
def complete_reposition(
    reposition_id: int,
    data: CompletionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    """Admin/envíos complete directly; other areas file a completion request."""
    outcome = complete_reposition_use_case(
        db=db, reposition_id=reposition_id, notes=data.notes, current_user=current_user, hooks=hooks
    )
    message = "Reposición completada" if outcome.completed else "Solicitud de finalización enviada"
    return CompletionResponse(
        completed=outcome.completed,
        message=message,
        reposition=RepositionResponse.model_validate(outcome.reposition),
    )


@router.post("/{reposition_id}/request-completion", response_model=RepositionResponse)
def request_completion(
    reposition_id: int,
    data: CompletionRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return request_completion_use_case(
        db=db, reposition_id=reposition_id, notes=data.notes, current_user=current_user, hooks=hooks
    )


@router.post("/{reposition_id}/cancel", response_model=RepositionResponse)
def cancel_reposition(
    reposition_id: int,
    data: ReasonRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return cancel_reposition_use_case(
        db=db, reposition_id=reposition_id, reason=data.reason, current_user=current_user, hooks=hooks
    )


@router.delete("/{reposition_id}", response_model=RepositionResponse)
def delete_reposition(
    reposition_id: int,
    reason: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    """Soft delete."""
    return delete_reposition_use_case(
        db=db, reposition_id=reposition_id, reason=reason, current_user=current_user, hooks=hooks
    )


@router.post(
    "/{reposition_id}/transfers",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
)
def request_transfer(
    reposition_id: int,
    data: TransferCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    """Propose handing the reposition from the caller's area to another area."""
    return request_transfer_use_case(
        db=db, reposition_id=reposition_id, data=data, current_user=current_user, hooks=hooks
    )


@router.get("/{reposition_id}/history", response_model=list[HistoryEntryResponse])
def get_history(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_history_use_case(db=db, reposition_id=reposition_id)


@router.get("/{reposition_id}/tracking", response_model=TrackingResponse)
def get_tracking(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_tracking_use_case(db=db, reposition_id=reposition_id)


@router.get("/{reposition_id}/pieces", response_model=list[PieceOut])
def list_pieces(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_pieces_use_case(db=db, reposition_id=reposition_id)


@router.get("/{reposition_id}/products", response_model=list[ProductOut])
def list_products(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_products_use_case(db=db, reposition_id=reposition_id)
