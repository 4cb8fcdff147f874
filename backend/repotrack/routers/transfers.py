"""Transfer inbox and accept/reject endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import TransferProcess, TransferResponse
from ..use_cases.common import WorkflowHooks
from ..use_cases.reposition_transfers import list_pending_transfers_use_case, process_transfer_use_case
from .dependencies import get_workflow_hooks

router = APIRouter(prefix="/transfers", tags=["transfers"])


@router.get("/pending", response_model=list[TransferResponse])
def list_pending_transfers(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Pending transfers addressed to the caller's area."""
    return list_pending_transfers_use_case(db=db, current_user=current_user)


@router.post("/{transfer_id}/process", response_model=TransferResponse)
def process_transfer(
    transfer_id: int,
    data: TransferProcess,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return process_transfer_use_case(
        db=db,
        transfer_id=transfer_id,
        action=data.action,
        reason=data.reason,
        current_user=current_user,
        hooks=hooks,
    )
