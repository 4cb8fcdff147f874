"""Per-area working time endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import ManualTimerRequest, TimerAreaRequest, TimerResponse, TimerStopResponse
from ..use_cases.common import WorkflowHooks
from ..use_cases.reposition_timers import (
    get_timer_use_case,
    set_manual_timer_use_case,
    start_timer_use_case,
    stop_timer_use_case,
)
from .dependencies import get_workflow_hooks

router = APIRouter(prefix="/repositions/{reposition_id}/timers", tags=["timers"])


@router.post("/start", response_model=TimerResponse)
def start_timer(
    reposition_id: int,
    data: TimerAreaRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return start_timer_use_case(
        db=db, reposition_id=reposition_id, area=data.area, current_user=current_user, hooks=hooks
    )


@router.post("/stop", response_model=TimerStopResponse)
def stop_timer(
    reposition_id: int,
    data: TimerAreaRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return stop_timer_use_case(
        db=db, reposition_id=reposition_id, area=data.area, current_user=current_user, hooks=hooks
    )


@router.post("/manual", response_model=TimerResponse)
def set_manual_timer(
    reposition_id: int,
    data: ManualTimerRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    """Register a manually reported interval (may cross midnight)."""
    return set_manual_timer_use_case(
        db=db, reposition_id=reposition_id, data=data, current_user=current_user, hooks=hooks
    )


@router.get("/{area}", response_model=Optional[TimerResponse])
def get_timer(
    reposition_id: int,
    area: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_timer_use_case(db=db, reposition_id=reposition_id, area=area)
