"""Warehouse (almacén) material control endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import MaterialStatusResponse, MaterialStatusUpdate, PauseRequest
from ..use_cases.common import WorkflowHooks
from ..use_cases.reposition_materials import (
    get_material_status_use_case,
    pause_reposition_use_case,
    resume_reposition_use_case,
    update_material_status_use_case,
)
from .dependencies import get_workflow_hooks

router = APIRouter(prefix="/almacen/repositions/{reposition_id}", tags=["almacen"])


@router.get("/materials", response_model=Optional[MaterialStatusResponse])
def get_material_status(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_material_status_use_case(db=db, reposition_id=reposition_id)


@router.put("/materials", response_model=MaterialStatusResponse)
def update_material_status(
    reposition_id: int,
    data: MaterialStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return update_material_status_use_case(
        db=db, reposition_id=reposition_id, data=data, current_user=current_user, hooks=hooks
    )


@router.post("/pause", response_model=MaterialStatusResponse)
def pause_reposition(
    reposition_id: int,
    data: PauseRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return pause_reposition_use_case(
        db=db, reposition_id=reposition_id, reason=data.reason, current_user=current_user, hooks=hooks
    )


@router.post("/resume", response_model=MaterialStatusResponse)
def resume_reposition(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    return resume_reposition_use_case(
        db=db, reposition_id=reposition_id, current_user=current_user, hooks=hooks
    )
