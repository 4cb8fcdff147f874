"""Document metadata endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import User
from ..schemas import DocumentCreate, DocumentResponse
from ..use_cases.common import WorkflowHooks
from ..use_cases.documents import list_documents_use_case, record_document_use_case
from .dependencies import get_workflow_hooks

router = APIRouter(prefix="/repositions/{reposition_id}/documents", tags=["documents"])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def record_document(
    reposition_id: int,
    data: DocumentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    hooks: WorkflowHooks = Depends(get_workflow_hooks),
):
    """Record metadata of a file already stored by the upload service."""
    return record_document_use_case(
        db=db, reposition_id=reposition_id, data=data, current_user=current_user, hooks=hooks
    )


@router.get("", response_model=list[DocumentResponse])
def list_documents(
    reposition_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_documents_use_case(db=db, reposition_id=reposition_id)
