"""Document metadata for a reposition; the blobs themselves live in external storage."""
from __future__ import annotations

import logging
import os

from sqlalchemy.orm import Session

from ..config import settings
from ..domain_errors import ValidationError
from ..models import RepositionDocument, User
from ..schemas import DocumentCreate
from ..services.history_log import append_history
from .common import WorkflowHooks, commit_or_conflict, current_time, load_reposition

logger = logging.getLogger(__name__)


def _extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lstrip(".").lower()


def record_document_use_case(
    *,
    db: Session,
    reposition_id: int,
    data: DocumentCreate,
    current_user: User,
    hooks: WorkflowHooks,
) -> RepositionDocument:
    if _extension(data.original_name) not in settings.allowed_document_extensions_list:
        raise ValidationError(
            code="DOCUMENT_EXTENSION_NOT_ALLOWED",
            message=f"Tipo de archivo no permitido: {data.original_name}",
        )
    if data.size <= 0 or data.size > settings.MAX_DOCUMENT_SIZE:
        raise ValidationError(
            code="DOCUMENT_SIZE_INVALID",
            message=f"El archivo debe pesar entre 1 byte y {settings.MAX_DOCUMENT_SIZE} bytes",
        )

    reposition = load_reposition(db, reposition_id)
    now = current_time(hooks)
    document = RepositionDocument(
        reposition_id=reposition.id,
        filename=data.filename,
        original_name=data.original_name,
        size=data.size,
        path=data.path,
        uploaded_by=current_user.id,
        created_at=now,
    )
    db.add(document)
    append_history(
        db,
        reposition_id=reposition.id,
        action="document_uploaded",
        description=f"Documento adjuntado: {data.original_name}",
        user_id=current_user.id,
        at=now,
    )
    commit_or_conflict(db, code="DOCUMENT_CONFLICT", message="No se pudo registrar el documento")
    logger.info(f"Document {data.filename} recorded for {reposition.folio}")
    return document


def list_documents_use_case(*, db: Session, reposition_id: int) -> list[RepositionDocument]:
    load_reposition(db, reposition_id)
    return (
        db.query(RepositionDocument)
        .filter(RepositionDocument.reposition_id == reposition_id)
        .order_by(RepositionDocument.created_at.desc(), RepositionDocument.id.desc())
        .all()
    )
