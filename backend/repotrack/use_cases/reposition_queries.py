"""Read-side use-cases: lookups, area listings, history and tracking."""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ..domain_errors import Forbidden, ValidationError
from ..models import Reposition, RepositionPiece, RepositionProduct, User
from ..security import can_finalize
from ..services.area_graph import APPROVED_ONLY_VIEW_AREAS, APPROVER_AREAS, ensure_valid_area
from ..services.history_log import list_history
from ..services.reposition_rules import TERMINAL_STATUSES
from ..services.tracking import build_tracking, history_view
from .common import load_reposition


def _base_query(db: Session):
    return db.query(Reposition).options(
        selectinload(Reposition.pieces),
        selectinload(Reposition.products),
        selectinload(Reposition.contrast_fabrics),
    )


def _newest_first(query):
    return query.order_by(Reposition.created_at.desc(), Reposition.id.desc())


def _valid_area(area: str) -> str:
    try:
        return ensure_valid_area(area)
    except ValueError as error:
        raise ValidationError(code="REPOSITION_INVALID_AREA", message=str(error)) from error


def get_reposition_use_case(*, db: Session, reposition_id: int) -> Reposition:
    """Any status, eliminado included."""
    return load_reposition(db, reposition_id)


def list_by_area_use_case(*, db: Session, area: str) -> list[Reposition]:
    """Open repositions currently sitting in ``area``."""
    area = _valid_area(area)
    query = _base_query(db).filter(
        Reposition.current_area == area,
        Reposition.status.notin_(tuple(TERMINAL_STATUSES)),
    )
    return _newest_first(query).all()


def list_all_use_case(*, db: Session, current_user: User, include_deleted: bool = False) -> list[Reposition]:
    if not can_finalize(current_user):
        raise Forbidden(
            code="REPOSITION_LIST_ALL_FORBIDDEN",
            message="Solo admin o envíos pueden consultar todas las reposiciones",
        )
    query = _base_query(db)
    if not include_deleted:
        query = query.filter(Reposition.status != "eliminado")
    return _newest_first(query).all()


def list_for_user_use_case(*, db: Session, current_user: User, area: str | None = None) -> list[Reposition]:
    """Listing policy applied per caller area."""
    query = _base_query(db).filter(Reposition.status != "eliminado")

    if current_user.area in APPROVED_ONLY_VIEW_AREAS:
        query = query.filter(Reposition.status == "aprobado")
    elif can_finalize(current_user):
        if area:
            query = query.filter(Reposition.current_area == _valid_area(area))
    else:
        query = query.filter(
            or_(
                Reposition.current_area == current_user.area,
                Reposition.created_by == current_user.id,
            ),
            Reposition.status.notin_(tuple(TERMINAL_STATUSES)),
        )
    return _newest_first(query).all()


def pending_approvals_use_case(*, db: Session, current_user: User) -> int:
    if current_user.area not in APPROVER_AREAS:
        return 0
    return db.query(Reposition).filter(Reposition.status == "pendiente").count()


def get_history_use_case(*, db: Session, reposition_id: int) -> list[dict]:
    load_reposition(db, reposition_id)
    return [history_view(entry) for entry in list_history(db, reposition_id=reposition_id)]


def get_tracking_use_case(*, db: Session, reposition_id: int) -> dict:
    reposition = load_reposition(db, reposition_id)
    return build_tracking(db, reposition)


def list_pieces_use_case(*, db: Session, reposition_id: int) -> list[RepositionPiece]:
    load_reposition(db, reposition_id)
    return (
        db.query(RepositionPiece)
        .filter(RepositionPiece.reposition_id == reposition_id)
        .order_by(RepositionPiece.id.asc())
        .all()
    )


def list_products_use_case(*, db: Session, reposition_id: int) -> list[RepositionProduct]:
    load_reposition(db, reposition_id)
    return (
        db.query(RepositionProduct)
        .filter(RepositionProduct.reposition_id == reposition_id)
        .order_by(RepositionProduct.id.asc())
        .all()
    )
