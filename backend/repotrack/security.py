"""Area-based authorization predicates.

Every workflow operation calls these itself; routers never pre-filter.
"""

from __future__ import annotations

from .models import Reposition, RepositionTransfer, User
from .services.area_graph import APPROVER_AREAS, FINALIZER_AREAS, WAREHOUSE_AREAS


def can_approve(user: User) -> bool:
    return user.area in APPROVER_AREAS


def can_finalize(user: User) -> bool:
    """Complete directly, cancel or delete."""
    return user.area in FINALIZER_AREAS


def can_manage_materials(user: User) -> bool:
    return user.area in WAREHOUSE_AREAS


def is_creator(user: User, reposition: Reposition) -> bool:
    return reposition.created_by == user.id


def belongs_to_creator_area(user: User, reposition: Reposition) -> bool:
    return user.area == reposition.solicitante_area


def can_process_transfer(user: User, transfer: RepositionTransfer) -> bool:
    return user.area == "admin" or user.area == transfer.to_area


def can_log_time_for(user: User, area: str) -> bool:
    return user.area == area or user.area == "admin"
