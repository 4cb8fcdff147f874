"""Valid areas and the transfer route rule.

There is no fixed linear pipeline: any area may hand a reposition to any
other area. PIPELINE_ORDER is only the canonical display order used by
tracking.
"""

from __future__ import annotations

from ..models import AREAS


PIPELINE_ORDER: tuple[str, ...] = ("patronaje", "corte", "bordado", "ensamble", "plancha", "calidad")

APPROVER_AREAS: frozenset[str] = frozenset({"operaciones", "admin", "envios"})
FINALIZER_AREAS: frozenset[str] = frozenset({"admin", "envios"})
WAREHOUSE_AREAS: frozenset[str] = frozenset({"almacen", "admin"})
# Areas that only see approved repositions in their listings.
APPROVED_ONLY_VIEW_AREAS: frozenset[str] = frozenset({"diseño", "almacen"})

AREA_LABELS: dict[str, str] = {
    "patronaje": "Patronaje",
    "corte": "Corte",
    "bordado": "Bordado",
    "ensamble": "Ensamble",
    "plancha": "Plancha",
    "calidad": "Calidad",
    "operaciones": "Operaciones",
    "admin": "Administración",
    "almacen": "Almacén",
    "diseño": "Diseño",
    "envios": "Envíos",
}


def normalize_area(area: str | None) -> str:
    if not area:
        return ""
    return area.strip().lower()


def ensure_valid_area(area: str | None) -> str:
    normalized = normalize_area(area)
    if normalized not in AREAS:
        raise ValueError(f"Área inválida: {area}")
    return normalized


def ensure_transfer_route(*, from_area: str | None, to_area: str | None) -> tuple[str, str]:
    source = ensure_valid_area(from_area)
    target = ensure_valid_area(to_area)
    if source == target:
        raise ValueError("No se puede transferir una reposición a la misma área")
    return source, target


def pipeline_sort_key(area: str) -> tuple[int, int]:
    """Pipeline areas first in canonical order, any other area appended in AREAS order."""
    if area in PIPELINE_ORDER:
        return 0, PIPELINE_ORDER.index(area)
    if area in AREAS:
        return 1, AREAS.index(area)
    return 2, 0
