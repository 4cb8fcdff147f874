"""Reposition lifecycle invariant helpers."""

from __future__ import annotations

from typing import Iterable, Sequence

from ..models import REPOSITION_TYPES, URGENCY_LEVELS


TERMINAL_STATUSES: set[str] = {"completado", "cancelado", "eliminado"}
# Statuses from which cancel/delete are permitted.
WITHDRAWABLE_STATUSES: set[str] = {"pendiente", "aprobado", "rechazado"}
_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pendiente": {"aprobado", "rechazado", "cancelado", "eliminado"},
    "aprobado": {"completado", "cancelado", "eliminado"},
    "rechazado": {"pendiente", "cancelado", "eliminado"},
    "completado": set(),
    "cancelado": set(),
    "eliminado": set(),
}
APPROVAL_ACTIONS: set[str] = {"aprobado", "rechazado"}


def normalize_status(status: str | None) -> str:
    if not status:
        return "pendiente"
    return status.strip().lower()


def is_terminal_status(status: str | None) -> bool:
    return normalize_status(status) in TERMINAL_STATUSES


def validate_status_transition(*, current_status: str | None, next_status: str) -> str:
    current = normalize_status(current_status)
    nxt = normalize_status(next_status)
    allowed = _ALLOWED_TRANSITIONS.get(current, set())
    if nxt not in allowed:
        raise ValueError(f"Transición de estado inválida: {current} -> {nxt}")
    return nxt


def ensure_reason(reason: str | None, *, min_length: int, label: str = "El motivo") -> str:
    text = (reason or "").strip()
    if len(text) < min_length:
        raise ValueError(f"{label} debe tener al menos {min_length} caracteres")
    return text


def ensure_approval_action(action: str | None) -> str:
    normalized = normalize_status(action)
    if normalized not in APPROVAL_ACTIONS:
        raise ValueError("La acción debe ser 'aprobado' o 'rechazado'")
    return normalized


def _present(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def ensure_pieces(pieces: Sequence[object]) -> None:
    if not pieces:
        raise ValueError("Debe incluir al menos una pieza")
    for piece in pieces:
        talla = getattr(piece, "talla", None)
        cantidad = getattr(piece, "cantidad", None)
        if not _present(talla):
            raise ValueError("Cada pieza debe tener talla")
        if cantidad is None or int(cantidad) < 1:
            raise ValueError("La cantidad de cada pieza debe ser al menos 1")


def ensure_products(products: Sequence[object]) -> None:
    for index, product in enumerate(products, start=1):
        for field in ("modelo_prenda", "tela", "color", "tipo_pieza"):
            if not _present(getattr(product, field, None)):
                raise ValueError(f"Producto {index}: el campo {field} es obligatorio")


def validate_reposition_payload(
    *,
    type: str | None,
    urgencia: str | None,
    pieces: Sequence[object],
    products: Sequence[object] = (),
    volver_hacer: str | None = None,
    materiales_implicados: str | None = None,
) -> None:
    """Raise ValueError when the create/edit payload breaks a business rule."""
    if type not in REPOSITION_TYPES:
        raise ValueError("Tipo de reposición inválido")
    if urgencia not in URGENCY_LEVELS:
        raise ValueError("Nivel de urgencia inválido")
    # A reproceso may carry no pieces; any it does carry must be complete.
    if type == "repocision" or pieces:
        ensure_pieces(pieces)
    ensure_products(products)
    if type == "reproceso":
        if not _present(volver_hacer):
            raise ValueError("Un reproceso requiere indicar qué se debe volver a hacer")
        if not _present(materiales_implicados):
            raise ValueError("Un reproceso requiere indicar los materiales implicados")


def collect_pieces(pieces: Sequence[object], products: Iterable[object]) -> list[object]:
    """Top-level pieces win; otherwise pieces nested under each product are flattened."""
    if pieces:
        return list(pieces)
    collected: list[object] = []
    for product in products:
        collected.extend(getattr(product, "pieces", None) or [])
    return collected
