from types import SimpleNamespace

import pytest

from repotrack.services.area_graph import ensure_transfer_route, ensure_valid_area, pipeline_sort_key
from repotrack.services.reposition_rules import (
    collect_pieces,
    ensure_approval_action,
    ensure_reason,
    is_terminal_status,
    validate_reposition_payload,
    validate_status_transition,
)


def _piece(talla="M", cantidad=1):
    return SimpleNamespace(talla=talla, cantidad=cantidad)


def test_pending_can_be_approved_or_rejected() -> None:
    assert validate_status_transition(current_status="pendiente", next_status="aprobado") == "aprobado"
    assert validate_status_transition(current_status="pendiente", next_status="rechazado") == "rechazado"


def test_rejected_only_returns_to_pending_through_resubmission() -> None:
    assert validate_status_transition(current_status="rechazado", next_status="pendiente") == "pendiente"
    with pytest.raises(ValueError, match="inválida"):
        validate_status_transition(current_status="rechazado", next_status="aprobado")


@pytest.mark.parametrize("terminal", ["completado", "cancelado", "eliminado"])
def test_terminal_statuses_have_no_exit(terminal: str) -> None:
    assert is_terminal_status(terminal)
    for target in ("pendiente", "aprobado", "rechazado", "completado", "cancelado", "eliminado"):
        with pytest.raises(ValueError):
            validate_status_transition(current_status=terminal, next_status=target)


def test_reason_shorter_than_minimum_is_rejected() -> None:
    with pytest.raises(ValueError, match="al menos 10"):
        ensure_reason("corto", min_length=10)


def test_reason_is_stripped_before_measuring() -> None:
    with pytest.raises(ValueError):
        ensure_reason("   abc     ", min_length=5)
    assert ensure_reason("  tela manchada  ", min_length=10) == "tela manchada"


def test_approval_action_must_be_known() -> None:
    assert ensure_approval_action("APROBADO") == "aprobado"
    with pytest.raises(ValueError):
        ensure_approval_action("completado")


def test_reproceso_requires_redo_and_materials() -> None:
    with pytest.raises(ValueError, match="volver a hacer"):
        validate_reposition_payload(type="reproceso", urgencia="urgente", pieces=[_piece()])
    with pytest.raises(ValueError, match="materiales"):
        validate_reposition_payload(
            type="reproceso",
            urgencia="urgente",
            pieces=[_piece()],
            volver_hacer="Bordado del logo",
        )
    validate_reposition_payload(
        type="reproceso",
        urgencia="intermedio",
        pieces=[_piece()],
        volver_hacer="Bordado del logo",
        materiales_implicados="Hilo blanco",
    )


def test_pieces_need_size_and_positive_quantity() -> None:
    with pytest.raises(ValueError, match="talla"):
        validate_reposition_payload(type="repocision", urgencia="urgente", pieces=[_piece(talla=" ")])
    with pytest.raises(ValueError, match="cantidad"):
        validate_reposition_payload(type="repocision", urgencia="urgente", pieces=[_piece(cantidad=0)])
    with pytest.raises(ValueError, match="al menos una pieza"):
        validate_reposition_payload(type="repocision", urgencia="urgente", pieces=[])


def test_every_product_needs_garment_attributes() -> None:
    incomplete = SimpleNamespace(modelo_prenda="Filipina", tela="Gabardina", color="", tipo_pieza="Manga")
    with pytest.raises(ValueError, match="Producto 1: el campo color"):
        validate_reposition_payload(
            type="repocision",
            urgencia="poco_urgente",
            pieces=[_piece()],
            products=[incomplete],
        )


def test_unknown_type_or_urgency_is_rejected() -> None:
    with pytest.raises(ValueError, match="Tipo"):
        validate_reposition_payload(type="reparacion", urgencia="urgente", pieces=[_piece()])
    with pytest.raises(ValueError, match="urgencia"):
        validate_reposition_payload(type="repocision", urgencia="ya", pieces=[_piece()])


def test_nested_product_pieces_are_used_when_no_top_level_pieces() -> None:
    products = [
        SimpleNamespace(pieces=[_piece("S", 1)]),
        SimpleNamespace(pieces=[_piece("XL", 3), _piece("M", 2)]),
    ]
    assert [p.talla for p in collect_pieces([], products)] == ["S", "XL", "M"]
    top = [_piece("CH", 4)]
    assert collect_pieces(top, products) == top


def test_transfer_route_rejects_same_area_and_unknown_areas() -> None:
    assert ensure_transfer_route(from_area="Corte", to_area="bordado") == ("corte", "bordado")
    with pytest.raises(ValueError, match="misma área"):
        ensure_transfer_route(from_area="corte", to_area="corte")
    with pytest.raises(ValueError, match="Área inválida"):
        ensure_transfer_route(from_area="corte", to_area="lavanderia")


def test_any_area_may_hand_off_to_any_other() -> None:
    assert ensure_transfer_route(from_area="calidad", to_area="patronaje") == ("calidad", "patronaje")
    assert ensure_valid_area("diseño") == "diseño"


def test_pipeline_order_puts_production_areas_first() -> None:
    areas = ["envios", "calidad", "corte", "almacen", "patronaje"]
    assert sorted(areas, key=pipeline_sort_key) == ["patronaje", "corte", "calidad", "almacen", "envios"]


def test_reproceso_may_omit_pieces_but_given_pieces_are_checked() -> None:
    details = {"volver_hacer": "Bordado del logo", "materiales_implicados": "Hilo blanco"}
    validate_reposition_payload(type="reproceso", urgencia="urgente", pieces=[], **details)
    with pytest.raises(ValueError, match="talla"):
        validate_reposition_payload(type="reproceso", urgencia="urgente", pieces=[_piece(talla="")], **details)
