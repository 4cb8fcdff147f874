from __future__ import annotations

import pytest

from repotrack.domain_errors import ConflictError, Forbidden, InvalidState, RateLimited, ValidationError
from repotrack.models import RepositionTransfer
from repotrack.schemas import ManualTimerRequest, TransferCreate
from repotrack.use_cases.reposition_timers import set_manual_timer_use_case
from repotrack.use_cases.reposition_transfers import (
    list_pending_transfers_use_case,
    process_transfer_use_case,
    request_transfer_use_case,
)


@pytest.fixture()
def request_transfer(db_session, hooks):
    def _request(reposition, user, to_area, **extra):
        return request_transfer_use_case(
            db=db_session,
            reposition_id=reposition.id,
            data=TransferCreate(to_area=to_area, **extra),
            current_user=user,
            hooks=hooks,
        )

    return _request


@pytest.fixture()
def process_transfer(db_session, hooks):
    def _process(transfer, user, action, reason=None):
        return process_transfer_use_case(
            db=db_session,
            transfer_id=transfer.id,
            action=action,
            reason=reason,
            current_user=user,
            hooks=hooks,
        )

    return _process


@pytest.fixture()
def log_manual_time(db_session, hooks):
    def _log(reposition, user, area, start="08:00", end="09:15"):
        return set_manual_timer_use_case(
            db=db_session,
            reposition_id=reposition.id,
            data=ManualTimerRequest(area=area, start_time=start, end_time=end, start_date="2025-03-10"),
            current_user=user,
            hooks=hooks,
        )

    return _log


def test_second_transfer_within_window_is_rate_limited(users, sink, approved_reposition, request_transfer) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado", notes="Piezas listas")
    assert transfer.status == "pending"
    assert transfer.from_area == "corte"
    assert sink.recipients("reposition_transfer") == {users["bordado"].id, users["bordado_2"].id}

    with pytest.raises(RateLimited) as exc_info:
        request_transfer(approved_reposition, users["corte"], "ensamble")
    assert 1 <= exc_info.value.remaining_minutes <= 5
    assert exc_info.value.details == {"remainingMinutes": exc_info.value.remaining_minutes}
    assert exc_info.value.http_status == 429


def test_remaining_minutes_shrink_as_the_window_elapses(users, clock, approved_reposition, request_transfer) -> None:
    request_transfer(approved_reposition, users["corte"], "bordado")
    clock.advance(minutes=3, seconds=10)
    with pytest.raises(RateLimited) as exc_info:
        request_transfer(approved_reposition, users["corte"], "ensamble")
    assert exc_info.value.remaining_minutes == 2


def test_cooldown_applies_after_rejection(users, clock, approved_reposition, request_transfer, process_transfer) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    clock.advance(minutes=1)
    process_transfer(transfer, users["bordado"], "rejected", reason="Faltan piezas")

    with pytest.raises(RateLimited):
        request_transfer(approved_reposition, users["corte"], "bordado")

    clock.advance(minutes=5)
    again = request_transfer(approved_reposition, users["corte"], "bordado")
    assert again.status == "pending"


def test_stale_pending_transfer_still_blocks_a_duplicate(users, clock, approved_reposition, request_transfer) -> None:
    request_transfer(approved_reposition, users["corte"], "bordado")
    clock.advance(minutes=30)
    with pytest.raises(ConflictError) as exc_info:
        request_transfer(approved_reposition, users["corte"], "ensamble")
    assert exc_info.value.code == "TRANSFER_PENDING_EXISTS"


def test_accepting_moves_current_area_and_notifies(db_session, users, clock, sink, approved_reposition, request_transfer, process_transfer) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    sink.clear()
    clock.advance(minutes=2)

    processed = process_transfer(transfer, users["bordado"], "accepted")

    assert processed.status == "accepted"
    assert processed.processed_by == users["bordado"].id
    db_session.refresh(approved_reposition)
    assert approved_reposition.current_area == "bordado"
    assert approved_reposition.returns_to_creator == 0
    assert sink.recipients("reposition_received") == {users["bordado_2"].id}
    assert sink.recipients("transfer_processed") == {users["corte"].id}


def test_rejection_keeps_area_and_records_reason(db_session, users, sink, approved_reposition, request_transfer, process_transfer) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    with pytest.raises(ValidationError):
        process_transfer(transfer, users["bordado"], "rejected", reason="no")

    processed = process_transfer(transfer, users["bordado"], "rejected", reason="Piezas manchadas")
    assert processed.rejection_reason == "Piezas manchadas"
    db_session.refresh(approved_reposition)
    assert approved_reposition.current_area == "corte"
    assert sink.of_type("reposition_received") == []


def test_only_destination_area_processes(users, approved_reposition, request_transfer, process_transfer) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    with pytest.raises(Forbidden):
        process_transfer(transfer, users["ensamble"], "accepted")
    assert process_transfer(transfer, users["admin"], "accepted").status == "accepted"


def test_processed_transfer_is_immutable(users, approved_reposition, request_transfer, process_transfer) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    process_transfer(transfer, users["bordado"], "accepted")
    with pytest.raises(InvalidState):
        process_transfer(transfer, users["bordado"], "rejected", reason="Cambio de opinión")


def test_transfer_requires_approved_reposition_and_distinct_area(users, create_reposition, approved_reposition, request_transfer) -> None:
    pending = create_reposition(users["corte"])
    with pytest.raises(InvalidState):
        request_transfer(pending, users["corte"], "bordado")
    with pytest.raises(ValidationError):
        request_transfer(approved_reposition, users["corte"], "corte")


def test_cutting_area_records_fabric_consumption(db_session, users, approved_reposition, request_transfer) -> None:
    request_transfer(approved_reposition, users["corte"], "bordado", consumo_tela=2.75)
    db_session.refresh(approved_reposition)
    assert approved_reposition.consumo_tela == 2.75


def test_intermediate_area_must_log_time_before_handing_off(
    users, clock, approved_reposition, request_transfer, process_transfer, log_manual_time
) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    process_transfer(transfer, users["bordado"], "accepted")

    with pytest.raises(InvalidState) as exc_info:
        request_transfer(approved_reposition, users["bordado"], "ensamble")
    assert exc_info.value.code == "TRANSFER_TIME_NOT_LOGGED"

    log_manual_time(approved_reposition, users["bordado"], "bordado")
    onward = request_transfer(approved_reposition, users["bordado"], "ensamble")
    assert onward.to_area == "ensamble"


def test_creator_area_logs_time_only_after_the_reposition_returns(
    db_session, users, clock, approved_reposition, request_transfer, process_transfer, log_manual_time
) -> None:
    outbound = request_transfer(approved_reposition, users["corte"], "bordado")
    process_transfer(outbound, users["bordado"], "accepted")
    log_manual_time(approved_reposition, users["bordado"], "bordado")
    clock.advance(minutes=1)
    back = request_transfer(approved_reposition, users["bordado"], "corte")
    process_transfer(back, users["corte"], "accepted")

    db_session.refresh(approved_reposition)
    assert approved_reposition.returns_to_creator == 1
    assert approved_reposition.current_area == "corte"

    clock.advance(minutes=10)
    with pytest.raises(InvalidState):
        request_transfer(approved_reposition, users["corte"], "calidad")

    log_manual_time(approved_reposition, users["corte"], "corte", start="10:00", end="10:40")
    assert request_transfer(approved_reposition, users["corte"], "calidad").to_area == "calidad"


def test_pending_inbox_lists_transfers_to_caller_area(db_session, users, approved_reposition, request_transfer) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    inbox = list_pending_transfers_use_case(db=db_session, current_user=users["bordado_2"])
    assert [t.id for t in inbox] == [transfer.id]
    assert list_pending_transfers_use_case(db=db_session, current_user=users["ensamble"]) == []


def test_pending_unique_index_rejects_a_racing_duplicate(db_session, users, clock, approved_reposition) -> None:
    from sqlalchemy.exc import IntegrityError

    for _ in range(2):
        db_session.add(
            RepositionTransfer(
                reposition_id=approved_reposition.id,
                from_area="corte",
                to_area="bordado",
                status="pending",
                created_by=users["corte"].id,
                created_at=clock(),
            )
        )
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_time_log_rule_only_applies_to_the_holding_area(
    db_session, users, approved_reposition, request_transfer, process_transfer
) -> None:
    transfer = request_transfer(approved_reposition, users["corte"], "bordado")
    process_transfer(transfer, users["bordado"], "accepted")

    side = request_transfer(approved_reposition, users["ensamble"], "calidad")
    assert side.from_area == "ensamble"
    assert side.status == "pending"

    with pytest.raises(InvalidState) as exc_info:
        request_transfer(approved_reposition, users["bordado"], "calidad")
    assert exc_info.value.code == "TRANSFER_TIME_NOT_LOGGED"
