from __future__ import annotations

import pytest

from repotrack.domain_errors import ConflictError, Forbidden, InvalidState, NotFound, ValidationError
from repotrack.models import RepositionHistory
from repotrack.schemas import ManualTimerRequest, TransferCreate
from repotrack.use_cases.reposition_timers import (
    get_timer_use_case,
    set_manual_timer_use_case,
    start_timer_use_case,
    stop_timer_use_case,
)
from repotrack.use_cases.reposition_transfers import process_transfer_use_case, request_transfer_use_case


@pytest.fixture()
def in_bordado(db_session, hooks, users, approved_reposition):
    """Approved reposition already accepted by bordado."""
    transfer = request_transfer_use_case(
        db=db_session,
        reposition_id=approved_reposition.id,
        data=TransferCreate(to_area="bordado"),
        current_user=users["corte"],
        hooks=hooks,
    )
    process_transfer_use_case(
        db=db_session,
        transfer_id=transfer.id,
        action="accepted",
        reason=None,
        current_user=users["bordado"],
        hooks=hooks,
    )
    return approved_reposition


def _start(db_session, hooks, reposition, user, area=None):
    return start_timer_use_case(db=db_session, reposition_id=reposition.id, area=area, current_user=user, hooks=hooks)


def _stop(db_session, hooks, reposition, user, area=None):
    return stop_timer_use_case(db=db_session, reposition_id=reposition.id, area=area, current_user=user, hooks=hooks)


def test_manual_time_across_midnight(db_session, hooks, users, in_bordado) -> None:
    timer = set_manual_timer_use_case(
        db=db_session,
        reposition_id=in_bordado.id,
        data=ManualTimerRequest(area="bordado", start_time="23:30", end_time="00:15", start_date="2025-03-10"),
        current_user=users["bordado"],
        hooks=hooks,
    )
    assert timer.elapsed_minutes == 45
    assert timer.manual_date == "2025-03-10"
    assert timer.manual_end_date == "2025-03-11"
    assert timer.is_running is False

    latest = (
        db_session.query(RepositionHistory)
        .filter(RepositionHistory.reposition_id == in_bordado.id)
        .order_by(RepositionHistory.id.desc())
        .first()
    )
    assert latest.action == "manual_time_set"
    assert latest.description == "Tiempo manual registrado: 45 minutos en área bordado"


def test_manual_time_overwrites_previous_value(db_session, hooks, users, in_bordado) -> None:
    for end in ("09:00", "08:20"):
        timer = set_manual_timer_use_case(
            db=db_session,
            reposition_id=in_bordado.id,
            data=ManualTimerRequest(area="bordado", start_time="08:00", end_time=end, start_date="2025-03-10"),
            current_user=users["bordado"],
            hooks=hooks,
        )
    assert timer.elapsed_minutes == 20


def test_manual_time_with_inverted_dates_is_invalid(db_session, hooks, users, in_bordado) -> None:
    with pytest.raises(ValidationError) as exc_info:
        set_manual_timer_use_case(
            db=db_session,
            reposition_id=in_bordado.id,
            data=ManualTimerRequest(
                area="bordado",
                start_time="08:00",
                end_time="09:00",
                start_date="2025-03-11",
                end_date="2025-03-10",
            ),
            current_user=users["bordado"],
            hooks=hooks,
        )
    assert exc_info.value.code == "TIMER_INVALID_RANGE"


def test_start_and_stop_reports_elapsed_clock(db_session, hooks, clock, users, in_bordado) -> None:
    timer = _start(db_session, hooks, in_bordado, users["bordado"])
    assert timer.is_running is True
    assert timer.area == "bordado"

    clock.advance(minutes=90)
    result = _stop(db_session, hooks, in_bordado, users["bordado"])

    assert result == {"elapsed_time": "01:30:00", "elapsed_minutes": 90}
    stored = get_timer_use_case(db=db_session, reposition_id=in_bordado.id, area="bordado")
    assert stored.is_running is False
    assert stored.elapsed_minutes == 90


def test_restart_accumulates_elapsed_minutes(db_session, hooks, clock, users, in_bordado) -> None:
    _start(db_session, hooks, in_bordado, users["bordado"])
    clock.advance(minutes=30)
    _stop(db_session, hooks, in_bordado, users["bordado"])

    clock.advance(minutes=15)
    _start(db_session, hooks, in_bordado, users["bordado_2"])
    clock.advance(minutes=20)
    result = _stop(db_session, hooks, in_bordado, users["bordado_2"])

    assert result["elapsed_time"] == "00:20:00"
    assert result["elapsed_minutes"] == 50


def test_second_start_while_running_conflicts(db_session, hooks, users, in_bordado) -> None:
    _start(db_session, hooks, in_bordado, users["bordado"])
    with pytest.raises(ConflictError) as exc_info:
        _start(db_session, hooks, in_bordado, users["bordado_2"])
    assert exc_info.value.code == "TIMER_ALREADY_RUNNING"


def test_stop_without_running_timer_is_not_found(db_session, hooks, users, in_bordado) -> None:
    with pytest.raises(NotFound):
        _stop(db_session, hooks, in_bordado, users["bordado"])


def test_creator_cannot_log_time_on_first_pass(db_session, hooks, users, approved_reposition) -> None:
    with pytest.raises(Forbidden) as exc_info:
        _start(db_session, hooks, approved_reposition, users["corte"])
    assert exc_info.value.code == "TIMER_CREATOR_FIRST_PASS"


def test_time_is_only_logged_on_approved_repositions(db_session, hooks, users, create_reposition) -> None:
    pending = create_reposition(users["corte"])
    with pytest.raises(InvalidState):
        _start(db_session, hooks, pending, users["bordado"])


def test_users_log_time_only_for_their_own_area(db_session, hooks, users, in_bordado) -> None:
    with pytest.raises(Forbidden) as exc_info:
        _start(db_session, hooks, in_bordado, users["bordado"], area="ensamble")
    assert exc_info.value.code == "TIMER_AREA_FORBIDDEN"
    with pytest.raises(ValidationError):
        _start(db_session, hooks, in_bordado, users["bordado"], area="lavanderia")


def test_missing_timer_reads_as_none(db_session, users, in_bordado) -> None:
    assert get_timer_use_case(db=db_session, reposition_id=in_bordado.id, area="ensamble") is None
