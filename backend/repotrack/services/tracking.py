"""Read-only tracking view assembled from the record, transfers, timers and history."""

from __future__ import annotations

import math
import re
from typing import Any

from sqlalchemy.orm import Session, joinedload

from ..models import Reposition, RepositionMaterial, RepositionTimer, RepositionTransfer
from .area_graph import pipeline_sort_key
from .history_log import list_history
from .timer_ledger import format_duration, list_timers

UNKNOWN_USER = "Usuario desconocido"

# History written before timers had their own table only recorded manual time as text.
_LEGACY_MANUAL_TIME = re.compile(r"(\d+)\s*minutos?\s*en\s*área\s*(\w+)", re.IGNORECASE)
_LEGACY_MARKER = "Tiempo manual registrado:"


def _is_bounded(timer: RepositionTimer) -> bool:
    if timer.manual_start_time and timer.manual_end_time:
        return True
    return bool(timer.start_time and timer.end_time and not timer.is_running)


def _timer_minutes(timer: RepositionTimer) -> int:
    # A running timer still reports the minutes of its finished segments.
    return max(0, int(timer.elapsed_minutes or 0))


def _legacy_minutes(history, skip_areas: set[str]) -> dict[str, int]:
    found: dict[str, int] = {}
    for entry in history:
        if not entry.description or _LEGACY_MARKER not in entry.description:
            continue
        match = _LEGACY_MANUAL_TIME.search(entry.description)
        if match is None:
            continue
        minutes = int(match.group(1))
        area = match.group(2).lower()
        if minutes <= 0 or area in skip_areas:
            continue
        found[area] = found.get(area, 0) + minutes
    return found


def _user_name(user) -> str:
    if user is None or not getattr(user, "name", None):
        return UNKNOWN_USER
    return user.name


def history_view(entry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "action": entry.action,
        "description": entry.description,
        "from_area": entry.from_area,
        "to_area": entry.to_area,
        "pieces": entry.pieces,
        "user_id": entry.user_id,
        "user_name": _user_name(entry.user),
        "created_at": entry.created_at,
    }


def _step_event(history, area: str, solicitante_area: str):
    """Newest history entry that marks arrival or time logged in ``area``."""
    for entry in history:
        if entry.to_area == area:
            return entry
        if entry.action == "created" and area == solicitante_area:
            return entry
        if entry.action == "manual_time_set" and entry.description and area in entry.description:
            return entry
    return None


def build_tracking(db: Session, reposition: Reposition) -> dict[str, Any]:
    history = list_history(db, reposition_id=reposition.id, newest_first=True)
    timers = list_timers(db, reposition_id=reposition.id)
    timers_by_area = {timer.area: timer for timer in timers}
    transfers = (
        db.query(RepositionTransfer)
        .options(joinedload(RepositionTransfer.creator), joinedload(RepositionTransfer.processor))
        .filter(RepositionTransfer.reposition_id == reposition.id)
        .order_by(RepositionTransfer.created_at.desc(), RepositionTransfer.id.desc())
        .all()
    )
    material = (
        db.query(RepositionMaterial)
        .filter(RepositionMaterial.reposition_id == reposition.id)
        .first()
    )

    areas = sorted({*timers_by_area.keys(), reposition.current_area}, key=pipeline_sort_key)
    is_completed = reposition.status == "completado"

    steps: list[dict[str, Any]] = []
    for index, area in enumerate(areas, start=1):
        timer = timers_by_area.get(area)
        if (timer is not None and _is_bounded(timer)) or is_completed:
            status = "completed"
        elif area == reposition.current_area:
            status = "current"
        else:
            status = "pending"

        minutes = _timer_minutes(timer) if timer is not None else 0
        event = _step_event(history, area, reposition.solicitante_area)
        steps.append(
            {
                "id": index,
                "area": area,
                "status": status,
                "timestamp": event.created_at if event else (timer.created_at if timer else None),
                "user": _user_name(event.user) if event else None,
                "time_spent": format_duration(minutes) if minutes > 0 else None,
                "time_in_minutes": minutes,
                "date": timer.manual_date if timer else None,
            }
        )

    area_times: dict[str, int] = {}
    for timer in timers:
        minutes = _timer_minutes(timer)
        if minutes > 0:
            area_times[timer.area] = area_times.get(timer.area, 0) + minutes
    for area, minutes in _legacy_minutes(history, set(timers_by_area)).items():
        area_times[area] = area_times.get(area, 0) + minutes

    total_minutes = sum(area_times.values())
    completed_steps = sum(1 for step in steps if step["status"] == "completed")
    progress = math.floor(100 * completed_steps / len(steps) + 0.5) if steps else 0

    return {
        "reposition": {
            "id": reposition.id,
            "folio": reposition.folio,
            "status": reposition.status,
            "current_area": reposition.current_area,
            "progress": progress,
            "is_paused": bool(material and material.is_paused),
        },
        "steps": steps,
        "history": [history_view(entry) for entry in history],
        "transfers": [
            {
                "id": transfer.id,
                "from_area": transfer.from_area,
                "to_area": transfer.to_area,
                "status": transfer.status,
                "notes": transfer.notes or "",
                "consumo_tela": transfer.consumo_tela,
                "rejection_reason": transfer.rejection_reason,
                "created_at": transfer.created_at,
                "processed_at": transfer.processed_at,
                "transferred_by": _user_name(transfer.creator),
                "processed_by": _user_name(transfer.processor) if transfer.processed_by else None,
            }
            for transfer in transfers
        ],
        "total_time": {
            "formatted": format_duration(total_minutes) if total_minutes > 0 else "0m",
            "minutes": total_minutes,
        },
        "area_times": area_times,
    }
