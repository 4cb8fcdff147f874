"""Human-readable folio allocation: JN-REQ-MM-YY-###."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import FolioCounter, Reposition

logger = logging.getLogger(__name__)

FOLIO_PREFIX = "JN-REQ"


def folio_prefix(at: datetime) -> str:
    return f"{FOLIO_PREFIX}-{at.month:02d}-{at.year % 100:02d}-"


def format_folio(at: datetime, sequence: int) -> str:
    return f"{folio_prefix(at)}{sequence:03d}"


def next_folio(db: Session, *, at: datetime) -> str:
    """Reserve the next folio for the month of ``at``.

    The counter row is locked for the rest of the transaction. A missing row
    is seeded from the folios already issued that month. A concurrent seed
    surfaces as IntegrityError when the caller flushes.
    """
    counter = (
        db.query(FolioCounter)
        .filter(FolioCounter.year == at.year, FolioCounter.month == at.month)
        .with_for_update()
        .first()
    )
    if counter is None:
        issued = (
            db.query(func.count(Reposition.id))
            .filter(Reposition.folio.like(f"{folio_prefix(at)}%"))
            .scalar()
        ) or 0
        counter = FolioCounter(year=at.year, month=at.month, last_value=issued)
        db.add(counter)

    counter.last_value = int(counter.last_value or 0) + 1
    folio = format_folio(at, counter.last_value)
    logger.debug("Allocated folio %s", folio)
    return folio
