"""Position timeout detection — active vessels that have stopped reporting.

A vessel is overdue when its latest position is older than 2 hours.  A
vessel with no position at all is measured from its build/registration
date (falling back to the row's creation time), so a never-reporting
vessel yields a large, real ``hours_without_update`` rather than zero.

Severity: > 12 h CRITICAL, otherwise WARNING.  Repeat alerts for the same
vessel are suppressed for 6 hours.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models.vessel import Vessel
from app.models.vessel_position import VesselPosition
from app.modules.alert_factory import AlertFactory
from app.modules.alert_rules import KIND_POSITION_TIMEOUT
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

POSITION_TIMEOUT_HOURS = 2


def _find_overdue_vessels(db: Session, cutoff: datetime) -> list[tuple[Vessel, Optional[datetime]]]:
    """Active vessels whose last position predates ``cutoff`` (or is missing)."""
    latest = (
        db.query(
            VesselPosition.vessel_id.label("vessel_id"),
            func.max(VesselPosition.timestamp_utc).label("last_ts"),
        )
        .group_by(VesselPosition.vessel_id)
        .subquery()
    )
    return (
        db.query(Vessel, latest.c.last_ts)
        .outerjoin(latest, latest.c.vessel_id == Vessel.vessel_id)
        .filter(Vessel.is_active.is_(True))
        .filter(or_(latest.c.last_ts.is_(None), latest.c.last_ts < cutoff))
        .order_by(Vessel.vessel_id)
        .all()
    )


def _message(context: dict, severity) -> str:
    return f"No position update received for {context['hours_without_update']:.1f} hours"


def detect_position_timeouts(
    db: Session,
    factory: Optional[AlertFactory] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Raise ``position-timeout`` alerts for silent vessels.

    Returns:
        ``{"checked": N, "alerts_raised": M, "suppressed": K}``
    """
    now = now or utcnow()
    factory = factory or AlertFactory(db)
    cutoff = now - timedelta(hours=POSITION_TIMEOUT_HOURS)

    overdue = _find_overdue_vessels(db, cutoff)
    raised = 0
    suppressed = 0

    for vessel, last_ts in overdue:
        fallback = last_ts is None
        last_update = last_ts if last_ts is not None else (vessel.build_date or vessel.created_at)
        if last_update is None:
            logger.warning(
                "Vessel %s has no position and no build/registration date — skipping timeout check",
                vessel.vessel_id,
            )
            continue

        hours = (now - last_update).total_seconds() / 3600
        alert = factory.raise_alert(
            vessel.vessel_id,
            KIND_POSITION_TIMEOUT,
            _message,
            context={
                "hours_without_update": hours,
                "last_update": last_update,
                "fallback_anchor": fallback,
            },
            now=now,
        )
        if alert is None:
            suppressed += 1
        else:
            raised += 1

    logger.info(
        "Position timeout detection: %d overdue vessels, %d alerts raised, %d suppressed.",
        len(overdue), raised, suppressed,
    )
    return {"checked": len(overdue), "alerts_raised": raised, "suppressed": suppressed}
