"""Fuel efficiency anomaly detection — sudden degradation in MT/NM.

For each active vessel with at least 2 fuel reports in the last 7 days:
  1. Take the 3 most recent reports.
  2. Mean efficiency over that set (the latest report included).
  3. Alert when the latest efficiency exceeds the mean by more than 20%.

Efficiency is fuel per nautical mile, so higher is worse.  Fewer than 2
reports is normal (sparse reporting), not an error.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.models.fuel_record import FuelRecord
from app.models.vessel import Vessel
from app.modules.alert_factory import AlertFactory
from app.modules.alert_rules import KIND_FUEL_EFFICIENCY
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 7
SAMPLE_SIZE = 3
MIN_RECORDS = 2
DEGRADATION_RATIO = 1.2


def _message(context: dict, severity) -> str:
    return (
        f"Fuel efficiency degraded: Current {context['current_efficiency']:.3f} MT/NM "
        f"vs average {context['average_efficiency']:.3f} MT/NM"
    )


def _recent_records_by_vessel(db: Session, since: datetime) -> dict[int, list[FuelRecord]]:
    """Recent reports for active vessels, newest first per vessel."""
    records = (
        db.query(FuelRecord)
        .join(Vessel, FuelRecord.vessel_id == Vessel.vessel_id)
        .filter(
            Vessel.is_active.is_(True),
            FuelRecord.report_date >= since,
        )
        .order_by(FuelRecord.vessel_id, FuelRecord.report_date.desc())
        .all()
    )
    by_vessel: dict[int, list[FuelRecord]] = defaultdict(list)
    for rec in records:
        by_vessel[rec.vessel_id].append(rec)
    return by_vessel


def evaluate_efficiency(efficiencies: list[float]) -> Optional[dict]:
    """Check newest-first efficiency values for degradation.

    Returns the alert context when the latest value is more than 20% above
    the mean of the sample, otherwise ``None``.
    """
    sample = efficiencies[:SAMPLE_SIZE]
    if len(sample) < MIN_RECORDS:
        return None
    average = sum(sample) / len(sample)
    if average <= 0:
        return None
    latest = sample[0]
    if latest <= average * DEGRADATION_RATIO:
        return None
    return {
        "current_efficiency": latest,
        "average_efficiency": average,
        "efficiency_increase": (latest - average) / average * 100,
        "sample_size": len(sample),
    }


def detect_fuel_efficiency_anomalies(
    db: Session,
    factory: Optional[AlertFactory] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Raise ``fuel-efficiency`` alerts for vessels burning noticeably more per mile.

    Returns:
        ``{"checked": N, "skipped_insufficient": S, "alerts_raised": M, "suppressed": K}``
    """
    now = now or utcnow()
    factory = factory or AlertFactory(db)
    since = now - timedelta(days=LOOKBACK_DAYS)

    by_vessel = _recent_records_by_vessel(db, since)
    raised = 0
    suppressed = 0
    skipped = 0

    for vessel_id, records in by_vessel.items():
        if len(records) < MIN_RECORDS:
            skipped += 1
            continue
        context = evaluate_efficiency([r.fuel_efficiency for r in records])
        if context is None:
            continue
        alert = factory.raise_alert(
            vessel_id,
            KIND_FUEL_EFFICIENCY,
            _message,
            context=context,
            now=now,
        )
        if alert is None:
            suppressed += 1
        else:
            raised += 1

    logger.info(
        "Fuel efficiency detection: %d vessels checked, %d skipped (insufficient data), "
        "%d alerts raised, %d suppressed.",
        len(by_vessel), skipped, raised, suppressed,
    )
    return {
        "checked": len(by_vessel),
        "skipped_insufficient": skipped,
        "alerts_raised": raised,
        "suppressed": suppressed,
    }
