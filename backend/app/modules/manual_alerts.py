"""Manual / event-driven alert builders.

Called synchronously by fuel, position, maintenance and sensor processing.
Each renders a kind-specific message, packs its inputs as the alert
context and hands off to the ``AlertFactory``.  Manual kinds are never
deduplicated, so every call creates an alert.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.models.base import SeverityEnum
from app.models.vessel_alert import VesselAlert
from app.modules.alert_factory import AlertFactory
from app.modules.alert_rules import (
    KIND_ENGINE_OVERTEMP,
    KIND_FUEL_LOW,
    KIND_GEOFENCE,
    KIND_MAINTENANCE_DUE,
)
from app.modules.severity import whole_days
from app.utils.clock import as_naive_utc, utcnow

logger = logging.getLogger(__name__)

_GEOFENCE_MESSAGES = {
    "ENTER": "Vessel entered restricted area at {lat:.4f}, {lon:.4f}",
    "EXIT": "Vessel exited designated area at {lat:.4f}, {lon:.4f}",
    "APPROACH": "Vessel approaching restricted area at {lat:.4f}, {lon:.4f}",
}
_GEOFENCE_FALLBACK = "Position alert at {lat:.4f}, {lon:.4f}"


def _raise(
    db: Session,
    factory: Optional[AlertFactory],
    vessel_id: int,
    kind: str,
    message: str,
    **kwargs,
) -> VesselAlert:
    alert = (factory or AlertFactory(db)).raise_alert(vessel_id, kind, message, **kwargs)
    # Manual kinds carry no dedup window; None here means the rule table changed.
    if alert is None:
        raise RuntimeError(f"Manual {kind} alert for vessel {vessel_id} was suppressed")
    return alert


def create_fuel_alert(
    db: Session,
    vessel_id: int,
    fuel_level: float,
    threshold: float,
    factory: Optional[AlertFactory] = None,
) -> VesselAlert:
    """Low fuel: CRITICAL below half the threshold, WARNING otherwise."""
    message = f"Low fuel alert: Current level {fuel_level:.1f}% is below threshold {threshold:.1f}%"
    return _raise(
        db, factory, vessel_id, KIND_FUEL_LOW, message,
        context={"fuel_level": fuel_level, "threshold": threshold},
    )


def create_geofence_alert(
    db: Session,
    vessel_id: int,
    latitude: float,
    longitude: float,
    geofence_type: str,
    factory: Optional[AlertFactory] = None,
) -> VesselAlert:
    """Geofence crossing: ENTER is WARNING, every other event INFO."""
    event = (geofence_type or "").upper()
    template = _GEOFENCE_MESSAGES.get(event, _GEOFENCE_FALLBACK)
    message = template.format(lat=latitude, lon=longitude)
    return _raise(
        db, factory, vessel_id, KIND_GEOFENCE, message,
        context={"latitude": latitude, "longitude": longitude, "geofence_type": event},
    )


def _maintenance_message(equipment_type: str, due_date: datetime, days: int) -> str:
    due = due_date.strftime("%Y-%m-%d")
    if days <= 0:
        return f"OVERDUE: {equipment_type} maintenance was due on {due}"
    if days <= 7:
        return f"URGENT: {equipment_type} maintenance due in {days} days ({due})"
    if days <= 30:
        return f"UPCOMING: {equipment_type} maintenance due in {days} days ({due})"
    return f"SCHEDULED: {equipment_type} maintenance due on {due}"


def create_maintenance_alert(
    db: Session,
    vessel_id: int,
    equipment_type: str,
    due_date: datetime,
    factory: Optional[AlertFactory] = None,
    now: Optional[datetime] = None,
) -> VesselAlert:
    """Maintenance due: overdue CRITICAL, ≤7 d WARNING, ≤30 d INFO, later LOW."""
    now = now or utcnow()
    due_date = as_naive_utc(due_date)
    days = whole_days(due_date - now)
    return _raise(
        db, factory, vessel_id, KIND_MAINTENANCE_DUE,
        _maintenance_message(equipment_type, due_date, days),
        context={
            "equipment_type": equipment_type,
            "due_date": due_date,
            "days_until_due": days,
        },
        now=now,
    )


def create_engine_overtemp_alert(
    db: Session,
    vessel_id: int,
    temperature: float,
    factory: Optional[AlertFactory] = None,
) -> VesselAlert:
    """Engine over-temperature: above 95 °C CRITICAL, otherwise WARNING."""
    return _raise(
        db, factory, vessel_id, KIND_ENGINE_OVERTEMP,
        f"Engine temperature high: {temperature:g}°C",
        context={"temperature": temperature},
    )


def create_custom_alert(
    db: Session,
    vessel_id: int,
    kind: str,
    message: str,
    severity: Optional[SeverityEnum] = None,
    context: Optional[dict] = None,
    factory: Optional[AlertFactory] = None,
) -> Optional[VesselAlert]:
    """Free-form alert from an operator or another subsystem.

    Unregistered kinds take ``severity`` as given (INFO when omitted).  A
    registered kind is classified and deduplicated by its own rule, so the
    result can be ``None`` when that rule suppresses it.
    """
    return (factory or AlertFactory(db)).raise_alert(
        vessel_id, kind, message, context=context, severity=severity,
    )
