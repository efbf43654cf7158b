from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.models.base import SeverityEnum
from app.models.vessel import Vessel
from app.modules.alert_store import AlertStore
from app.schemas.alerts import (
    AcknowledgeRequest,
    AlertRead,
    CustomAlertRequest,
    FuelAlertRequest,
    GeofenceAlertRequest,
    MaintenanceAlertRequest,
)
from app.schemas.detection import DetectionCycleRunRead
from app.schemas.telemetry import SensorReading

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_vessel(db: Session, vessel_id: int) -> Vessel:
    vessel = db.query(Vessel).filter(Vessel.vessel_id == vessel_id).first()
    if not vessel:
        raise HTTPException(status_code=404, detail="Vessel not found")
    return vessel


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

@router.get("/alerts", tags=["alerts"], response_model=list[AlertRead])
def list_alerts(
    vessel_id: Optional[int] = None,
    severity: Optional[SeverityEnum] = None,
    min_severity: Optional[SeverityEnum] = None,
    acknowledged: Optional[bool] = None,
    kind: Optional[str] = None,
    limit: int = Query(100, ge=1),
    db: Session = Depends(get_db),
):
    """List alerts newest first, filtered by vessel/severity/acknowledged state."""
    return AlertStore(db).list_alerts(
        vessel_id=vessel_id,
        severity=severity,
        min_severity=min_severity,
        acknowledged=acknowledged,
        kind=kind,
        limit=min(limit, settings.MAX_QUERY_LIMIT),
    )


@router.get("/alerts/{alert_id}", tags=["alerts"], response_model=AlertRead)
def get_alert(alert_id: str, db: Session = Depends(get_db)):
    alert = AlertStore(db).get(alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return alert


@router.post("/alerts/{alert_id}/acknowledge", tags=["alerts"], response_model=AlertRead)
def acknowledge_alert(alert_id: str, body: AcknowledgeRequest, db: Session = Depends(get_db)):
    """Acknowledge once; a second acknowledgement is rejected with 409."""
    store = AlertStore(db)
    alert = store.get(alert_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    if not store.acknowledge(alert_id, body.acknowledged_by):
        raise HTTPException(
            status_code=409,
            detail=f"Alert already acknowledged by {alert.acknowledged_by}",
        )
    return store.get(alert_id)


@router.get("/vessels/{vessel_id}/alerts", tags=["alerts"], response_model=list[AlertRead])
def list_vessel_alerts(
    vessel_id: int,
    acknowledged: Optional[bool] = None,
    db: Session = Depends(get_db),
):
    _require_vessel(db, vessel_id)
    return AlertStore(db).list_alerts(vessel_id=vessel_id, acknowledged=acknowledged)


@router.post("/vessels/{vessel_id}/alerts", tags=["alerts"], response_model=AlertRead, status_code=201)
def create_vessel_alert(vessel_id: int, body: CustomAlertRequest, db: Session = Depends(get_db)):
    from app.modules.manual_alerts import create_custom_alert

    _require_vessel(db, vessel_id)
    alert = create_custom_alert(
        db, vessel_id, body.kind, body.message, severity=body.severity, context=body.context,
    )
    if alert is None:
        raise HTTPException(status_code=409, detail=f"Duplicate {body.kind} alert suppressed")
    return alert


@router.post("/vessels/{vessel_id}/alerts/fuel", tags=["triggers"], response_model=AlertRead, status_code=201)
def trigger_fuel_alert(vessel_id: int, body: FuelAlertRequest, db: Session = Depends(get_db)):
    from app.modules.manual_alerts import create_fuel_alert

    _require_vessel(db, vessel_id)
    return create_fuel_alert(db, vessel_id, body.fuel_level, body.threshold)


@router.post("/vessels/{vessel_id}/alerts/geofence", tags=["triggers"], response_model=AlertRead, status_code=201)
def trigger_geofence_alert(vessel_id: int, body: GeofenceAlertRequest, db: Session = Depends(get_db)):
    from app.modules.manual_alerts import create_geofence_alert

    _require_vessel(db, vessel_id)
    return create_geofence_alert(db, vessel_id, body.latitude, body.longitude, body.geofence_type)


@router.post("/vessels/{vessel_id}/alerts/maintenance", tags=["triggers"], response_model=AlertRead, status_code=201)
def trigger_maintenance_alert(vessel_id: int, body: MaintenanceAlertRequest, db: Session = Depends(get_db)):
    from app.modules.manual_alerts import create_maintenance_alert

    _require_vessel(db, vessel_id)
    return create_maintenance_alert(db, vessel_id, body.equipment_type, body.due_date)


# ---------------------------------------------------------------------------
# Telemetry
# ---------------------------------------------------------------------------

@router.post("/telemetry/sensor", tags=["telemetry"])
def ingest_sensor_reading(reading: SensorReading, db: Session = Depends(get_db)):
    """Process one sensor reading; returns the alert it raised, if any."""
    from app.modules.sensor_ingest import process_sensor_reading

    _require_vessel(db, reading.vessel_id)
    alert = process_sensor_reading(db, reading)
    return {
        "alert": AlertRead.model_validate(alert).model_dump(mode="json") if alert else None,
    }


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

@router.post("/detection/run", tags=["detection"])
def run_detection(db: Session = Depends(get_db)):
    """Run one detection cycle now, outside the scheduler cadence."""
    from app.modules.detection_cycle import run_detection_cycle

    return run_detection_cycle(db)


@router.get("/detection/runs", tags=["detection"], response_model=list[DetectionCycleRunRead])
def list_detection_runs(limit: int = Query(20, ge=1, le=200), db: Session = Depends(get_db)):
    from app.modules.detection_cycle import recent_cycle_runs

    return recent_cycle_runs(db, limit=limit)
