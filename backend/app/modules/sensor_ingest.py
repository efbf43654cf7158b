"""Sensor telemetry dispatch — turns raw readings into manual alert triggers.

  ENGINE / TEMPERATURE  > 85 °C  → engine-overtemp
  FUEL   / LEVEL        < 20 %   → fuel-low (threshold 20)
  NAVIGATION                      → no alert (position handling lives upstream)

Unknown sensor types are logged and ignored.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.vessel_alert import VesselAlert
from app.modules.manual_alerts import create_engine_overtemp_alert, create_fuel_alert
from app.modules.severity import engine_temperature_exceeds_trigger
from app.schemas.telemetry import SensorReading

logger = logging.getLogger(__name__)

FUEL_LEVEL_THRESHOLD = 20.0


def _process_engine(db: Session, reading: SensorReading) -> Optional[VesselAlert]:
    if reading.parameter == "TEMPERATURE" and engine_temperature_exceeds_trigger(reading.value):
        return create_engine_overtemp_alert(db, reading.vessel_id, reading.value)
    return None


def _process_fuel(db: Session, reading: SensorReading) -> Optional[VesselAlert]:
    if reading.parameter == "LEVEL" and reading.value < FUEL_LEVEL_THRESHOLD:
        return create_fuel_alert(db, reading.vessel_id, reading.value, FUEL_LEVEL_THRESHOLD)
    return None


def _process_navigation(db: Session, reading: SensorReading) -> Optional[VesselAlert]:
    logger.debug("Navigation reading for vessel %s: %s=%s", reading.vessel_id, reading.parameter, reading.value)
    return None


_HANDLERS = {
    "ENGINE": _process_engine,
    "FUEL": _process_fuel,
    "NAVIGATION": _process_navigation,
}


def process_sensor_reading(db: Session, reading: SensorReading) -> Optional[VesselAlert]:
    """Dispatch one reading; returns the alert it raised, if any."""
    handler = _HANDLERS.get(reading.sensor_type)
    if handler is None:
        logger.warning("Unknown sensor type: %s", reading.sensor_type)
        return None
    return handler(db, reading)
