"""Severity classification — per-kind business thresholds.

These boundaries are an operator-facing contract: response procedures are
tuned around them, so each comparison (strict vs. inclusive) matters.

  position-timeout   hours > 12 → CRITICAL, else WARNING
  certificate-expiry days ≤ 0 → CRITICAL, ≤ 7 → WARNING, else INFO
  fuel-efficiency    always WARNING
  fuel-low           level < threshold × 0.5 → CRITICAL, else WARNING
  geofence           ENTER → WARNING, anything else INFO
  maintenance-due    days ≤ 0 → CRITICAL, ≤ 7 → WARNING, ≤ 30 → INFO, else LOW
  engine-overtemp    value > 95 → CRITICAL, else WARNING (raised only above 85)
"""
from __future__ import annotations

from datetime import timedelta

from app.models.base import SeverityEnum

POSITION_TIMEOUT_CRITICAL_HOURS = 12.0
EXPIRY_WARNING_DAYS = 7
MAINTENANCE_INFO_DAYS = 30
FUEL_LOW_CRITICAL_RATIO = 0.5
ENGINE_TEMP_TRIGGER_C = 85.0
ENGINE_TEMP_CRITICAL_C = 95.0


def whole_days(delta: timedelta) -> int:
    """Whole days in ``delta``, truncated toward zero (−0.5 d → 0, 6.9 d → 6)."""
    return int(delta.total_seconds() / 86400)


def classify_position_timeout(hours_without_update: float) -> SeverityEnum:
    if hours_without_update > POSITION_TIMEOUT_CRITICAL_HOURS:
        return SeverityEnum.CRITICAL
    return SeverityEnum.WARNING


def classify_certificate_expiry(days_until_expiry: int) -> SeverityEnum:
    if days_until_expiry <= 0:
        return SeverityEnum.CRITICAL
    if days_until_expiry <= EXPIRY_WARNING_DAYS:
        return SeverityEnum.WARNING
    return SeverityEnum.INFO


def classify_fuel_efficiency() -> SeverityEnum:
    # Only degradation raises this kind; no CRITICAL tier is defined.
    return SeverityEnum.WARNING


def classify_fuel_low(fuel_level: float, threshold: float) -> SeverityEnum:
    if fuel_level < threshold * FUEL_LOW_CRITICAL_RATIO:
        return SeverityEnum.CRITICAL
    return SeverityEnum.WARNING


def classify_geofence(geofence_type: str) -> SeverityEnum:
    if (geofence_type or "").upper() == "ENTER":
        return SeverityEnum.WARNING
    return SeverityEnum.INFO


def classify_maintenance_due(days_until_due: int) -> SeverityEnum:
    if days_until_due <= 0:
        return SeverityEnum.CRITICAL
    if days_until_due <= EXPIRY_WARNING_DAYS:
        return SeverityEnum.WARNING
    if days_until_due <= MAINTENANCE_INFO_DAYS:
        return SeverityEnum.INFO
    return SeverityEnum.LOW


def engine_temperature_exceeds_trigger(value: float) -> bool:
    return value > ENGINE_TEMP_TRIGGER_C


def classify_engine_temperature(value: float) -> SeverityEnum:
    if value > ENGINE_TEMP_CRITICAL_C:
        return SeverityEnum.CRITICAL
    return SeverityEnum.WARNING
