"""Pydantic schemas for alert read, acknowledgement and manual triggers."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.models.base import GeofenceEventEnum, SeverityEnum


class AlertRead(BaseModel):
    alert_id: str
    vessel_id: int
    kind: str
    message: str
    severity: SeverityEnum
    created_utc: datetime
    acknowledged: bool
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    context_json: Optional[dict] = None

    model_config = {"from_attributes": True}


class AcknowledgeRequest(BaseModel):
    acknowledged_by: str = Field(..., min_length=1, max_length=100)


class CustomAlertRequest(BaseModel):
    kind: str = Field(..., min_length=1, max_length=50)
    message: str = Field(..., min_length=1)
    severity: Optional[SeverityEnum] = None
    context: Optional[dict] = None


class FuelAlertRequest(BaseModel):
    fuel_level: float = Field(..., ge=0)
    threshold: float = Field(..., gt=0)


class GeofenceAlertRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    # Free text: unknown events still produce an INFO alert
    geofence_type: str = Field(default=GeofenceEventEnum.ENTER.value)

    @field_validator("geofence_type")
    @classmethod
    def upper_geofence_type(cls, v: str) -> str:
        return v.strip().upper()


class MaintenanceAlertRequest(BaseModel):
    equipment_type: str = Field(..., min_length=1, max_length=100)
    due_date: datetime
