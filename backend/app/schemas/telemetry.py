"""Pydantic schemas for sensor telemetry readings."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class SensorReading(BaseModel):
    vessel_id: int
    sensor_type: str = Field(..., description="ENGINE, FUEL or NAVIGATION")
    parameter: str = Field(..., description="e.g. TEMPERATURE, LEVEL, POSITION")
    value: float
    unit: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_validator("sensor_type", "parameter")
    @classmethod
    def upper(cls, v: str) -> str:
        return v.strip().upper()
