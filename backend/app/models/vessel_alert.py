"""VesselAlert entity — operational alerts raised by detectors and manual triggers.

Append-only after creation except for the three acknowledgement fields,
which are set exactly once.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, JSON, ForeignKey, Enum as SAEnum, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from app.models.base import Base, SeverityEnum


def new_alert_id() -> str:
    return str(uuid.uuid4())


class VesselAlert(Base):
    __tablename__ = "vessel_alerts"
    __table_args__ = (
        # Dedup gate lookup: (vessel, kind[, dedup_key]) within a time window
        Index("ix_vessel_alert_dedup", "vessel_id", "kind", "dedup_key", "created_utc"),
    )

    alert_id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_alert_id)
    vessel_id: Mapped[int] = mapped_column(
        ForeignKey("vessels.vessel_id"), nullable=False, index=True
    )
    # Open tag, not an enum: new kinds need no schema change
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[SeverityEnum] = mapped_column(
        SAEnum(SeverityEnum), nullable=False, default=SeverityEnum.INFO, index=True
    )
    created_utc: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    # Secondary dedup scope (certificate number for certificate-expiry)
    dedup_key: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    context_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="alerts")

    @validates("acknowledged")
    def _validate_acknowledged(self, key, value):
        if self.acknowledged and not value:
            raise ValueError(f"Alert {self.alert_id} is already acknowledged and cannot be reverted")
        return value
