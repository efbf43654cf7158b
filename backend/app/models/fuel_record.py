"""FuelRecord entity — periodic fuel consumption reports."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, Float, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import Base


class FuelRecord(Base):
    __tablename__ = "fuel_records"
    __table_args__ = (
        Index("ix_fuel_vessel_report_date", "vessel_id", "report_date"),
    )

    fuel_record_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_id: Mapped[int] = mapped_column(Integer, ForeignKey("vessels.vessel_id"), nullable=False, index=True)
    report_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    fuel_consumed: Mapped[float] = mapped_column(Float, nullable=False)  # metric tons
    fuel_type: Mapped[str] = mapped_column(String(10), default="MGO")
    distance_traveled: Mapped[float] = mapped_column(Float, nullable=False)  # nautical miles
    average_speed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # knots
    # MT per nautical mile; higher is worse
    fuel_efficiency: Mapped[float] = mapped_column(Float, nullable=False)

    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="fuel_records")

    @staticmethod
    def compute_efficiency(fuel_consumed: float, distance_traveled: float) -> float:
        """Fuel consumed per nautical mile; 0.0 when no distance was covered."""
        if distance_traveled <= 0:
            return 0.0
        return fuel_consumed / distance_traveled
