"""Vessel entity — fleet vessel identity and registration data."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import Base


class Vessel(Base):
    __tablename__ = "vessels"

    vessel_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    imo: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    callsign: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    vessel_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    flag: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    gross_tonnage: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    deadweight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Registration/build date — last-known-time anchor when no position exists
    build_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    positions: Mapped[list] = relationship("VesselPosition", back_populates="vessel", cascade="all, delete-orphan")
    fuel_records: Mapped[list] = relationship("FuelRecord", back_populates="vessel", cascade="all, delete-orphan")
    certificates: Mapped[list] = relationship("Certificate", back_populates="vessel", cascade="all, delete-orphan")
    alerts: Mapped[list] = relationship("VesselAlert", back_populates="vessel", cascade="all, delete-orphan")
