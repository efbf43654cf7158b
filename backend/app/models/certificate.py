"""Certificate entity — statutory vessel certificates (safety, security, pollution)."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import Base


class Certificate(Base):
    __tablename__ = "certificates"

    certificate_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    vessel_id: Mapped[int] = mapped_column(Integer, ForeignKey("vessels.vessel_id"), nullable=False, index=True)
    certificate_type: Mapped[str] = mapped_column(String(50), nullable=False)
    certificate_name: Mapped[str] = mapped_column(String(255), nullable=False)
    certificate_number: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    issuing_authority: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    issue_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    expiry_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    is_valid: Mapped[bool] = mapped_column(Boolean, default=True)
    document_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    vessel: Mapped["Vessel"] = relationship("Vessel", back_populates="certificates")
