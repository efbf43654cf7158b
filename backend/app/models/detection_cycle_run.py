"""DetectionCycleRun entity — one row per scheduled detection cycle.

Records per-detector outcome so operators can see which rule failed in a
given cycle without reading logs.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import Base


class DetectionCycleRun(Base):
    __tablename__ = "detection_cycle_runs"

    run_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    # {"position_timeout": {"status": "ok", "alerts_raised": 2}, "fuel_efficiency": {"status": "failed", ...}}
    detector_results_json: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    # "running", "complete", "partial"
    status: Mapped[str] = mapped_column(String(20), default="running")
    alerts_raised: Mapped[int] = mapped_column(Integer, default=0)
