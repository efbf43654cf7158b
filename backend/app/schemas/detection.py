"""Pydantic schemas for detection cycle runs."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DetectionCycleRunRead(BaseModel):
    run_id: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: str
    alerts_raised: int = 0
    detector_results_json: Optional[dict] = None

    model_config = {"from_attributes": True}
