"""Alert persistence — create, query and acknowledge ``VesselAlert`` rows."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.config import settings
from app.models.base import SeverityEnum
from app.models.vessel_alert import VesselAlert
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class AlertStore:
    """Thin repository over one SQLAlchemy session.

    ``create`` and ``acknowledge`` commit immediately so that a detector's
    per-vessel decision is either fully written or not at all; on failure the
    session is rolled back and the error re-raised to the caller.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, alert: VesselAlert) -> VesselAlert:
        self.db.add(alert)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return alert

    def get(self, alert_id: str) -> Optional[VesselAlert]:
        return self.db.query(VesselAlert).filter(VesselAlert.alert_id == alert_id).first()

    def exists_since(
        self,
        vessel_id: int,
        kind: str,
        since: datetime,
        until: datetime,
        dedup_key: Optional[str] = None,
    ) -> bool:
        q = self.db.query(VesselAlert.alert_id).filter(
            VesselAlert.vessel_id == vessel_id,
            VesselAlert.kind == kind,
            VesselAlert.created_utc >= since,
            VesselAlert.created_utc <= until,
        )
        if dedup_key is not None:
            q = q.filter(VesselAlert.dedup_key == dedup_key)
        return q.first() is not None

    def list_alerts(
        self,
        vessel_id: Optional[int] = None,
        severity: Optional[SeverityEnum] = None,
        min_severity: Optional[SeverityEnum] = None,
        acknowledged: Optional[bool] = None,
        kind: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[VesselAlert]:
        """Newest first, capped at ``MAX_QUERY_LIMIT``."""
        q = self.db.query(VesselAlert)
        if vessel_id is not None:
            q = q.filter(VesselAlert.vessel_id == vessel_id)
        if severity is not None:
            q = q.filter(VesselAlert.severity == severity)
        if min_severity is not None:
            q = q.filter(VesselAlert.severity.in_(SeverityEnum.at_or_above(min_severity)))
        if acknowledged is not None:
            q = q.filter(VesselAlert.acknowledged == acknowledged)
        if kind:
            q = q.filter(VesselAlert.kind == kind)
        cap = settings.MAX_QUERY_LIMIT
        limit = cap if limit is None else min(limit, cap)
        return q.order_by(VesselAlert.created_utc.desc()).limit(limit).all()

    def acknowledge(self, alert_id: str, acknowledged_by: str, now: Optional[datetime] = None) -> bool:
        """Acknowledge once. Returns False if the alert is missing or already acknowledged."""
        alert = self.get(alert_id)
        if alert is None or alert.acknowledged:
            return False
        alert.acknowledged = True
        alert.acknowledged_at = now or utcnow()
        alert.acknowledged_by = acknowledged_by
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info("Alert %s acknowledged by %s", alert_id, acknowledged_by)
        return True
