"""Alert factory — the single choke point every alert passes through.

Detectors and manual triggers call ``AlertFactory.raise_alert``; it
  1. classifies severity from the kind's rule (caller severity only for
     kinds with no registered rule, defaulting to INFO),
  2. consults the dedup gate with the rule's window and secondary key,
  3. writes exactly one ``VesselAlert`` through the store.

A suppressed call returns ``None`` and writes nothing.  Store failures
propagate to the caller.
"""
from __future__ import annotations

import enum
import logging
from datetime import date, datetime
from typing import Any, Callable, Optional, Union

from sqlalchemy.orm import Session

from app.models.base import SeverityEnum
from app.models.vessel_alert import VesselAlert, new_alert_id
from app.modules.alert_rules import get_rule
from app.modules.alert_store import AlertStore
from app.modules.dedup_gate import should_suppress
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

MessageBuilder = Union[str, Callable[[dict, SeverityEnum], str]]


def _jsonable(value: Any) -> Any:
    """Make a context payload safe for the JSON column."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    return value


class AlertFactory:
    def __init__(self, db: Session):
        self.db = db
        self.store = AlertStore(db)

    def raise_alert(
        self,
        target_id: int,
        kind: str,
        message: MessageBuilder,
        context: Optional[dict] = None,
        severity: Optional[SeverityEnum] = None,
        now: Optional[datetime] = None,
    ) -> Optional[VesselAlert]:
        """Create an alert unless an equivalent one is inside its dedup window.

        Args:
            target_id: Vessel the alert concerns.
            kind: Open tag; kinds registered in ``alert_rules`` get their own
                severity and dedup policy.
            message: Final text, or ``(context, severity) -> str``.
            context: Kind-specific payload stored with the alert.
            severity: Used only for kinds without a registered rule.
            now: Creation time and dedup anchor (defaults to current UTC).

        Returns:
            The persisted alert, or ``None`` if suppressed.

        Raises:
            ValueError: the context lacks a field the kind's rule needs.
        """
        context = dict(context or {})
        now = now or utcnow()

        rule = get_rule(kind)
        if rule is not None:
            level = rule.severity(context)
            dedup_key = rule.dedup_key(context)
            window = rule.dedup_window
        else:
            level = severity or SeverityEnum.INFO
            dedup_key = None
            window = None

        if should_suppress(self.db, target_id, kind, window, dedup_key=dedup_key, now=now):
            return None

        text = message(context, level) if callable(message) else message
        alert = VesselAlert(
            alert_id=new_alert_id(),
            vessel_id=target_id,
            kind=kind,
            message=text,
            severity=level,
            created_utc=now,
            dedup_key=dedup_key,
            acknowledged=False,
            context_json=_jsonable(context),
        )
        self.store.create(alert)
        logger.info(
            "Created %s alert %s for vessel %s [%s]: %s",
            kind, alert.alert_id, target_id, level.value, text,
        )
        return alert
