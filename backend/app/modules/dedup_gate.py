"""Deduplication gate — suppress repeat alerts inside a lookback window.

An alert is suppressed when one of the same kind for the same vessel (and,
for scoped kinds, the same ``dedup_key``) already exists with a creation
time in ``[now - window, now]``.

The check and the subsequent write are not one transaction: two
near-simultaneous raises can both pass.  That imprecision is accepted.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.modules.alert_store import AlertStore
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


def should_suppress(
    db: Session,
    target_id: int,
    kind: str,
    window: Optional[timedelta],
    dedup_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Return True if an equivalent alert was raised within ``window``.

    A ``None`` window means the kind is never deduplicated.
    """
    if window is None:
        return False
    now = now or utcnow()
    exists = AlertStore(db).exists_since(
        vessel_id=target_id,
        kind=kind,
        since=now - window,
        until=now,
        dedup_key=dedup_key,
    )
    if exists:
        logger.debug(
            "Suppressing %s alert for vessel %s (key=%s): raised within last %s",
            kind, target_id, dedup_key, window,
        )
    return exists
