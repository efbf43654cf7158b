"""Certificate expiry detection — valid certificates expiring within 30 days.

Dedup is scoped per certificate number: two certificates on the same
vessel expiring in the same week each get their own alert.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from app.models.certificate import Certificate
from app.modules.alert_factory import AlertFactory
from app.modules.alert_rules import KIND_CERTIFICATE_EXPIRY
from app.modules.severity import whole_days
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

EXPIRY_LOOKAHEAD_DAYS = 30


def _message(context: dict, severity) -> str:
    label = f"{context['certificate_name']} ({context['certificate_number']})"
    days = context["days_until_expiry"]
    if days <= 0:
        return f"Certificate EXPIRED: {label}"
    return f"Certificate expiring in {days} days: {label}"


def detect_certificate_expiry(
    db: Session,
    factory: Optional[AlertFactory] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Raise ``certificate-expiry`` alerts for certificates near or past expiry.

    Returns:
        ``{"checked": N, "alerts_raised": M, "suppressed": K}``
    """
    now = now or utcnow()
    factory = factory or AlertFactory(db)
    horizon = now + timedelta(days=EXPIRY_LOOKAHEAD_DAYS)

    expiring = (
        db.query(Certificate)
        .filter(
            Certificate.is_valid.is_(True),
            Certificate.expiry_date <= horizon,
        )
        .order_by(Certificate.expiry_date)
        .all()
    )

    raised = 0
    suppressed = 0
    for cert in expiring:
        days = whole_days(cert.expiry_date - now)
        alert = factory.raise_alert(
            cert.vessel_id,
            KIND_CERTIFICATE_EXPIRY,
            _message,
            context={
                "certificate_id": cert.certificate_id,
                "certificate_number": cert.certificate_number,
                "certificate_name": cert.certificate_name,
                "expiry_date": cert.expiry_date,
                "days_until_expiry": days,
            },
            now=now,
        )
        if alert is None:
            suppressed += 1
        else:
            raised += 1

    logger.info(
        "Certificate expiry detection: %d expiring certificates, %d alerts raised, %d suppressed.",
        len(expiring), raised, suppressed,
    )
    return {"checked": len(expiring), "alerts_raised": raised, "suppressed": suppressed}
