"""Detection cycle orchestrator — one pass over the scheduled detectors.

Steps (fixed order, all SOFT fail):
  1. Position timeouts
  2. Certificate expiry
  3. Fuel efficiency anomalies

A failing detector is logged, its session work rolled back and recorded as
failed; the remaining detectors still run and the cycle ends ``partial``.
Failed detectors are not retried within the cycle.

Opening the ``DetectionCycleRun`` record happens outside the per-step
isolation.  If the store itself is unreachable the exception escapes and
the scheduler applies its backoff.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from app.models.base import CycleRunStatusEnum
from app.models.detection_cycle_run import DetectionCycleRun
from app.modules.alert_factory import AlertFactory
from app.modules.certificate_expiry_detector import detect_certificate_expiry
from app.modules.fuel_efficiency_detector import detect_fuel_efficiency_anomalies
from app.modules.position_timeout_detector import detect_position_timeouts
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

DetectorFn = Callable[..., dict]

SCHEDULED_DETECTORS: list[tuple[str, DetectorFn]] = [
    ("position_timeout", detect_position_timeouts),
    ("certificate_expiry", detect_certificate_expiry),
    ("fuel_efficiency", detect_fuel_efficiency_anomalies),
]


def run_detection_cycle(
    db: Session,
    now: Optional[datetime] = None,
    detectors: Optional[list[tuple[str, DetectorFn]]] = None,
) -> dict:
    """Run every scheduled detector once with per-detector fault isolation.

    Args:
        db: SQLAlchemy session, owned by the caller.
        now: Reference time for every detector in this cycle.
        detectors: Override of ``SCHEDULED_DETECTORS`` (name, fn) pairs.

    Returns:
        ``{"run_id": id, "run_status": "complete"|"partial",
           "alerts_raised": N, "steps": {name: {...}}}``
    """
    now = now or utcnow()
    steps = SCHEDULED_DETECTORS if detectors is None else detectors

    logger.info("Detection cycle starting (%d detectors).", len(steps))

    cycle_run = DetectionCycleRun(started_at=now, status=CycleRunStatusEnum.RUNNING.value)
    db.add(cycle_run)
    db.commit()

    result: dict[str, Any] = {
        "run_id": cycle_run.run_id,
        "run_status": CycleRunStatusEnum.COMPLETE.value,
        "alerts_raised": 0,
        "steps": {},
    }
    factory = AlertFactory(db)

    def _run_step(name: str, fn: DetectorFn) -> Optional[dict]:
        """Execute one detector; a failure never stops the cycle."""
        try:
            step_result = fn(db, factory=factory, now=now)
        except Exception as exc:
            db.rollback()
            logger.exception("Detector '%s' failed: %s", name, exc)
            result["run_status"] = CycleRunStatusEnum.PARTIAL.value
            result["steps"][name] = {"status": "failed", "detail": str(exc)}
            return None
        raised = int(step_result.get("alerts_raised", 0))
        result["alerts_raised"] += raised
        result["steps"][name] = {"status": "ok", **step_result}
        return step_result

    for name, fn in steps:
        _run_step(name, fn)

    cycle_run.completed_at = utcnow()
    cycle_run.status = result["run_status"]
    cycle_run.alerts_raised = result["alerts_raised"]
    cycle_run.detector_results_json = result["steps"]
    db.commit()

    failed = [n for n, s in result["steps"].items() if s["status"] == "failed"]
    if failed:
        logger.warning(
            "Detection cycle %s finished partial: %d alerts raised, failed detectors: %s",
            cycle_run.run_id, result["alerts_raised"], ", ".join(failed),
        )
    else:
        logger.info(
            "Detection cycle %s complete: %d alerts raised.",
            cycle_run.run_id, result["alerts_raised"],
        )
    return result


def recent_cycle_runs(db: Session, limit: int = 20) -> list[DetectionCycleRun]:
    return (
        db.query(DetectionCycleRun)
        .order_by(DetectionCycleRun.run_id.desc())
        .limit(limit)
        .all()
    )
