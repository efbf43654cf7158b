"""Tests for the detection cycle orchestrator and the alert scheduler."""
import threading
import time
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from app.models.detection_cycle_run import DetectionCycleRun
from app.models.vessel_alert import VesselAlert
from app.modules.alert_scheduler import AlertScheduler, SchedulerState
from app.modules.detection_cycle import (
    SCHEDULED_DETECTORS,
    recent_cycle_runs,
    run_detection_cycle,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _ok(alerts=0):
    def detector(db, factory=None, now=None):
        return {"checked": 1, "alerts_raised": alerts}
    return detector


def _boom(db, factory=None, now=None):
    raise RuntimeError("detector exploded")


class TestDetectionCycle:
    def test_scheduled_order(self):
        assert [name for name, _ in SCHEDULED_DETECTORS] == [
            "position_timeout", "certificate_expiry", "fuel_efficiency",
        ]

    def test_complete_run_recorded(self, db):
        result = run_detection_cycle(
            db, now=NOW, detectors=[("a", _ok(2)), ("b", _ok(1))],
        )
        assert result["run_status"] == "complete"
        assert result["alerts_raised"] == 3
        run = db.get(DetectionCycleRun, result["run_id"])
        assert run.status == "complete"
        assert run.alerts_raised == 3
        assert run.started_at == NOW
        assert run.completed_at is not None
        assert run.detector_results_json["a"]["status"] == "ok"

    def test_failing_detector_isolated(self, db):
        calls = []

        def tracking(db, factory=None, now=None):
            calls.append("c")
            return {"alerts_raised": 1}

        result = run_detection_cycle(
            db, now=NOW, detectors=[("a", _ok(1)), ("b", _boom), ("c", tracking)],
        )
        assert calls == ["c"]
        assert result["run_status"] == "partial"
        assert result["alerts_raised"] == 2
        assert result["steps"]["b"] == {"status": "failed", "detail": "detector exploded"}
        assert db.get(DetectionCycleRun, result["run_id"]).status == "partial"

    def test_full_cycle_on_real_data(self, db, make_vessel):
        make_vessel(build_date=NOW - timedelta(days=1))
        result = run_detection_cycle(db, now=NOW)
        assert result["run_status"] == "complete"
        assert result["steps"]["position_timeout"]["alerts_raised"] == 1
        assert db.query(VesselAlert).count() == 1

        # Next cycle 15 minutes later raises nothing new
        again = run_detection_cycle(db, now=NOW + timedelta(minutes=15))
        assert again["alerts_raised"] == 0
        assert db.query(VesselAlert).count() == 1

    def test_run_record_failure_escapes(self):
        session = MagicMock()
        session.commit.side_effect = RuntimeError("database unavailable")
        with pytest.raises(RuntimeError, match="database unavailable"):
            run_detection_cycle(session, now=NOW, detectors=[("a", _ok())])

    def test_recent_runs_newest_first(self, db):
        first = run_detection_cycle(db, now=NOW, detectors=[])
        second = run_detection_cycle(db, now=NOW + timedelta(minutes=15), detectors=[])
        runs = recent_cycle_runs(db, limit=5)
        assert [r.run_id for r in runs] == [second["run_id"], first["run_id"]]


class TestAlertScheduler:
    def _scheduler(self, cycle, interval=0.01, backoff=0.01):
        return AlertScheduler(
            session_factory=MagicMock,
            cycle=cycle,
            interval=timedelta(seconds=interval),
            backoff=timedelta(seconds=backoff),
        )

    def test_run_once_closes_session(self):
        session = MagicMock()
        sched = AlertScheduler(
            session_factory=lambda: session, cycle=lambda db: {"run_status": "complete"},
        )
        assert sched.run_once() == {"run_status": "complete"}
        session.close.assert_called_once()

    def test_runs_until_stopped(self):
        sched = None
        calls = []

        def cycle(db):
            calls.append(1)
            if len(calls) == 3:
                sched.stop(timeout=0)
            return {"run_status": "complete"}

        sched = self._scheduler(cycle)
        sched.run_forever()
        assert len(calls) == 3
        assert sched.cycles_completed == 3
        assert sched.state == SchedulerState.STOPPED

    def test_failure_uses_backoff_and_continues(self):
        sched = None
        attempts = []
        delays = []

        def cycle(db):
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("store down")
            sched.stop(timeout=0)
            return {"run_status": "complete"}

        sched = self._scheduler(cycle, interval=60, backoff=0.01)
        original_wait = sched._stop_event.wait

        def recording_wait(delay):
            delays.append(delay)
            return original_wait(0)

        sched._stop_event.wait = recording_wait
        sched.run_forever()
        assert len(attempts) == 2
        assert delays == [pytest.approx(0.01)]
        assert sched.cycles_completed == 1
        assert sched.consecutive_failures == 0

    def test_stop_interrupts_sleep(self):
        sched = self._scheduler(lambda db: {"run_status": "complete"}, interval=3600)
        sched.start()
        deadline = time.monotonic() + 5
        while sched.state != SchedulerState.SLEEPING and time.monotonic() < deadline:
            time.sleep(0.01)
        assert sched.state == SchedulerState.SLEEPING

        started = time.monotonic()
        sched.stop(timeout=5)
        assert time.monotonic() - started < 5
        assert sched.state == SchedulerState.STOPPED
        assert sched.cycles_completed == 1

    def test_in_flight_cycle_finishes(self):
        entered = threading.Event()
        release = threading.Event()
        finished = []

        def slow_cycle(db):
            entered.set()
            release.wait(5)
            finished.append(1)
            return {"run_status": "complete"}

        sched = self._scheduler(slow_cycle, interval=3600)
        sched.start()
        assert entered.wait(5)
        stopper = threading.Thread(target=sched.stop, kwargs={"timeout": 5})
        stopper.start()
        release.set()
        stopper.join(5)
        assert finished == [1]
        assert sched.state == SchedulerState.STOPPED

    def test_stopping_not_overwritten_by_loop(self):
        sched = self._scheduler(lambda db: {})
        sched._set_state(SchedulerState.RUNNING)
        sched._set_state(SchedulerState.STOPPING)
        sched._set_state(SchedulerState.SLEEPING)
        assert sched.state == SchedulerState.STOPPING
        sched._set_state(SchedulerState.STOPPED)
        assert sched.state == SchedulerState.STOPPED

    def test_no_sleeping_state_after_stop_requested(self):
        entered = threading.Event()
        release = threading.Event()
        seen = []

        def slow_cycle(db):
            entered.set()
            release.wait(5)
            return {"run_status": "complete"}

        sched = self._scheduler(slow_cycle, interval=3600)
        original_set_state = sched._set_state

        def recording_set_state(state):
            original_set_state(state)
            seen.append(sched.state)

        sched._set_state = recording_set_state
        sched.start()
        assert entered.wait(5)
        stopper = threading.Thread(target=sched.stop, kwargs={"timeout": 5})
        stopper.start()
        deadline = time.monotonic() + 5
        while sched.state != SchedulerState.STOPPING and time.monotonic() < deadline:
            time.sleep(0.01)
        release.set()
        stopper.join(5)

        after_stop = seen[seen.index(SchedulerState.STOPPING):]
        assert SchedulerState.SLEEPING not in after_stop
        assert sched.state == SchedulerState.STOPPED

    def test_stop_before_start(self):
        sched = self._scheduler(lambda db: {})
        sched.stop()
        assert sched.state == SchedulerState.STOPPED
