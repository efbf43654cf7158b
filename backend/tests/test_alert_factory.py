"""Tests for AlertFactory, the dedup gate and AlertStore.

Uses in-memory SQLite so the dedup window queries run for real.
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from app.models.base import SeverityEnum
from app.models.vessel_alert import VesselAlert
from app.modules.alert_factory import AlertFactory
from app.modules.alert_rules import (
    KIND_CERTIFICATE_EXPIRY,
    KIND_FUEL_LOW,
    KIND_POSITION_TIMEOUT,
)
from app.modules.alert_store import AlertStore
from app.modules.dedup_gate import should_suppress

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _cert_context(number, days=5):
    return {
        "certificate_number": number,
        "certificate_name": "Safety Management Certificate",
        "days_until_expiry": days,
    }


class TestRaiseAlert:
    def test_creates_alert_with_rule_severity(self, db, make_vessel):
        v = make_vessel()
        alert = AlertFactory(db).raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, "silent",
            context={"hours_without_update": 14.0}, now=NOW,
        )
        assert alert is not None
        assert alert.severity == SeverityEnum.CRITICAL
        assert alert.created_utc == NOW
        assert alert.acknowledged is False
        assert db.query(VesselAlert).count() == 1

    def test_rule_overrides_caller_severity(self, db, make_vessel):
        v = make_vessel()
        alert = AlertFactory(db).raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, "silent",
            context={"hours_without_update": 3.0},
            severity=SeverityEnum.LOW, now=NOW,
        )
        assert alert.severity == SeverityEnum.WARNING

    def test_unknown_kind_defaults_to_info(self, db, make_vessel):
        v = make_vessel()
        alert = AlertFactory(db).raise_alert(v.vessel_id, "hull-inspection", "check hull", now=NOW)
        assert alert.severity == SeverityEnum.INFO

    def test_unknown_kind_uses_caller_severity(self, db, make_vessel):
        v = make_vessel()
        alert = AlertFactory(db).raise_alert(
            v.vessel_id, "hull-inspection", "check hull", severity=SeverityEnum.CRITICAL, now=NOW,
        )
        assert alert.severity == SeverityEnum.CRITICAL

    def test_message_builder_receives_context_and_severity(self, db, make_vessel):
        v = make_vessel()
        seen = {}

        def build(ctx, severity):
            seen["ctx"], seen["severity"] = ctx, severity
            return f"{ctx['hours_without_update']}h {severity.value}"

        alert = AlertFactory(db).raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, build,
            context={"hours_without_update": 3.0}, now=NOW,
        )
        assert alert.message == "3.0h WARNING"
        assert seen["severity"] == SeverityEnum.WARNING

    def test_context_datetimes_serialized(self, db, make_vessel):
        v = make_vessel()
        alert = AlertFactory(db).raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, "silent",
            context={"hours_without_update": 3.0, "last_update": NOW - timedelta(hours=3)},
            now=NOW,
        )
        db.expire_all()
        stored = db.get(VesselAlert, alert.alert_id)
        assert stored.context_json["last_update"] == "2026-03-01T09:00:00"

    def test_store_failure_propagates(self):
        session = MagicMock()
        session.query.return_value.filter.return_value.first.return_value = None
        session.commit.side_effect = RuntimeError("disk full")
        with pytest.raises(RuntimeError, match="disk full"):
            AlertFactory(session).raise_alert(1, "hull-inspection", "msg", now=NOW)
        session.rollback.assert_called_once()


class TestDeduplication:
    def test_second_raise_inside_window_suppressed(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        ctx = {"hours_without_update": 3.0}
        first = factory.raise_alert(v.vessel_id, KIND_POSITION_TIMEOUT, "a", context=ctx, now=NOW)
        second = factory.raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, "b", context=ctx, now=NOW + timedelta(hours=5),
        )
        assert first is not None
        assert second is None
        assert db.query(VesselAlert).count() == 1

    def test_raise_after_window_allowed(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        ctx = {"hours_without_update": 3.0}
        factory.raise_alert(v.vessel_id, KIND_POSITION_TIMEOUT, "a", context=ctx, now=NOW)
        later = factory.raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, "b", context=ctx, now=NOW + timedelta(hours=7),
        )
        assert later is not None
        assert db.query(VesselAlert).count() == 2

    def test_scoped_per_vessel(self, db, make_vessel):
        a, b = make_vessel(), make_vessel()
        factory = AlertFactory(db)
        ctx = {"hours_without_update": 3.0}
        assert factory.raise_alert(a.vessel_id, KIND_POSITION_TIMEOUT, "x", context=ctx, now=NOW)
        assert factory.raise_alert(b.vessel_id, KIND_POSITION_TIMEOUT, "x", context=ctx, now=NOW)

    def test_certificate_scoped_per_number(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        first = factory.raise_alert(
            v.vessel_id, KIND_CERTIFICATE_EXPIRY, "a", context=_cert_context("SMC-1"), now=NOW,
        )
        other = factory.raise_alert(
            v.vessel_id, KIND_CERTIFICATE_EXPIRY, "b", context=_cert_context("IOPP-2"), now=NOW,
        )
        repeat = factory.raise_alert(
            v.vessel_id, KIND_CERTIFICATE_EXPIRY, "c", context=_cert_context("SMC-1"),
            now=NOW + timedelta(days=1),
        )
        assert first is not None and other is not None
        assert repeat is None
        assert first.dedup_key == "SMC-1"

    def test_certificate_number_prefix_does_not_collide(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        factory.raise_alert(
            v.vessel_id, KIND_CERTIFICATE_EXPIRY, "a", context=_cert_context("SMC-12"), now=NOW,
        )
        assert factory.raise_alert(
            v.vessel_id, KIND_CERTIFICATE_EXPIRY, "b", context=_cert_context("SMC-1"), now=NOW,
        ) is not None

    def test_manual_kind_never_suppressed(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        ctx = {"fuel_level": 12.0, "threshold": 20.0}
        for _ in range(3):
            assert factory.raise_alert(v.vessel_id, KIND_FUEL_LOW, "low", context=ctx, now=NOW)
        assert db.query(VesselAlert).count() == 3

    def test_gate_none_window_never_suppresses(self, mock_db):
        assert should_suppress(mock_db, 1, "anything", None) is False
        mock_db.query.assert_not_called()

    def test_alert_exactly_window_ago_still_suppresses(self, db, make_vessel):
        v = make_vessel()
        AlertFactory(db).raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, "edge",
            context={"hours_without_update": 3.0}, now=NOW - timedelta(hours=6),
        )
        assert should_suppress(db, v.vessel_id, KIND_POSITION_TIMEOUT, timedelta(hours=6), now=NOW) is True

    def test_gate_ignores_future_alerts(self, db, make_vessel):
        v = make_vessel()
        AlertFactory(db).raise_alert(
            v.vessel_id, KIND_POSITION_TIMEOUT, "future",
            context={"hours_without_update": 3.0}, now=NOW + timedelta(hours=1),
        )
        assert should_suppress(db, v.vessel_id, KIND_POSITION_TIMEOUT, timedelta(hours=6), now=NOW) is False


class TestAlertStore:
    def _alert(self, factory, vessel_id, kind="hull-inspection", severity=SeverityEnum.INFO, now=NOW):
        return factory.raise_alert(vessel_id, kind, f"{kind} {severity.value}", severity=severity, now=now)

    def test_list_newest_first(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        old = self._alert(factory, v.vessel_id, now=NOW - timedelta(hours=2))
        new = self._alert(factory, v.vessel_id, now=NOW)
        rows = AlertStore(db).list_alerts(vessel_id=v.vessel_id)
        assert [r.alert_id for r in rows] == [new.alert_id, old.alert_id]

    def test_min_severity_filter(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        self._alert(factory, v.vessel_id, severity=SeverityEnum.LOW)
        self._alert(factory, v.vessel_id, severity=SeverityEnum.WARNING)
        self._alert(factory, v.vessel_id, severity=SeverityEnum.CRITICAL)
        rows = AlertStore(db).list_alerts(min_severity=SeverityEnum.WARNING)
        assert {r.severity for r in rows} == {SeverityEnum.WARNING, SeverityEnum.CRITICAL}

    def test_acknowledged_filter_and_limit(self, db, make_vessel):
        v = make_vessel()
        factory = AlertFactory(db)
        alerts = [self._alert(factory, v.vessel_id, now=NOW - timedelta(minutes=i)) for i in range(4)]
        store = AlertStore(db)
        store.acknowledge(alerts[0].alert_id, "ops", now=NOW)
        assert len(store.list_alerts(acknowledged=False)) == 3
        assert len(store.list_alerts(acknowledged=True)) == 1
        assert len(store.list_alerts(limit=2)) == 2

    def test_acknowledge_once(self, db, make_vessel):
        v = make_vessel()
        alert = self._alert(AlertFactory(db), v.vessel_id)
        store = AlertStore(db)
        assert store.acknowledge(alert.alert_id, "alice", now=NOW) is True
        assert store.acknowledge(alert.alert_id, "bob", now=NOW) is False
        stored = store.get(alert.alert_id)
        assert stored.acknowledged_by == "alice"
        assert stored.acknowledged_at == NOW

    def test_acknowledge_missing(self, db):
        assert AlertStore(db).acknowledge("no-such-alert", "ops") is False

    def test_acknowledged_cannot_revert(self, db, make_vessel):
        v = make_vessel()
        alert = self._alert(AlertFactory(db), v.vessel_id)
        AlertStore(db).acknowledge(alert.alert_id, "ops", now=NOW)
        with pytest.raises(ValueError, match="cannot be reverted"):
            alert.acknowledged = False
