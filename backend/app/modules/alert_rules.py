"""Declarative per-kind alert rules.

Every known alert kind maps to one ``AlertRule``: how to derive its severity
from the context payload, how long a repeat is suppressed, and which context
field (if any) narrows the dedup scope below vessel+kind.  Adding a new kind
is a ``register_rule`` call, not a new code path in the factory.

Manual kinds carry no dedup window: every manual trigger creates an alert.
"""
from __future__ import annotations

from datetime import timedelta
from typing import Callable, NamedTuple, Optional

from app.models.base import SeverityEnum
from app.modules import severity as sev

KIND_POSITION_TIMEOUT = "position-timeout"
KIND_CERTIFICATE_EXPIRY = "certificate-expiry"
KIND_FUEL_EFFICIENCY = "fuel-efficiency"
KIND_FUEL_LOW = "fuel-low"
KIND_GEOFENCE = "geofence"
KIND_MAINTENANCE_DUE = "maintenance-due"
KIND_ENGINE_OVERTEMP = "engine-overtemp"


class AlertRule(NamedTuple):
    kind: str
    classify: Callable[[dict], SeverityEnum]
    # None → never suppressed
    dedup_window: Optional[timedelta] = None
    # Context field whose value scopes dedup (e.g. one certificate among many)
    dedup_key_field: Optional[str] = None

    def severity(self, context: dict) -> SeverityEnum:
        try:
            return self.classify(context)
        except KeyError as exc:
            raise ValueError(
                f"Alert kind '{self.kind}' requires '{exc.args[0]}' in its context"
            ) from exc

    def dedup_key(self, context: dict) -> Optional[str]:
        if self.dedup_key_field is None:
            return None
        value = context.get(self.dedup_key_field)
        if value is None:
            raise ValueError(
                f"Alert kind '{self.kind}' requires '{self.dedup_key_field}' in its context"
            )
        return str(value)


_RULES: dict[str, AlertRule] = {}


def register_rule(rule: AlertRule) -> AlertRule:
    _RULES[rule.kind] = rule
    return rule


def get_rule(kind: str) -> Optional[AlertRule]:
    return _RULES.get(kind)


def all_rules() -> list[AlertRule]:
    return list(_RULES.values())


# ── Scheduled detector kinds ────────────────────────────────────────────────

register_rule(AlertRule(
    kind=KIND_POSITION_TIMEOUT,
    classify=lambda ctx: sev.classify_position_timeout(ctx["hours_without_update"]),
    dedup_window=timedelta(hours=6),
))

register_rule(AlertRule(
    kind=KIND_CERTIFICATE_EXPIRY,
    classify=lambda ctx: sev.classify_certificate_expiry(ctx["days_until_expiry"]),
    dedup_window=timedelta(days=7),
    dedup_key_field="certificate_number",
))

register_rule(AlertRule(
    kind=KIND_FUEL_EFFICIENCY,
    classify=lambda ctx: sev.classify_fuel_efficiency(),
    dedup_window=timedelta(days=3),
))

# ── Manual / event-driven kinds (no dedup) ──────────────────────────────────

register_rule(AlertRule(
    kind=KIND_FUEL_LOW,
    classify=lambda ctx: sev.classify_fuel_low(ctx["fuel_level"], ctx["threshold"]),
))

register_rule(AlertRule(
    kind=KIND_GEOFENCE,
    classify=lambda ctx: sev.classify_geofence(ctx["geofence_type"]),
))

register_rule(AlertRule(
    kind=KIND_MAINTENANCE_DUE,
    classify=lambda ctx: sev.classify_maintenance_due(ctx["days_until_due"]),
))

register_rule(AlertRule(
    kind=KIND_ENGINE_OVERTEMP,
    classify=lambda ctx: sev.classify_engine_temperature(ctx["temperature"]),
))
