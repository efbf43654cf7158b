#!/usr/bin/env python3
"""Seed a demo fleet that exercises every scheduled detector.

Creates 5 vessels relative to the current UTC time:
  A  Silent vessel          — registered, never reported a position
  B  Stale position vessel  — last fix 14h ago (CRITICAL position timeout)
  C  Certificate vessel     — two certificates expiring the same week
  D  Fuel burner            — efficiency jumps from 0.30 to 0.50 MT/NM
  E  Clean vessel           — fresh position, healthy certificates and fuel

Run ``fleetwatch run-cycle`` afterwards to see the alerts.
"""
from __future__ import annotations

from datetime import datetime, timedelta

import typer

from app.database import SessionLocal, init_db
from app.models.certificate import Certificate
from app.models.fuel_record import FuelRecord
from app.models.vessel import Vessel
from app.models.vessel_position import VesselPosition
from app.utils.clock import utcnow

cli = typer.Typer(help="Generate a demo fleet for Fleetwatch development/testing.")


# ---------------------------------------------------------------------------
# Vessel definitions
# ---------------------------------------------------------------------------

VESSELS: list[dict] = [
    {"imo": "9700001", "name": "QUIET HARBOUR", "flag": "PA", "vessel_type": "Bulk Carrier",
     "callsign": "3FQH1", "deadweight": 58_000.0, "label": "A"},
    {"imo": "9700002", "name": "NORTHERN STAR", "flag": "LR", "vessel_type": "Container",
     "callsign": "D5NS2", "deadweight": 42_000.0, "label": "B"},
    {"imo": "9700003", "name": "PAPER TRAIL", "flag": "MH", "vessel_type": "Tanker",
     "callsign": "V7PT3", "deadweight": 110_000.0, "label": "C"},
    {"imo": "9700004", "name": "HEAVY FOOT", "flag": "SG", "vessel_type": "Container",
     "callsign": "9VHF4", "deadweight": 65_000.0, "label": "D"},
    {"imo": "9700005", "name": "STEADY HAND", "flag": "NO", "vessel_type": "General Cargo",
     "callsign": "LASH5", "deadweight": 12_000.0, "label": "E"},
]


# ---------------------------------------------------------------------------
# Per-vessel child records
# ---------------------------------------------------------------------------

def _silent(vessel_id: int, now: datetime) -> list:
    return []


def _stale(vessel_id: int, now: datetime) -> list:
    return [
        VesselPosition(vessel_id=vessel_id, timestamp_utc=now - timedelta(hours=h),
                       lat=51.9 + i * 0.05, lon=3.8 + i * 0.1, speed=12.0, course=80.0)
        for i, h in enumerate((20, 17, 14))
    ]


def _certificates(vessel_id: int, now: datetime) -> list:
    rows = [_fresh_position(vessel_id, now)]
    for number, name, days in (
        ("SMC-2231", "Safety Management Certificate", 3),
        ("IOPP-8812", "International Oil Pollution Prevention", 5),
        ("ISSC-0419", "International Ship Security Certificate", 200),
    ):
        rows.append(Certificate(
            vessel_id=vessel_id,
            certificate_type=number.split("-")[0],
            certificate_name=name,
            certificate_number=number,
            issuing_authority="Marshall Islands Maritime Administrator",
            issue_date=now - timedelta(days=1800),
            expiry_date=now + timedelta(days=days),
        ))
    return rows


def _fuel(vessel_id: int, now: datetime) -> list:
    rows = [_fresh_position(vessel_id, now)]
    for days_ago, consumed in ((2, 90.0), (1, 150.0)):
        distance = 300.0
        rows.append(FuelRecord(
            vessel_id=vessel_id,
            report_date=now - timedelta(days=days_ago),
            fuel_consumed=consumed,
            distance_traveled=distance,
            average_speed=12.5,
            fuel_efficiency=FuelRecord.compute_efficiency(consumed, distance),
        ))
    return rows


def _clean(vessel_id: int, now: datetime) -> list:
    rows = [_fresh_position(vessel_id, now)]
    rows.append(Certificate(
        vessel_id=vessel_id,
        certificate_type="ISSC",
        certificate_name="International Ship Security Certificate",
        certificate_number="ISSC-5501",
        expiry_date=now + timedelta(days=365),
    ))
    for days_ago in (3, 2, 1):
        rows.append(FuelRecord(
            vessel_id=vessel_id,
            report_date=now - timedelta(days=days_ago),
            fuel_consumed=60.0,
            distance_traveled=300.0,
            fuel_efficiency=0.2,
        ))
    return rows


def _fresh_position(vessel_id: int, now: datetime) -> VesselPosition:
    return VesselPosition(vessel_id=vessel_id, timestamp_utc=now - timedelta(minutes=20),
                          lat=1.25, lon=103.8, speed=10.0, course=270.0)


RECORD_GENERATORS = {
    "A": _silent,
    "B": _stale,
    "C": _certificates,
    "D": _fuel,
    "E": _clean,
}


@cli.command()
def generate(
    purge: bool = typer.Option(
        False, "--purge", help="Delete existing demo vessels before inserting."
    ),
) -> None:
    """Generate the demo fleet and insert it into the database."""
    init_db()
    session = SessionLocal()
    now = utcnow()

    demo_imos = [v["imo"] for v in VESSELS]

    try:
        if purge:
            existing = session.query(Vessel).filter(Vessel.imo.in_(demo_imos)).all()
            if existing:
                for v in existing:
                    session.delete(v)
                session.commit()
                typer.echo(f"Purged {len(existing)} existing demo vessel(s).")

        total_records = 0
        for vdef in VESSELS:
            fields = {k: v for k, v in vdef.items() if k != "label"}
            label = vdef["label"]

            if session.query(Vessel).filter(Vessel.imo == fields["imo"]).first():
                typer.echo(
                    f"  Vessel {label} (IMO {fields['imo']}) already exists, skipping. "
                    f"Use --purge to recreate."
                )
                continue

            # Registered 3 days ago so the silent vessel has a timeout anchor
            vessel = Vessel(**fields, build_date=now - timedelta(days=3))
            session.add(vessel)
            session.flush()

            records = RECORD_GENERATORS[label](vessel.vessel_id, now)
            session.add_all(records)
            total_records += len(records)
            typer.echo(f"  Vessel {label}: {vessel.name} (IMO {vessel.imo}): {len(records)} records")

        session.commit()
        typer.echo(f"\nInserted {total_records} records across {len(VESSELS)} vessels.")

    except Exception as exc:
        session.rollback()
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    finally:
        session.close()


if __name__ == "__main__":
    cli()
