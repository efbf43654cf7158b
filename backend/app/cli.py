"""Fleetwatch CLI — vessel alert detection and review.

Commands:
  init-db     — create database tables
  run-cycle   — run the scheduled detectors once
  scheduler   — run the detection scheduler in the foreground
  alerts      — list recent alerts
  ack         — acknowledge an alert
  status      — recent detection cycles and open alert counts
"""
from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table


app = typer.Typer(
    name="fleetwatch",
    help="Vessel alert detection for fleet operators.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()

_SEVERITY_STYLE = {
    "CRITICAL": "bold red",
    "WARNING": "yellow",
    "INFO": "cyan",
    "LOW": "dim",
}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    from app.config import settings

    logging.basicConfig(level=(log_level or settings.LOG_LEVEL).upper())


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("init-db")
def init_db_command():
    """Create all database tables."""
    from app.database import init_db

    try:
        init_db()
    except Exception as e:
        console.print(f"[red]Database setup failed: {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]Database ready.[/green]")


@app.command("run-cycle")
def run_cycle():
    """Run position, certificate and fuel detectors once."""
    from app.database import SessionLocal
    from app.modules.detection_cycle import run_detection_cycle

    db = SessionLocal()
    try:
        with console.status("[bold]Running detectors..."):
            result = run_detection_cycle(db)
    except Exception as e:
        console.print(f"[red]Detection cycle failed: {e}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    table = Table(title=f"Detection cycle {result['run_id']} — {result['run_status']}")
    table.add_column("Detector", style="cyan")
    table.add_column("Status")
    table.add_column("Alerts", justify="right")
    table.add_column("Suppressed", justify="right")
    for name, step in result["steps"].items():
        ok = step["status"] == "ok"
        table.add_row(
            name,
            "[green]ok[/green]" if ok else f"[red]failed[/red] {step.get('detail', '')}",
            str(step.get("alerts_raised", "-")),
            str(step.get("suppressed", "-")),
        )
    console.print(table)
    console.print(f"[bold]{result['alerts_raised']}[/bold] new alerts")
    if result["run_status"] != "complete":
        raise typer.Exit(2)


@app.command("scheduler")
def scheduler(
    interval: Optional[float] = typer.Option(None, "--interval", help="Minutes between cycles (default from settings)"),
):
    """Run the detection scheduler in the foreground until Ctrl-C."""
    from datetime import timedelta
    from app.modules.alert_scheduler import AlertScheduler

    sched = AlertScheduler(interval=timedelta(minutes=interval) if interval else None)
    console.print(
        f"[bold]Alert scheduler running[/bold] every {sched.interval} "
        f"(backoff {sched.backoff}). Press Ctrl-C to stop."
    )
    try:
        sched.run_forever()
    except KeyboardInterrupt:
        sched.stop(timeout=0)
    console.print(f"Scheduler stopped after {sched.cycles_completed} cycles.")


@app.command("alerts")
def alerts(
    vessel_id: Optional[int] = typer.Option(None, "--vessel", help="Only this vessel"),
    min_severity: Optional[str] = typer.Option(None, "--min-severity", help="LOW, INFO, WARNING or CRITICAL"),
    unacknowledged: bool = typer.Option(False, "--open", help="Only unacknowledged alerts"),
    limit: int = typer.Option(25, "--limit"),
):
    """List recent alerts, newest first."""
    from app.database import SessionLocal
    from app.models.base import SeverityEnum
    from app.modules.alert_store import AlertStore

    floor = None
    if min_severity:
        try:
            floor = SeverityEnum(min_severity.upper())
        except ValueError:
            console.print(f"[red]Unknown severity '{min_severity}'[/red]")
            raise typer.Exit(1)

    db = SessionLocal()
    try:
        rows = AlertStore(db).list_alerts(
            vessel_id=vessel_id,
            min_severity=floor,
            acknowledged=False if unacknowledged else None,
            limit=limit,
        )
        _print_alerts_table(console, rows)
    finally:
        db.close()


@app.command("ack")
def ack(
    alert_id: str = typer.Argument(..., help="Alert ID"),
    by: str = typer.Option(..., "--by", help="Operator acknowledging the alert"),
):
    """Acknowledge an alert (once)."""
    from app.database import SessionLocal
    from app.modules.alert_store import AlertStore

    db = SessionLocal()
    try:
        store = AlertStore(db)
        alert = store.get(alert_id)
        if alert is None:
            console.print(f"[red]Alert {alert_id} not found[/red]")
            raise typer.Exit(1)
        if not store.acknowledge(alert_id, by):
            console.print(f"[yellow]Alert already acknowledged by {alert.acknowledged_by}[/yellow]")
            raise typer.Exit(1)
        console.print(f"[green]Alert {alert_id} acknowledged by {by}[/green]")
    finally:
        db.close()


@app.command("status")
def status(limit: int = typer.Option(5, "--limit", help="Cycles to show")):
    """Show recent detection cycles and open alerts by severity."""
    from sqlalchemy import func
    from app.database import SessionLocal
    from app.models.vessel_alert import VesselAlert
    from app.modules.detection_cycle import recent_cycle_runs

    db = SessionLocal()
    try:
        runs = recent_cycle_runs(db, limit=limit)
        if not runs:
            console.print("[yellow]No detection cycles recorded yet.[/yellow]")
        else:
            table = Table(title="Recent detection cycles")
            table.add_column("Run", style="cyan")
            table.add_column("Started")
            table.add_column("Status")
            table.add_column("Alerts", justify="right")
            for r in runs:
                style = "green" if r.status == "complete" else "yellow"
                table.add_row(
                    str(r.run_id),
                    r.started_at.strftime("%Y-%m-%d %H:%M") if r.started_at else "?",
                    f"[{style}]{r.status}[/{style}]",
                    str(r.alerts_raised or 0),
                )
            console.print(table)

        counts = (
            db.query(VesselAlert.severity, func.count(VesselAlert.alert_id))
            .filter(VesselAlert.acknowledged.is_(False))
            .group_by(VesselAlert.severity)
            .all()
        )
        console.print("\n[bold]Open alerts[/bold]")
        if not counts:
            console.print("  none")
        for sev, n in counts:
            label = sev.value if hasattr(sev, "value") else str(sev)
            style = _SEVERITY_STYLE.get(label, "")
            console.print(f"  [{style}]{label}[/{style}]: {n}")
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _print_alerts_table(con: Console, rows) -> None:
    """Print a Rich table of alerts."""
    if not rows:
        con.print("[yellow]No alerts.[/yellow]")
        return
    table = Table(title=f"Alerts ({len(rows)})")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Vessel", justify="right")
    table.add_column("Kind")
    table.add_column("Severity")
    table.add_column("Created")
    table.add_column("Ack")
    table.add_column("Message")
    for a in rows:
        label = a.severity.value if hasattr(a.severity, "value") else str(a.severity)
        style = _SEVERITY_STYLE.get(label, "")
        table.add_row(
            a.alert_id,
            str(a.vessel_id),
            a.kind,
            f"[{style}]{label}[/{style}]",
            a.created_utc.strftime("%Y-%m-%d %H:%M"),
            (a.acknowledged_by or "") if a.acknowledged else "",
            a.message,
        )
    con.print(table)


if __name__ == "__main__":
    app()
