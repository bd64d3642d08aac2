"""
Opportunity Engine Command Line Interface

Provides CLI commands for operating the engine: database setup,
reconciliation, audit history, association events and the reminder worker.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from opportunity_engine.utils.exceptions import EngineError

app = typer.Typer(
    name="opportunity-engine",
    help="Opportunity-candidate association engine CLI",
    add_completion=False,
)
console = Console()


@app.callback()
def main():
    """Configure logging before any command runs."""
    from opportunity_engine.utils.logger import setup_logging

    setup_logging()


def _require_connection():
    from opportunity_engine.data.database import get_database_manager

    db_manager = get_database_manager()
    if not db_manager.check_sync_connection():
        console.print("[red]Error: Could not connect to MongoDB.[/red]")
        console.print("[dim]Make sure MongoDB is running and connection settings are correct.[/dim]")
        raise typer.Exit(1)
    return db_manager


def _build_scheduler(db_manager):
    from opportunity_engine.core.notifications import (
        LoggingNotificationDispatcher,
        MongoTaskQueue,
        NotificationScheduler,
    )
    from opportunity_engine.data.repositories import ScheduledReminderRepository

    queue = MongoTaskQueue(ScheduledReminderRepository(db_manager))
    scheduler = NotificationScheduler(queue, LoggingNotificationDispatcher(), db_manager)
    return scheduler, queue


@app.command()
def version():
    """Show application version."""
    from opportunity_engine import __app_name__, __version__

    console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")


@app.command()
def info():
    """Show system information and configuration."""
    from opportunity_engine.utils.config import get_settings

    settings = get_settings()

    table = Table(title="Opportunity Engine Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Database Host", "(from DB_URI)" if settings.database.uri else settings.database.host)
    table.add_row("Database Name", settings.database.name)
    table.add_row("Replica Set", settings.database.replica_set or "-")
    table.add_row("Archive Reminder", f"{settings.reminders.archive_delay_days:g} days")
    table.add_row("No-response Reminder", f"{settings.reminders.no_response_delay_days:g} days")
    table.add_row("Candidate Reminder", f"{settings.reminders.candidate_delay_days:g} days")
    table.add_row("Reminder Attempts", str(settings.reminders.max_attempts))
    table.add_row("Claim Lease", f"{settings.reminders.claim_lease_seconds:g} s")
    table.add_row("Log Level", settings.logging.level)

    console.print(table)


@app.command()
def init_db():
    """Check the database connection and create the indexes."""
    console.print("[yellow]Initializing database...[/yellow]")

    console.print("  Checking database connection...")
    db_manager = _require_connection()
    console.print("  [green]✓[/green] Connected to MongoDB")

    try:
        console.print("  Creating indexes...")
        db_manager.ensure_indexes()
        console.print("  [green]✓[/green] Indexes created")
    except Exception as e:
        console.print(f"[red]Error initializing database: {e}[/red]")
        raise typer.Exit(1)

    console.print("\n[green]Database initialized successfully![/green]")


@app.command()
def reconcile(
    opportunity_id: str = typer.Argument(..., help="Opportunity to reconcile"),
    candidate: Optional[list[str]] = typer.Option(
        None, "--candidate", "-c", help="Candidate to attach (repeatable)"
    ),
    keep: bool = typer.Option(
        False, "--keep", help="Keep the current candidates instead of passing --candidate"
    ),
):
    """Align an opportunity's candidates with the given list."""
    from opportunity_engine.core.associations import AssociationReconciler

    db_manager = _require_connection()
    candidate_ids = None if keep else list(candidate or [])

    try:
        result = AssociationReconciler(db_manager).reconcile(
            opportunity_id, candidate_ids=candidate_ids
        )
    except EngineError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Reconciliation of {opportunity_id}")
    table.add_column("Candidate", style="cyan")
    table.add_column("Status", justify="right")
    table.add_column("Recommended")
    table.add_column("Change", style="green")

    notified = {a.id for a in result.to_notify}
    unrecommended = {a.id for a in result.unrecommended}
    removed = {a.id for a in result.removed}
    for association in result.associations:
        if association.id in removed:
            change = "[red]removed[/red]"
        elif association.id in unrecommended:
            change = "[yellow]unrecommended[/yellow]"
        elif association.id in notified:
            change = "to notify"
        else:
            change = "-"
        table.add_row(
            str(association.candidate_id),
            str(association.status),
            "yes" if association.recommended else "no",
            change,
        )

    console.print(table)


@app.command()
def history(
    opportunity_id: str = typer.Argument(..., help="Opportunity whose status changes to list"),
):
    """Show the status change records of an opportunity."""
    from opportunity_engine.data.repositories import StatusChangeRepository

    db_manager = _require_connection()
    records = StatusChangeRepository(db_manager).get_for_opportunity(opportunity_id)

    if not records:
        console.print("[dim]No status changes recorded.[/dim]")
        raise typer.Exit(0)

    table = Table(title=f"Status changes of {opportunity_id}")
    table.add_column("When", style="dim")
    table.add_column("Candidate", style="cyan")
    table.add_column("From", justify="right")
    table.add_column("To", justify="right")

    for record in records:
        table.add_row(
            f"{record.created_at:%Y-%m-%d %H:%M:%S}",
            str(record.candidate_id),
            "-" if record.is_creation else str(record.old_status),
            "[red]removed[/red]" if record.is_removal else str(record.new_status),
        )

    console.print(table)


@app.command()
def events(
    opportunity_id: str = typer.Argument(..., help="Opportunity of the association"),
    candidate_id: str = typer.Argument(..., help="Candidate of the association"),
):
    """Show the events recorded on one association."""
    from opportunity_engine.core.associations import AssociationEvents
    from opportunity_engine.data.repositories import AssociationRepository

    db_manager = _require_connection()
    association = AssociationRepository(db_manager).get_by_pair(opportunity_id, candidate_id)
    if association is None:
        console.print("[red]Error: candidate is not associated with this opportunity[/red]")
        raise typer.Exit(1)

    recorded = AssociationEvents(db_manager).events_for(association)
    if not recorded:
        console.print("[dim]No events recorded.[/dim]")
        raise typer.Exit(0)

    table = Table(title=f"Events of candidate {candidate_id}")
    table.add_column("Type", style="cyan")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Contract")
    for event in recorded:
        table.add_row(
            event.type,
            f"{event.start_date:%Y-%m-%d}",
            f"{event.end_date:%Y-%m-%d}" if event.end_date else "-",
            event.contract or "-",
        )

    console.print(table)


@app.command()
def stats():
    """Show collection counts and opportunities per admin tab."""
    from opportunity_engine.core.filters import count_admin_tabs
    from opportunity_engine.data.models import FilterRequest
    from opportunity_engine.data.repositories import (
        AssociationRepository,
        OpportunityRepository,
        ScheduledReminderRepository,
        StatusChangeRepository,
    )

    db_manager = _require_connection()
    opportunities = OpportunityRepository(db_manager)

    table = Table(title="Database Counts")
    table.add_column("Collection", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Opportunities", str(opportunities.count()))
    table.add_row("Associations", str(AssociationRepository(db_manager).count({"deleted_at": None})))
    table.add_row("Status Changes", str(StatusChangeRepository(db_manager).count()))
    table.add_row("Pending Reminders", str(ScheduledReminderRepository(db_manager).count_pending()))
    console.print(table)

    console.print("\n[bold]Opportunities by Tab:[/bold]")
    for tab, count in count_admin_tabs(FilterRequest(), opportunities).items():
        console.print(f"  {tab}: {count}")


@app.command()
def run_reminders(
    once: bool = typer.Option(False, "--once", help="Process due reminders once and exit"),
):
    """Run the reminder worker."""
    from opportunity_engine.core.notifications import ReminderWorker

    db_manager = _require_connection()
    scheduler, queue = _build_scheduler(db_manager)
    worker = ReminderWorker(scheduler, queue)

    if not once:
        console.print("[yellow]Reminder worker running. Press Ctrl+C to stop.[/yellow]")
        try:
            worker.run_forever()
        except KeyboardInterrupt:
            console.print("\n[dim]Stopped.[/dim]")
        return

    outcomes = worker.run_once()
    if not outcomes:
        console.print("[dim]No reminders due.[/dim]")
        return

    table = Table(title="Processed Reminders")
    table.add_column("Reminder", style="dim")
    table.add_column("Kind", style="cyan")
    table.add_column("Sent")
    table.add_column("Rescheduled")
    table.add_column("Reason")
    for outcome in outcomes:
        table.add_row(
            str(outcome.reminder_id),
            outcome.kind.value,
            "yes" if outcome.sent else "no",
            "yes" if outcome.rescheduled else "no",
            outcome.reason,
        )
    console.print(table)


if __name__ == "__main__":
    app()
