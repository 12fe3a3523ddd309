"""
Command line interface for the stakeflow backend.

Runs each cron job once, starts the scheduler or the API server, and
manages the database schema.
"""

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Dict

import typer
from rich.console import Console
from rich.table import Table

from alembic import command
from alembic.config import Config

from stakeflow.core.database import check_connection, close_database, create_schema, drop_schema, init_database
from stakeflow.core.logging import get_logger, setup_logging


console = Console()
logger = get_logger(__name__)

app = typer.Typer(help="Stakeflow rewards backend")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


def _run_job(job: Callable[[Any], Awaitable[Any]]) -> Dict[str, Any]:
    """Run one orchestrator job against the database and return its result dict."""
    from stakeflow.scheduler.cron_scheduler import get_cron_orchestrator

    async def _run():
        setup_logging()
        await init_database()
        try:
            result = await job(get_cron_orchestrator())
            return result.to_dict()
        finally:
            await close_database()

    return asyncio.run(_run())


def _print_result(title: str, result: Dict[str, Any]) -> None:
    table = Table(title=title)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key, value in result.items():
        rendered = json.dumps(value, default=str) if isinstance(value, (dict, list)) else str(value)
        table.add_row(key, rendered)
    console.print(table)

    if not result.get("success", True):
        raise typer.Exit(code=1)


@app.command("run-rewards")
def run_rewards():
    """Run the reward calculation once."""
    _print_result("Reward calculation", _run_job(lambda o: o.trigger_reward_calculation()))


@app.command("run-stats")
def run_stats(period: str = typer.Argument("daily", help="daily, weekly or monthly")):
    """Run a statistics rollup once."""
    jobs = {
        "daily": lambda o: o.trigger_daily_statistics(),
        "weekly": lambda o: o.trigger_weekly_statistics(),
        "monthly": lambda o: o.trigger_monthly_statistics(),
    }
    if period not in jobs:
        console.print(f"Unknown period: {period}")
        raise typer.Exit(code=2)
    _print_result(f"{period.capitalize()} statistics", _run_job(jobs[period]))


@app.command("run-snapshots")
def run_snapshots():
    """Create today's portfolio snapshots."""
    _print_result("Portfolio snapshots", _run_job(lambda o: o.trigger_snapshots()))


@app.command("cleanup-snapshots")
def cleanup_snapshots():
    """Delete snapshots older than the retention window."""
    _print_result("Snapshot cleanup", _run_job(lambda o: o.trigger_snapshot_cleanup()))


@app.command()
def scheduler():
    """Run the cron scheduler in the foreground."""
    from stakeflow.scheduler.main import main as scheduler_main

    asyncio.run(scheduler_main())


@app.command()
def serve():
    """Run the HTTP API with uvicorn."""
    from stakeflow.api.main import main as api_main

    api_main()


@db_app.command()
def init():
    """Create all tables directly from the models."""
    async def _init():
        setup_logging()
        await init_database()
        await create_schema()
        await close_database()
        console.print("Database initialized successfully")

    asyncio.run(_init())


@db_app.command()
def upgrade(revision: str = "head"):
    """Apply migrations."""
    command.upgrade(Config("alembic.ini"), revision)
    console.print(f"Database upgraded to: {revision}")


@db_app.command()
def downgrade(revision: str):
    """Downgrade database to a specific revision."""
    command.downgrade(Config("alembic.ini"), revision)
    console.print(f"Database downgraded to: {revision}")


@db_app.command()
def current():
    """Show current database revision."""
    command.current(Config("alembic.ini"))


@db_app.command()
def reset():
    """Drop all tables."""
    if not typer.confirm("Are you sure you want to drop all tables?"):
        console.print("Operation cancelled")
        return

    async def _reset():
        setup_logging()
        await init_database()
        await drop_schema()
        await close_database()
        console.print("All tables dropped")

    asyncio.run(_reset())


@db_app.command()
def health():
    """Check database connectivity."""
    async def _health():
        setup_logging()
        await init_database()
        try:
            return await check_connection()
        finally:
            await close_database()

    if asyncio.run(_health()):
        console.print("Database is healthy")
    else:
        console.print("Database health check failed")
        sys.exit(1)


if __name__ == "__main__":
    app()
