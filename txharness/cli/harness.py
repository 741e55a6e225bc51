"""Flask CLI commands driving the concurrency harness."""

from __future__ import annotations

import logging

import click
from flask import current_app
from flask.cli import FlaskGroup, with_appcontext

from txharness.core.errors import HarnessError
from txharness.factory import create_app
from txharness.services import create_schema, run_harness, truncate_tables
from txharness.services.orchestrator import RunReport

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Raise logging verbosity for harness modules when requested."""
    if verbose:
        logging.getLogger("txharness").setLevel(logging.DEBUG)


def _echo_summary(report: RunReport, *, show_ids: bool) -> None:
    """Pretty-print a tabular summary of a verified run."""
    click.echo(
        f"Run {report.run_id}: {report.workers} workers x {report.batch_size} rows "
        f"in {report.elapsed_ms:.0f} ms"
    )
    width = max(len(t.table) for t in report.tables)
    for table in report.tables:
        click.echo(
            f"  {table.table.ljust(width)}  rows={table.row_count:>6}  "
            f"first={table.first_id}  last={table.last_id}"
        )
    if show_ids:
        todos = next((t for t in report.tables if t.table == "todos"), None)
        if todos is not None:
            click.echo(",".join(str(i) for i in todos.scan_ids))


@click.group("harness")
@click.option("--verbose", is_flag=True, help="Enable per-insert debug logging.")
def harness_cli(verbose: bool) -> None:
    """Concurrent unit-of-work harness commands."""
    _configure_logging(verbose)


@harness_cli.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create the todos and users tables when they do not exist."""
    try:
        create_schema()
    except HarnessError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo("Schema ready.")


@harness_cli.command("truncate")
@with_appcontext
def truncate_command() -> None:
    """Delete every row from the harness tables."""
    try:
        deleted = truncate_tables()
    except HarnessError as exc:
        raise click.ClickException(str(exc)) from exc
    for table, count in sorted(deleted.items()):
        click.echo(f"  {table}: deleted {count}")


@harness_cli.command("run")
@click.option("--workers", "-n", type=click.IntRange(min=1), default=None,
              help="Concurrent workers (default: HARNESS_WORKERS).")
@click.option("--rows", "-m", type=click.IntRange(min=1), default=None,
              help="Rows per entity type per worker (default: HARNESS_ROWS).")
@click.option("--threads", type=click.IntRange(min=1), default=None,
              help="Thread pool size (default: one thread per worker).")
@click.option("--no-truncate", is_flag=True, help="Keep existing rows before the run.")
@click.option("--show-ids", is_flag=True, help="Print todo ids in scan order.")
@with_appcontext
def run_command(
    workers: int | None,
    rows: int | None,
    threads: int | None,
    no_truncate: bool,
    show_ids: bool,
) -> None:
    """Spawn the workers, join them, and verify the committed result set."""
    config = current_app.config
    workers = workers or int(config["HARNESS_WORKERS"])
    rows = rows or int(config["HARNESS_ROWS"])
    threads = threads or config.get("HARNESS_THREADS")
    try:
        report = run_harness(
            current_app._get_current_object(),  # type: ignore[attr-defined]
            workers,
            rows,
            max_threads=threads,
            truncate=not no_truncate,
            probe_id=int(config.get("HARNESS_PROBE_ID", 1)),
        )
    except HarnessError as exc:
        LOGGER.error("Harness run failed: %s", exc)
        raise click.ClickException(f"Harness run failed: {exc}") from exc
    _echo_summary(report, show_ids=show_ids)


@click.group(cls=FlaskGroup, create_app=create_app)
def main() -> None:
    """Entry point for the ``txharness`` console script."""
