"""
CLI commands for the activity sync (``flask sync ...``).
"""

from __future__ import annotations

import json
import signal
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import click
from celery import Celery
from celery.exceptions import TimeoutError as CeleryTimeoutError
from flask.cli import ScriptInfo

from config.validation import SUPABASE_REQUIRED_KEYS, validate_sync_settings
from sync_app.utils.activity_sync import is_activity_sync_enabled

from .adapters.salesforce import check_salesforce_adapter_readiness
from .celery_app import DEFAULT_QUEUE_NAME, EXTENSION_KEY, get_celery_app
from .errors import ActivitySyncError
from .pipeline.report import ProgressSnapshot, SyncStage, format_report
from .service import build_pipeline, build_source_feed
from .tasks import HEALTHCHECK_TASK_NAME, RUN_TASK_NAME

CANCELLED_EXIT_CODE = 130


@click.group(name="sync", invoke_without_command=True)
@click.pass_context
def activity_sync_cli(ctx):
    """
    Aloware to Salesforce activity sync commands.

    Prints the resolved configuration when invoked without a subcommand.
    """
    info = ctx.ensure_object(ScriptInfo)
    app = info.load_app()
    if not is_activity_sync_enabled(app):
        raise click.ClickException(
            "Activity sync is disabled via ACTIVITY_SYNC_ENABLED=false. Enable it to run sync commands."
        )
    if ctx.invoked_subcommand is None:
        config = app.config
        readiness = check_salesforce_adapter_readiness(config)
        click.echo("Activity sync configuration:")
        click.echo(f"  source table   : {config.get('SUPABASE_SOURCE_TABLE')}")
        click.echo(f"  salesforce auth: {readiness.auth_mode}")
        click.echo(f"  page size      : {config.get('SYNC_PAGE_SIZE')}")
        click.echo(f"  marker field   : {config.get('SYNC_MARKER_FIELD')}")
        for error in validate_sync_settings(config):
            click.echo(f"  ! {error}")


def get_disabled_activity_sync_group() -> click.Group:
    """
    Return a minimal command group that informs the operator the sync is disabled.
    """

    @click.group(name="sync", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Activity sync commands are unavailable because ACTIVITY_SYNC_ENABLED=false.")

    return disabled_group


def _load_app(ctx):
    return ctx.ensure_object(ScriptInfo).load_app()


def _resolve_celery(app) -> Celery:
    celery_app = get_celery_app(app)
    if celery_app is None:
        raise click.ClickException(
            "Activity sync Celery app is unavailable. Ensure ACTIVITY_SYNC_ENABLED=true before running worker commands."
        )
    return celery_app


def _build_pipeline_or_fail(app, **kwargs):
    try:
        return build_pipeline(app.config, **kwargs)
    except ActivitySyncError as exc:
        raise click.ClickException(str(exc)) from exc


def _echo_progress(snapshot: ProgressSnapshot) -> None:
    click.echo(
        f"[{snapshot.stage.value}] {snapshot.processed}/{snapshot.total} ({snapshot.percent}%) "
        f"created={snapshot.created} skipped={snapshot.skipped} errors={snapshot.errors}"
    )


@contextmanager
def _interrupt_requests_stop() -> Iterator[threading.Event]:
    """
    Turn the first Ctrl-C into a cooperative stop request.

    A second Ctrl-C falls through to the default handler and aborts immediately.
    """
    stop = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield stop
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handle(signum, frame):
        click.echo("Stop requested; finishing the current page...", err=True)
        stop.set()
        signal.signal(signal.SIGINT, previous)

    signal.signal(signal.SIGINT, _handle)
    try:
        yield stop
    finally:
        signal.signal(signal.SIGINT, previous)


@activity_sync_cli.command("check")
@click.option("--auth-ping", is_flag=True, help="Make a credentialed Salesforce call to validate the session.")
@click.pass_context
def activity_sync_check(ctx, auth_ping: bool):
    """Show configuration and Salesforce adapter readiness."""
    app = _load_app(ctx)
    config_errors = validate_sync_settings(app.config)
    readiness = check_salesforce_adapter_readiness(app.config, require_auth_ping=auth_ping)
    payload = {"config_errors": config_errors, "salesforce": readiness.as_dict()}
    click.echo(json.dumps(payload, indent=2, sort_keys=True))
    if config_errors or readiness.status != "ready":
        ctx.exit(1)


@activity_sync_cli.command("count")
@click.pass_context
def activity_sync_count(ctx):
    """Print the number of rows in the staging table."""
    app = _load_app(ctx)
    missing = [key for key in SUPABASE_REQUIRED_KEYS if not app.config.get(key)]
    if missing:
        raise click.ClickException(f"Missing Supabase settings: {', '.join(missing)}")
    try:
        total = build_source_feed(app.config).count()
    except ActivitySyncError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Records to sync: {total}")


@activity_sync_cli.command("purge")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def activity_sync_purge(ctx, yes: bool):
    """Delete every Event previously created by the sync."""
    app = _load_app(ctx)
    pipeline = _build_pipeline_or_fail(app)
    marker = pipeline.settings.marker_field
    if not yes:
        click.confirm(f"Delete every Salesforce Event with {marker} set?", abort=True)
    try:
        summary = pipeline.purge()
    except ActivitySyncError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Deleted {summary.deleted} events in {summary.pages} page(s).")


@activity_sync_cli.command("identities")
@click.pass_context
def activity_sync_identities(ctx):
    """Load Salesforce contacts and agents and print the lookup table sizes."""
    app = _load_app(ctx)
    pipeline = _build_pipeline_or_fail(app)
    try:
        identity = pipeline.load_identities()
    except ActivitySyncError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(identity.as_dict(), indent=2, sort_keys=True))


@activity_sync_cli.command("run")
@click.option("--purge/--no-purge", default=True, help="Delete previously synced events before syncing.")
@click.option(
    "--inline/--no-inline",
    default=True,
    help="Run inline within the CLI process instead of queueing via Celery.",
)
@click.option(
    "--summary-json",
    is_flag=True,
    help="Emit a machine-readable summary payload after completion (inline runs only).",
)
@click.pass_context
def activity_sync_run(ctx, purge: bool, inline: bool, summary_json: bool):
    """Purge, load identities and sync every staging row into Salesforce."""
    app = _load_app(ctx)
    if summary_json and not inline:
        raise click.ClickException("--summary-json is only available for --inline runs.")

    if not inline:
        config_errors = validate_sync_settings(app.config)
        if config_errors:
            raise click.ClickException("; ".join(config_errors))
        celery_app = _resolve_celery(app)
        async_result = celery_app.send_task(RUN_TASK_NAME, kwargs={"purge": purge})
        app.logger.info(
            "Activity sync run queued via CLI",
            extra={"sync_task_id": async_result.id, "sync_purge": purge},
        )
        click.echo(json.dumps({"task_id": async_result.id, "status": "queued", "purge": purge}))
        return

    pipeline = _build_pipeline_or_fail(app, progress=_echo_progress)
    with _interrupt_requests_stop() as stop:
        report = pipeline.run(purge=purge, should_stop=stop.is_set)

    click.echo(format_report(report))
    if summary_json:
        click.echo(json.dumps(report.as_dict(), indent=2, sort_keys=True))
    if report.stage == SyncStage.FAILED:
        ctx.exit(1)
    if report.stage == SyncStage.CANCELLED:
        ctx.exit(CANCELLED_EXIT_CODE)


@activity_sync_cli.group(name="worker")
def worker_group():
    """Manage the activity sync background worker."""


@worker_group.command("run")
@click.option("--loglevel", default="info", show_default=True)
@click.option("--concurrency", type=int, help="Number of worker processes/threads.")
@click.option(
    "--pool",
    type=str,
    help="Celery pool implementation (e.g., 'prefork', 'solo', 'threads').",
)
@click.option(
    "--queues",
    default=DEFAULT_QUEUE_NAME,
    show_default=True,
    help="Comma-separated queue list to consume.",
)
@click.pass_context
def worker_run(ctx, loglevel: str, concurrency: Optional[int], pool: Optional[str], queues: str):
    """
    Start the Celery worker in the current process.
    """
    app = _load_app(ctx)
    celery_app = _resolve_celery(app)
    app.extensions.get(EXTENSION_KEY, {})["worker_enabled"] = True

    argv = ["worker", "--loglevel", loglevel, "-Q", queues]
    if concurrency:
        argv.extend(["--concurrency", str(concurrency)])
    if pool:
        argv.extend(["--pool", pool])

    pool_msg = f", pool: {pool}" if pool else ""
    click.echo(f"Starting activity sync worker (queues: {queues}, loglevel: {loglevel}{pool_msg})")
    try:
        celery_app.worker_main(argv=argv)
    except KeyboardInterrupt:
        click.echo("Worker shutdown requested. Exiting...")


@worker_group.command("ping")
@click.option("--timeout", default=10.0, show_default=True, help="Seconds to wait for a response.")
@click.pass_context
def worker_ping(ctx, timeout: float):
    """
    Validate worker connectivity by executing the heartbeat task.
    """
    app = _load_app(ctx)
    celery_app = _resolve_celery(app)
    task = celery_app.tasks.get(HEALTHCHECK_TASK_NAME)
    if task is None:
        raise click.ClickException(f"Heartbeat task '{HEALTHCHECK_TASK_NAME}' is not registered.")

    result = task.apply_async()
    try:
        payload = result.get(timeout=timeout)
    except CeleryTimeoutError as exc:
        raise click.ClickException(f"Worker did not respond within {timeout}s") from exc

    click.echo(json.dumps(payload, indent=2))
