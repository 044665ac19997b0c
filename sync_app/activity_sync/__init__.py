"""
Aloware to Salesforce activity sync feature package.

Registers the CLI group, the JSON blueprint and the Celery worker on a Flask app,
or a stub CLI group when the feature flag is off.
"""

from __future__ import annotations

from typing import Any

from flask import Flask

from sync_app.utils.activity_sync import is_activity_sync_enabled

from .celery_app import EXTENSION_KEY, ensure_celery_app, get_celery_app
from .cli import activity_sync_cli, get_disabled_activity_sync_group
from .errors import ActivitySyncError, ConfigurationError, MappingSkip, PurgeStalledError, TransportError
from .pipeline import ActivitySyncPipeline, SyncReport, SyncStage
from .service import build_pipeline
from .views import activity_sync_blueprint

__all__ = [
    "EXTENSION_KEY",
    "ActivitySyncError",
    "ActivitySyncPipeline",
    "ConfigurationError",
    "MappingSkip",
    "PurgeStalledError",
    "SyncReport",
    "SyncStage",
    "TransportError",
    "build_pipeline",
    "get_celery_app",
    "init_activity_sync",
]


def _ensure_extension_state(app: Flask) -> dict[str, Any]:
    return app.extensions.setdefault(
        EXTENSION_KEY,
        {
            "enabled": False,
            "worker_enabled": False,
            "celery_app": None,
        },
    )


def _set_cli(app: Flask, enabled: bool) -> None:
    """Register the appropriate CLI group based on flag state."""
    # Avoid duplicate registrations when running tests
    command_name = activity_sync_cli.name
    if command_name in app.cli.commands:
        app.cli.commands.pop(command_name)

    if enabled:
        app.cli.add_command(activity_sync_cli)
    else:
        app.cli.add_command(get_disabled_activity_sync_group())


def init_activity_sync(app: Flask) -> None:
    """
    Conditionally mount the blueprint, CLI and Celery worker based on configuration.

    State lives in ``app.extensions['activity_sync']``.
    """
    enabled = is_activity_sync_enabled(app)
    state = _ensure_extension_state(app)
    state["enabled"] = enabled

    if not enabled:
        _set_cli(app, enabled=False)
        app.logger.info("Activity sync disabled via ACTIVITY_SYNC_ENABLED flag; skipping registration.")
        return

    ensure_celery_app(app, state)

    if activity_sync_blueprint.name not in app.blueprints:
        app.register_blueprint(activity_sync_blueprint)
    _set_cli(app, enabled=True)
    app.logger.info(
        "Activity sync enabled",
        extra={"sync_source_table": app.config.get("SUPABASE_SOURCE_TABLE")},
    )
