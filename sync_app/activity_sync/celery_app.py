"""
Celery wiring for the activity sync worker.

Without ``CELERY_BROKER_URL``/``CELERY_RESULT_BACKEND`` the worker falls back to a
SQLite file in the Flask instance folder, so a single host can run syncs with no
broker service. Point both settings at Redis or RabbitMQ for shared deployments.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from celery import Celery
from flask import Flask
from kombu import Queue

EXTENSION_KEY = "activity_sync"
DEFAULT_QUEUE_NAME = "activity_sync"
DEFAULT_SQLITE_FILENAME = "celery.sqlite"
TASK_MODULES = ("sync_app.activity_sync.tasks",)

NOISY_LOGGERS = ("celery.worker.strategy", "urllib3.connectionpool")


def _sqlite_file(app: Flask) -> Path:
    # Relative CELERY_SQLITE_PATH values live under the instance folder.
    sqlite_path = Path(app.config.get("CELERY_SQLITE_PATH") or DEFAULT_SQLITE_FILENAME)
    if not sqlite_path.is_absolute():
        sqlite_path = Path(app.instance_path) / sqlite_path
    sqlite_path.parent.mkdir(parents=True, exist_ok=True)
    return sqlite_path


def resolve_connection_urls(app: Flask) -> tuple[str, str]:
    """Return ``(broker_url, result_backend)``, filling gaps with the SQLite defaults."""
    broker_url = app.config.get("CELERY_BROKER_URL")
    result_backend = app.config.get("CELERY_RESULT_BACKEND")
    if broker_url and result_backend:
        return broker_url, result_backend

    sqlite_uri = _sqlite_file(app).as_posix()
    return (
        broker_url or f"sqla+sqlite:///{sqlite_uri}",
        result_backend or f"db+sqlite:///{sqlite_uri}",
    )


def _overrides_from_config(app: Flask) -> Mapping[str, Any]:
    raw = app.config.get("CELERY_CONFIG")
    if not raw:
        return {}
    if isinstance(raw, Mapping):
        return raw
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        app.logger.warning("CELERY_CONFIG is not valid JSON; ignoring value.", exc_info=True)
        return {}
    if not isinstance(parsed, dict):
        app.logger.warning("CELERY_CONFIG must decode to a JSON object; ignoring value.")
        return {}
    return parsed


def _worker_settings(app: Flask) -> dict[str, Any]:
    hard_limit = int(app.config.get("SYNC_TASK_TIME_LIMIT", 6 * 60 * 60))
    return {
        "task_default_queue": DEFAULT_QUEUE_NAME,
        "task_default_exchange": DEFAULT_QUEUE_NAME,
        "task_default_routing_key": DEFAULT_QUEUE_NAME,
        "task_queues": [Queue(DEFAULT_QUEUE_NAME)],
        "task_acks_late": True,
        "task_track_started": True,
        "task_time_limit": hard_limit,
        "task_soft_time_limit": max(60, hard_limit - 60),
        # One long-running sync per worker process at a time.
        "worker_prefetch_multiplier": 1,
        "worker_hijack_root_logger": False,
        "result_extended": True,
        "broker_connection_retry_on_startup": True,
    }


def create_celery_app(app: Flask) -> Celery:
    """Build a Celery instance whose tasks run inside ``app``'s context."""
    broker_url, result_backend = resolve_connection_urls(app)
    celery_app = Celery(app.import_name, broker=broker_url, backend=result_backend, include=TASK_MODULES)
    celery_app.conf.update(_worker_settings(app))

    overrides = _overrides_from_config(app)
    if overrides:
        celery_app.conf.update(overrides)
    app.logger.info(
        "Activity sync Celery configuration resolved",
        extra={
            "sync_celery_broker_url": broker_url,
            "sync_celery_result_backend": result_backend,
            "sync_celery_overrides": sorted(overrides),
        },
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    class FlaskContextTask(celery_app.Task):  # type: ignore[misc]
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return super().__call__(*args, **kwargs)

    celery_app.Task = FlaskContextTask  # type: ignore[assignment]
    celery_app.loader.import_default_modules()
    return celery_app


def ensure_celery_app(app: Flask, state: dict[str, Any]) -> Celery:
    """Create the Celery instance once and cache it in the extension state."""
    if state.get("celery_app") is None:
        state["celery_app"] = create_celery_app(app)
    return state["celery_app"]


def get_celery_app(app: Flask) -> Celery | None:
    """Return the cached Celery instance, or ``None`` when the sync is disabled."""
    state: dict[str, Any] | None = app.extensions.get(EXTENSION_KEY)
    if not state:
        return None
    if state.get("celery_app") is None and state.get("enabled"):
        return ensure_celery_app(app, state)
    return state.get("celery_app")
