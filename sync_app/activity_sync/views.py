"""
Activity sync blueprint: readiness, run submission and run status.
"""

from __future__ import annotations

import hmac
import math
from http import HTTPStatus

from celery.exceptions import TimeoutError as CeleryTimeoutError
from celery.result import AsyncResult
from flask import Blueprint, current_app, jsonify, request

from config.validation import validate_sync_settings
from sync_app.utils.activity_sync import is_activity_sync_enabled

from .adapters.salesforce import check_salesforce_adapter_readiness
from .celery_app import DEFAULT_QUEUE_NAME, get_celery_app
from .tasks import HEALTHCHECK_TASK_NAME, RUN_TASK_NAME

activity_sync_blueprint = Blueprint("activity_sync", __name__, url_prefix="/sync")


def _json_error(message: str, status: HTTPStatus):
    return jsonify({"error": message}), status


@activity_sync_blueprint.before_request
def _require_api_token():
    expected = current_app.config.get("SYNC_API_TOKEN")
    if not expected:
        return None
    header = request.headers.get("Authorization", "")
    scheme, _, provided = header.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(provided.strip(), str(expected)):
        return _json_error("Authentication required.", HTTPStatus.UNAUTHORIZED)
    return None


@activity_sync_blueprint.get("/health")
def activity_sync_health():
    """
    Report configuration and Salesforce adapter readiness without touching the network.
    """
    config = current_app.config
    config_errors = validate_sync_settings(config)
    readiness = check_salesforce_adapter_readiness(config)
    ready = not config_errors and readiness.status == "ready"
    return (
        jsonify(
            {
                "status": "ok" if ready else "degraded",
                "enabled": is_activity_sync_enabled(current_app),
                "config_errors": config_errors,
                "salesforce": readiness.as_dict(),
                "source_table": config.get("SUPABASE_SOURCE_TABLE"),
            }
        ),
        200,
    )


@activity_sync_blueprint.get("/worker_health")
def activity_sync_worker_health():
    """
    Validate worker availability via the heartbeat task.
    """
    try:
        timeout_seconds = float(request.args.get("timeout", 5))
    except ValueError:
        timeout_seconds = None
    if timeout_seconds is None or not math.isfinite(timeout_seconds) or timeout_seconds <= 0:
        return _json_error("'timeout' must be a positive number of seconds.", HTTPStatus.BAD_REQUEST)
    payload = {"queue": DEFAULT_QUEUE_NAME, "timeout_seconds": timeout_seconds}

    celery_app = get_celery_app(current_app)
    if celery_app is None:
        payload["status"] = "error"
        payload["error"] = "celery_app_unavailable"
        return jsonify(payload), 500

    task = celery_app.tasks.get(HEALTHCHECK_TASK_NAME)
    if task is None:
        payload["status"] = "error"
        payload["error"] = "heartbeat_task_missing"
        return jsonify(payload), 500

    result = task.apply_async()
    try:
        payload["heartbeat"] = result.get(timeout=timeout_seconds)
        payload["status"] = "ok"
        return jsonify(payload), 200
    except CeleryTimeoutError:
        payload["status"] = "timeout"
        return jsonify(payload), 504


@activity_sync_blueprint.post("/runs")
def activity_sync_submit_run():
    """Queue a full sync on the worker and return its task id."""

    config_errors = validate_sync_settings(current_app.config)
    if config_errors:
        return _json_error("; ".join(config_errors), HTTPStatus.SERVICE_UNAVAILABLE)

    celery_app = get_celery_app(current_app)
    if celery_app is None:
        return _json_error("Activity sync worker is not configured.", HTTPStatus.SERVICE_UNAVAILABLE)

    body = request.get_json(silent=True) or {}
    purge = body.get("purge", True)
    if not isinstance(purge, bool):
        return _json_error("'purge' must be a boolean.", HTTPStatus.BAD_REQUEST)

    async_result = celery_app.send_task(RUN_TASK_NAME, kwargs={"purge": purge})
    current_app.logger.info(
        "Activity sync run queued via API",
        extra={"sync_task_id": async_result.id, "sync_purge": purge},
    )
    return jsonify({"task_id": async_result.id, "status": "queued", "purge": purge}), HTTPStatus.ACCEPTED


@activity_sync_blueprint.get("/runs/<task_id>")
def activity_sync_run_status(task_id: str):
    """Return the task state plus its progress snapshot or final report."""

    celery_app = get_celery_app(current_app)
    if celery_app is None:
        return _json_error("Activity sync worker is not configured.", HTTPStatus.SERVICE_UNAVAILABLE)

    result = AsyncResult(task_id, app=celery_app)
    payload: dict[str, object] = {"task_id": task_id, "state": result.state}
    info = result.info
    if result.state == "PROGRESS" and isinstance(info, dict):
        payload["progress"] = info
    elif result.state == "SUCCESS" and isinstance(info, dict):
        payload["report"] = info
    elif result.state == "FAILURE":
        payload["error"] = str(info)
    return jsonify(payload), 200


__all__ = ["activity_sync_blueprint"]
