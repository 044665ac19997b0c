"""
Activity sync Celery tasks.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from celery import shared_task
from flask import current_app

from .errors import ConfigurationError
from .pipeline.report import ProgressSnapshot
from .service import build_pipeline

RUN_TASK_NAME = "activity_sync.run"
PURGE_TASK_NAME = "activity_sync.purge"
HEALTHCHECK_TASK_NAME = "activity_sync.healthcheck"
PROGRESS_STATE = "PROGRESS"


@shared_task(name=HEALTHCHECK_TASK_NAME, bind=True)
def activity_sync_healthcheck(self) -> dict[str, Any]:
    """
    Simple heartbeat task used by worker health checks.
    """
    now = datetime.now(timezone.utc)
    return {
        "status": "ok",
        "timestamp": now.isoformat(),
        "worker_hostname": self.request.hostname,
    }


@shared_task(name=RUN_TASK_NAME, bind=True)
def run_activity_sync(self, *, purge: bool = True) -> dict[str, Any]:
    """
    Execute a full sync, publishing every progress snapshot as task meta.

    Returns the report dict; a failed run is still a completed task whose
    report carries ``stage == "failed"`` and the error detail.
    """

    def publish(snapshot: ProgressSnapshot) -> None:
        self.update_state(state=PROGRESS_STATE, meta=snapshot.as_dict())

    try:
        pipeline = build_pipeline(current_app.config, progress=publish)
    except ConfigurationError:
        current_app.logger.exception("Activity sync task could not start")
        raise

    report = pipeline.run(purge=purge)
    current_app.logger.info(
        "Activity sync task finished",
        extra={
            "sync_task_id": self.request.id,
            "sync_stage": report.stage.value,
            "sync_processed": report.processed,
            "sync_created": report.created,
            "sync_skipped": report.skipped,
            "sync_errors": report.errors,
        },
    )
    return report.as_dict()


@shared_task(name=PURGE_TASK_NAME, bind=True)
def purge_synced_activities(self) -> dict[str, Any]:
    """Delete every previously synced Event without running a sync."""

    pipeline = build_pipeline(current_app.config)
    summary = pipeline.purge()
    current_app.logger.info(
        "Activity purge task finished",
        extra={"sync_task_id": self.request.id, "sync_purge_deleted": summary.deleted},
    )
    return summary.as_dict()
