"""Prometheus metrics helpers for the activity sync."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Histogram

_salesforce_auth_attempts = Counter(
    "activity_sync_salesforce_auth_attempts_total",
    "Salesforce authentication attempts by outcome.",
    ["outcome"],
)
_page_counter = Counter(
    "activity_sync_pages_total",
    "Number of source pages processed by status.",
    ["status"],
)
_row_counter = Counter(
    "activity_sync_rows_total",
    "Source rows by sync outcome.",
    ["outcome"],
)
_write_duration = Histogram(
    "activity_sync_write_duration_seconds",
    "Duration of Salesforce composite writes in seconds.",
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)
_purged_counter = Counter(
    "activity_sync_purged_records_total",
    "Previously synced Salesforce events deleted before a run.",
)


def record_salesforce_auth_attempt(outcome: Literal["success", "failure"]) -> None:
    """Increment the Salesforce authentication counter."""

    _salesforce_auth_attempts.labels(outcome=outcome).inc()


def record_sync_page(*, status: Literal["success", "failure"]) -> None:
    _page_counter.labels(status=status).inc()


def record_sync_rows(*, created: int, skipped: int, errors: int) -> None:
    """Add one page worth of row outcomes."""

    for outcome, count in (("created", created), ("skipped", skipped), ("errors", errors)):
        if count:
            _row_counter.labels(outcome=outcome).inc(count)


def record_write_duration(duration_seconds: float) -> None:
    _write_duration.observe(duration_seconds)


def record_purged(count: int) -> None:
    if count:
        _purged_counter.inc(count)
