"""
Run counters, progress snapshots and the final sync summary.
"""

from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Sequence


class SyncStage(str, enum.Enum):
    IDLE = "idle"
    PURGING = "purging"
    LOADING_IDENTITIES = "loading_identities"
    SYNCING = "syncing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {SyncStage.COMPLETE, SyncStage.CANCELLED, SyncStage.FAILED}


@dataclass(frozen=True)
class WriteResult:
    """Per-record outcome reported by a composite sObjects call."""

    success: bool
    id: str | None = None
    errors: tuple[Any, ...] = ()

    @classmethod
    def from_payload(cls, payload: Any) -> "WriteResult":
        if not isinstance(payload, dict):
            return cls(success=False, errors=(payload,))
        errors = payload.get("errors") or ()
        return cls(success=bool(payload.get("success")), id=payload.get("id"), errors=tuple(errors))


@dataclass(frozen=True)
class WriteRejection:
    """A record the target store refused; kept as a diagnostic sample."""

    record_index: int
    subject: str | None
    errors: tuple[Any, ...]

    def as_dict(self) -> dict[str, Any]:
        return {"record_index": self.record_index, "subject": self.subject, "errors": list(self.errors)}


@dataclass(frozen=True)
class ProgressSnapshot:
    stage: SyncStage
    processed: int
    total: int
    created: int
    skipped: int
    errors: int
    offset: int

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return round(self.processed / self.total * 100, 1)

    def as_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "processed": self.processed,
            "total": self.total,
            "created": self.created,
            "skipped": self.skipped,
            "errors": self.errors,
            "offset": self.offset,
            "percent": self.percent,
        }


@dataclass
class RunState:
    """Mutable counters owned by a single pipeline invocation."""

    total_rows: int = 0
    processed: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0
    offset: int = 0
    pages: int = 0
    stage: SyncStage = SyncStage.IDLE
    error_sample_limit: int = 3
    error_samples: list[WriteRejection] = field(default_factory=list)
    skip_reasons: Counter[str] = field(default_factory=Counter)
    error: dict[str, Any] | None = None

    def record_skip(self, reason: str) -> None:
        self.skipped += 1
        self.skip_reasons[reason] += 1

    def record_page(self, rows_fetched: int) -> None:
        self.pages += 1
        self.processed += rows_fetched
        self.offset += rows_fetched
        # The reported total is only a hint; never let progress run past it.
        if self.processed > self.total_rows:
            self.total_rows = self.processed

    def fold_write_results(
        self,
        results: Sequence[WriteResult],
        *,
        subjects: Sequence[str | None] = (),
        submitted: int | None = None,
    ) -> list[WriteRejection]:
        """
        Apply allOrNone=false write results to the counters.

        Records the writer submitted but got no result for count as errors, so
        ``created + errors`` always equals the number submitted.
        """

        submitted = len(results) if submitted is None else submitted
        succeeded = sum(1 for result in results if result.success)
        self.created += succeeded
        self.errors += submitted - succeeded

        rejections: list[WriteRejection] = []
        for index, result in enumerate(results):
            if result.success:
                continue
            subject = subjects[index] if index < len(subjects) else None
            rejections.append(WriteRejection(record_index=index, subject=subject, errors=result.errors))
        room = max(0, self.error_sample_limit - len(self.error_samples))
        self.error_samples.extend(rejections[:room])
        return rejections

    def fold_failed_write(self, submitted: int, *, detail: dict[str, Any], subject: str | None = None) -> WriteRejection:
        """Count a whole batch the target store refused to accept as errors."""

        self.errors += submitted
        rejection = WriteRejection(record_index=0, subject=subject, errors=(detail,))
        if len(self.error_samples) < self.error_sample_limit:
            self.error_samples.append(rejection)
        return rejection

    @property
    def is_balanced(self) -> bool:
        return self.created + self.skipped + self.errors == self.processed

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            stage=self.stage,
            processed=self.processed,
            total=self.total_rows,
            created=self.created,
            skipped=self.skipped,
            errors=self.errors,
            offset=self.offset,
        )


@dataclass(frozen=True)
class PurgeSummary:
    deleted: int
    pages: int
    failures: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"deleted": self.deleted, "pages": self.pages, "failures": self.failures}


@dataclass(frozen=True)
class SyncReport:
    """Final outcome of a pipeline run, successful or not."""

    stage: SyncStage
    total_rows: int
    processed: int
    created: int
    skipped: int
    errors: int
    pages: int
    duration_seconds: float
    skip_reasons: dict[str, int]
    error_samples: tuple[WriteRejection, ...]
    purge: PurgeSummary | None = None
    identities: dict[str, int] | None = None
    error: dict[str, Any] | None = None

    @classmethod
    def from_state(
        cls,
        state: RunState,
        *,
        duration_seconds: float,
        purge: PurgeSummary | None = None,
        identities: dict[str, int] | None = None,
    ) -> "SyncReport":
        return cls(
            stage=state.stage,
            total_rows=state.total_rows,
            processed=state.processed,
            created=state.created,
            skipped=state.skipped,
            errors=state.errors,
            pages=state.pages,
            duration_seconds=round(duration_seconds, 3),
            skip_reasons=dict(state.skip_reasons),
            error_samples=tuple(state.error_samples),
            purge=purge,
            identities=identities,
            error=state.error,
        )

    @property
    def succeeded(self) -> bool:
        return self.stage == SyncStage.COMPLETE

    def as_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "total_rows": self.total_rows,
            "processed": self.processed,
            "created": self.created,
            "skipped": self.skipped,
            "errors": self.errors,
            "pages": self.pages,
            "duration_seconds": self.duration_seconds,
            "skip_reasons": dict(self.skip_reasons),
            "error_samples": [sample.as_dict() for sample in self.error_samples],
            "purge": self.purge.as_dict() if self.purge else None,
            "identities": dict(self.identities) if self.identities else None,
            "error": self.error,
        }


def format_report(report: SyncReport) -> str:
    """Render the summary block shown at the end of a CLI run."""

    reasons = report.skip_reasons
    reasons_display = ", ".join(f"{reason}={count}" for reason, count in sorted(reasons.items())) if reasons else "none"
    lines = [
        f"Activity sync finished with stage {report.stage.value}.",
        f"  processed      : {report.processed}",
        f"  created        : {report.created}",
        f"  skipped        : {report.skipped}",
        f"  errors         : {report.errors}",
        f"  total_rows     : {report.total_rows}",
        f"  pages          : {report.pages}",
        f"  skip_reasons   : {reasons_display}",
        f"  duration_secs  : {report.duration_seconds}",
    ]
    if report.purge is not None:
        lines.append(f"  purged         : {report.purge.deleted}")
    for sample in report.error_samples:
        lines.append(f"  rejected       : {sample.as_dict()}")
    if report.error:
        lines.append(f"  error          : {report.error.get('message')}")
        if report.error.get("body"):
            lines.append(f"  error_body     : {report.error['body']}")
    return "\n".join(lines)

