"""
Activity sync pipeline: purge, load identities, then page through the staging
table writing Salesforce Events.

Stages run strictly in order on one thread. Within the syncing stage each page's
fetch, map and write finishes before the stop signal is checked again, so the
counters stay consistent at every page boundary.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Protocol, Sequence

from .. import metrics
from ..errors import ActivitySyncError, MappingSkip, PurgeStalledError, TransportError
from ..settings import SyncSettings
from .identity import IdentityMap, build_identity_map
from .mapper import prepare_activity
from .records import ActivityRecord, AgentReference, ContactReference, SourceRecord
from .report import ProgressSnapshot, PurgeSummary, RunState, SyncReport, SyncStage, WriteResult

ProgressSink = Callable[[ProgressSnapshot], None]
StopSignal = Callable[[], bool]


class SourceFeed(Protocol):
    def fetch_page(self, offset: int, limit: int) -> list[SourceRecord]: ...

    def count(self) -> int: ...


class ReferenceFeed(Protocol):
    def list_contacts(self) -> list[ContactReference]: ...

    def list_agents(self) -> list[AgentReference]: ...


class TargetWriter(Protocol):
    def bulk_create(self, records: Sequence[ActivityRecord]) -> list[WriteResult]: ...

    def query_marked_ids(self, page_size: int) -> list[str]: ...

    def bulk_delete(self, ids: Sequence[str]) -> list[WriteResult]: ...


class ActivitySyncPipeline:
    """Reconcile staging activity rows into Salesforce Events."""

    def __init__(
        self,
        *,
        source: SourceFeed,
        reference: ReferenceFeed,
        writer: TargetWriter,
        settings: SyncSettings | None = None,
        progress: ProgressSink | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.source = source
        self.reference = reference
        self.writer = writer
        self.settings = settings or SyncSettings()
        self.progress = progress
        self.sleep = sleep_fn
        self.logger = logger or logging.getLogger(__name__)

    # Public API -----------------------------------------------------------------

    def run(self, *, purge: bool = True, should_stop: StopSignal | None = None) -> SyncReport:
        """
        Execute every stage and return the report.

        Transport failures and stalled purges end the run in the ``failed`` stage;
        the report then carries the counters gathered so far and the raw error.
        """

        started = time.perf_counter()
        state = RunState(error_sample_limit=self.settings.error_sample_limit)
        purge_summary: PurgeSummary | None = None
        identity: IdentityMap | None = None

        try:
            if purge:
                state.stage = SyncStage.PURGING
                purge_summary = self.purge()
                self._emit(state)

            state.stage = SyncStage.LOADING_IDENTITIES
            identity = self.load_identities()
            self._emit(state)

            self.sync(identity, state=state, should_stop=should_stop)
        except ActivitySyncError as exc:
            failed_stage = state.stage
            state.stage = SyncStage.FAILED
            state.error = _describe_error(exc, failed_stage)
            self.logger.error(
                "Activity sync failed during %s: %s",
                failed_stage.value,
                exc,
                extra={
                    "sync_stage": failed_stage.value,
                    "sync_processed": state.processed,
                    "sync_created": state.created,
                    "sync_skipped": state.skipped,
                    "sync_errors": state.errors,
                },
            )
            self._emit(state)

        return SyncReport.from_state(
            state,
            duration_seconds=time.perf_counter() - started,
            purge=purge_summary,
            identities=identity.as_dict() if identity is not None else None,
        )

    def purge(self) -> PurgeSummary:
        """Delete every Event carrying the marker field, one page at a time."""

        deleted = 0
        pages = 0
        failures = 0
        self.logger.info("Purging previously synced events", extra={"sync_stage": SyncStage.PURGING.value})
        while True:
            ids = self.writer.query_marked_ids(self.settings.purge_page_size)
            if not ids:
                break
            pages += 1
            results = self.writer.bulk_delete(ids)
            page_deleted = sum(1 for result in results if result.success)
            page_failures = [list(result.errors) for result in results if not result.success]
            deleted += page_deleted
            failures += len(ids) - page_deleted
            metrics.record_purged(page_deleted)
            if page_deleted == 0:
                raise PurgeStalledError(
                    f"Purge made no progress: {len(ids)} marked events could not be deleted",
                    failures=page_failures[: self.settings.error_sample_limit],
                )
            self.logger.debug(
                "Purge page deleted",
                extra={"sync_purge_page": pages, "sync_purge_deleted": page_deleted},
            )

        summary = PurgeSummary(deleted=deleted, pages=pages, failures=failures)
        self.logger.info("Deleted %s events", deleted, extra={"sync_purge_deleted": deleted, "sync_purge_pages": pages})
        return summary

    def load_identities(self) -> IdentityMap:
        """Materialize both reference feeds, then build the lookup tables."""

        self.logger.info(
            "Loading Salesforce contacts and agents",
            extra={"sync_stage": SyncStage.LOADING_IDENTITIES.value},
        )
        contacts = self.reference.list_contacts()
        agents = self.reference.list_agents()
        identity = build_identity_map(contacts, agents)
        self.logger.info(
            "Loaded %s contacts and %s agents",
            identity.contact_count,
            identity.agent_count,
            extra={f"sync_identity_{key}": value for key, value in identity.as_dict().items()},
        )
        return identity

    def sync(
        self,
        identity: IdentityMap,
        *,
        state: RunState | None = None,
        should_stop: StopSignal | None = None,
    ) -> RunState:
        """Page through the source until an empty page, writing one batch per page."""

        state = state or RunState(error_sample_limit=self.settings.error_sample_limit)
        state.stage = SyncStage.SYNCING
        state.total_rows = max(state.total_rows, self.source.count())
        self.logger.info(
            "Records to sync: %s",
            state.total_rows,
            extra={"sync_stage": state.stage.value, "sync_total_rows": state.total_rows},
        )
        self._emit(state)

        while True:
            if should_stop is not None and should_stop():
                state.stage = SyncStage.CANCELLED
                self.logger.warning(
                    "Activity sync stopped at offset %s",
                    state.offset,
                    extra={"sync_offset": state.offset, "sync_processed": state.processed},
                )
                self._emit(state)
                return state

            try:
                rows = self.source.fetch_page(state.offset, self.settings.page_size)
            except ActivitySyncError:
                metrics.record_sync_page(status="failure")
                raise
            if not rows:
                break
            self._sync_page(rows, identity, state)
            metrics.record_sync_page(status="success")
            self._emit(state)
            if self.settings.inter_batch_delay > 0:
                self.sleep(self.settings.inter_batch_delay)

        state.stage = SyncStage.COMPLETE
        self.logger.info(
            "Activity sync complete: processed=%s created=%s skipped=%s errors=%s",
            state.processed,
            state.created,
            state.skipped,
            state.errors,
            extra={
                "sync_stage": state.stage.value,
                "sync_processed": state.processed,
                "sync_created": state.created,
                "sync_skipped": state.skipped,
                "sync_errors": state.errors,
            },
        )
        self._emit(state)
        return state

    # Internal helpers -----------------------------------------------------------

    def _sync_page(self, rows: Sequence[SourceRecord], identity: IdentityMap, state: RunState) -> None:
        pending: list[ActivityRecord] = []
        created_before, skipped_before, errors_before = state.created, state.skipped, state.errors
        previous_processed = state.processed

        for row in rows:
            contact_id = identity.resolve_contact(row.contact_email, row.contact_phone)
            agent = identity.resolve_agent(row.agent_username)
            try:
                pending.append(prepare_activity(row, contact_id, agent, settings=self.settings))
            except MappingSkip as skip:
                state.record_skip(skip.reason)

        if pending:
            write_started = time.perf_counter()
            try:
                results = self.writer.bulk_create(pending)
            except TransportError as exc:
                # The batch as a whole was refused; every pending record is an error.
                metrics.record_write_duration(time.perf_counter() - write_started)
                state.fold_failed_write(len(pending), detail=exc.as_dict(), subject=pending[0].subject)
                self.logger.error(
                    "Salesforce refused a batch of %s events: %s",
                    len(pending),
                    exc,
                    extra={"sync_offset": state.offset, "sync_status_code": exc.status_code, "sync_body": exc.body},
                )
                rejections = []
            else:
                metrics.record_write_duration(time.perf_counter() - write_started)
                rejections = state.fold_write_results(
                    results,
                    subjects=[record.subject for record in pending],
                    submitted=len(pending),
                )
            if rejections:
                self.logger.warning(
                    "Salesforce rejected %s of %s events",
                    len(rejections),
                    len(pending),
                    extra={"sync_offset": state.offset, "sync_first_rejection": rejections[0].as_dict()},
                )

        state.record_page(len(rows))
        metrics.record_sync_rows(
            created=state.created - created_before,
            skipped=state.skipped - skipped_before,
            errors=state.errors - errors_before,
        )
        self.logger.debug(
            "Synced page",
            extra={"sync_page": state.pages, "sync_rows": len(rows), "sync_written": len(pending)},
        )
        every = self.settings.progress_log_every
        if state.processed // every > previous_processed // every:
            self.logger.info(
                "Progress: %s processed, %s created",
                state.processed,
                state.created,
                extra={"sync_processed": state.processed, "sync_created": state.created},
            )

    def _emit(self, state: RunState) -> None:
        if self.progress is not None:
            self.progress(state.snapshot())


def _describe_error(exc: ActivitySyncError, stage: SyncStage) -> dict[str, object]:
    as_dict = getattr(exc, "as_dict", None)
    payload = as_dict() if callable(as_dict) else {"type": type(exc).__name__, "message": str(exc)}
    payload["stage"] = stage.value
    return payload
