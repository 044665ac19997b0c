from __future__ import annotations

from typing import Callable, Sequence

import pytest

from sync_app.activity_sync.errors import TransportError
from sync_app.activity_sync.pipeline import (
    ActivityRecord,
    ActivitySyncPipeline,
    AgentReference,
    ContactReference,
    SourceRecord,
    WriteResult,
)
from sync_app.activity_sync.settings import SyncSettings


class FakeSourceFeed:
    def __init__(self, rows: Sequence[SourceRecord], *, total: int | None = None, fail_at_offset: int | None = None):
        self.rows = list(rows)
        self.total = len(self.rows) if total is None else total
        self.fail_at_offset = fail_at_offset
        self.fetches: list[tuple[int, int]] = []

    def fetch_page(self, offset: int, limit: int) -> list[SourceRecord]:
        self.fetches.append((offset, limit))
        if self.fail_at_offset is not None and offset >= self.fail_at_offset:
            raise TransportError("Supabase returned 503", source="supabase", status_code=503, body="unavailable")
        return self.rows[offset : offset + limit]

    def count(self) -> int:
        return self.total


class FakeReferenceFeed:
    def __init__(self, contacts: Sequence[ContactReference] = (), agents: Sequence[AgentReference] = ()):
        self.contacts = list(contacts)
        self.agents = list(agents)

    def list_contacts(self) -> list[ContactReference]:
        return list(self.contacts)

    def list_agents(self) -> list[AgentReference]:
        return list(self.agents)


class FakeActivityWriter:
    """In-memory Event store honouring allOrNone=false semantics."""

    def __init__(
        self,
        *,
        reject: Callable[[ActivityRecord], bool] | None = None,
        undeletable: Sequence[str] = (),
        existing: int = 0,
        refused_batches: int = 0,
    ):
        self.reject = reject or (lambda record: False)
        self.refused_batches = refused_batches
        self.undeletable = set(undeletable)
        self.events: dict[str, ActivityRecord | None] = {}
        self.create_calls: list[list[ActivityRecord]] = []
        self.delete_calls: list[list[str]] = []
        self._next_id = 0
        for _ in range(existing):
            self.events[self._new_id()] = None

    def _new_id(self) -> str:
        self._next_id += 1
        return f"00U{self._next_id:015d}"

    def bulk_create(self, records: Sequence[ActivityRecord]) -> list[WriteResult]:
        self.create_calls.append(list(records))
        if self.refused_batches:
            self.refused_batches -= 1
            raise TransportError(
                "Salesforce POST returned 503", source="salesforce", status_code=503, body="Service Unavailable"
            )
        results = []
        for record in records:
            if self.reject(record):
                results.append(
                    WriteResult(
                        success=False,
                        errors=({"statusCode": "FIELD_CUSTOM_VALIDATION_EXCEPTION", "message": "rejected"},),
                    )
                )
                continue
            event_id = self._new_id()
            self.events[event_id] = record
            results.append(WriteResult(success=True, id=event_id))
        return results

    def query_marked_ids(self, page_size: int) -> list[str]:
        return list(self.events)[:page_size]

    def bulk_delete(self, ids: Sequence[str]) -> list[WriteResult]:
        self.delete_calls.append(list(ids))
        results = []
        for event_id in ids:
            if event_id in self.undeletable:
                results.append(WriteResult(success=False, id=event_id, errors=({"statusCode": "ENTITY_IS_LOCKED"},)))
                continue
            self.events.pop(event_id, None)
            results.append(WriteResult(success=True, id=event_id))
        return results


def make_row(row_id: int, **overrides) -> SourceRecord:
    values = {
        "id": row_id,
        "contact_email": f"contact{row_id}@example.org",
        "first_name": "Jane",
        "last_name": "Doe",
        "interaction_type": "call",
        "direction": "inbound",
        "started_at": "2023-05-01 14:30:00",
        "agent_username": "agent.smith",
    }
    values.update(overrides)
    return SourceRecord(**values)


@pytest.fixture
def sync_settings() -> SyncSettings:
    return SyncSettings(page_size=2, purge_page_size=2, inter_batch_delay=0.0, progress_log_every=2)


@pytest.fixture
def pipeline_factory(sync_settings):
    def _factory(*, source, reference=None, writer=None, settings=None, progress=None, sleep_fn=None):
        return ActivitySyncPipeline(
            source=source,
            reference=reference or FakeReferenceFeed(),
            writer=writer or FakeActivityWriter(),
            settings=settings or sync_settings,
            progress=progress,
            sleep_fn=sleep_fn or (lambda _seconds: None),
        )

    return _factory


@pytest.fixture
def fakes():
    """Expose the fake feed classes to tests without a shared helper module."""

    class _Fakes:
        SourceFeed = FakeSourceFeed
        ReferenceFeed = FakeReferenceFeed
        ActivityWriter = FakeActivityWriter
        row = staticmethod(make_row)

    return _Fakes
