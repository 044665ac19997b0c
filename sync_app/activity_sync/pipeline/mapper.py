"""
Turn one staging row plus its resolved identities into a Salesforce Event.
"""

from __future__ import annotations

from ..errors import MappingSkip
from ..settings import SyncSettings
from .identity import AgentInfo
from .normalize import add_minutes, normalize_timestamp
from .records import ActivityRecord, SourceRecord

SUBJECT_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 32000
DISPOSITION_MAX_LENGTH = 255
UNKNOWN_CONTACT_NAME = "Unknown"


def compose_subject(row: SourceRecord, agent: AgentInfo | None) -> str:
    direction = row.direction or ""
    subject = direction[:1].upper() + direction[1:] + " "
    subject += "SMS" if (row.interaction_type or "call") == "sms" else "Call"
    name = f"{row.first_name or ''} {row.last_name or ''}".strip() or UNKNOWN_CONTACT_NAME
    subject += " - " + name
    if agent is not None and agent.display_name:
        subject += " | " + agent.display_name
    return subject[:SUBJECT_MAX_LENGTH]


def compose_description(row: SourceRecord) -> str | None:
    parts = [part for part in (row.body, row.notes, row.recording, row.voicemail) if part]
    description = "\n".join(parts)
    if not description:
        return None
    return description[:DESCRIPTION_MAX_LENGTH]


def prepare_activity(
    row: SourceRecord,
    contact_id: str | None,
    agent: AgentInfo | None,
    *,
    settings: SyncSettings,
) -> ActivityRecord:
    """Build the Event for ``row`` or raise ``MappingSkip`` explaining why not."""

    if not contact_id:
        raise MappingSkip(MappingSkip.UNMATCHED_CONTACT)
    start = normalize_timestamp(row.started_at)
    if start is None:
        raise MappingSkip(MappingSkip.INVALID_TIMESTAMP)
    try:
        end = add_minutes(start, settings.activity_duration_minutes)
    except (ValueError, OverflowError) as exc:
        raise MappingSkip(MappingSkip.INVALID_TIMESTAMP) from exc

    disposition = row.call_disposition[:DISPOSITION_MAX_LENGTH] if row.call_disposition else None
    return ActivityRecord(
        subject=compose_subject(row, agent),
        contact_id=contact_id,
        start=start,
        end=end,
        owner_id=settings.default_owner_id,
        agent_id=agent.agent_id if agent is not None else None,
        description=compose_description(row),
        call_direction=row.direction,
        call_disposition=disposition,
        disposition_status=row.disposition_status,
        marker_field=settings.marker_field,
        agent_relation_field=settings.agent_relation_field,
    )


def build_activity(
    row: SourceRecord,
    contact_id: str | None,
    agent: AgentInfo | None,
    *,
    settings: SyncSettings | None = None,
) -> ActivityRecord | None:
    """Return the Event for ``row``, or ``None`` when the row must be skipped."""

    try:
        return prepare_activity(row, contact_id, agent, settings=settings or SyncSettings())
    except MappingSkip:
        return None
