"""Activity sync pipeline helpers."""

from __future__ import annotations

from .identity import AgentInfo, IdentityMap, build_identity_map
from .mapper import build_activity, compose_description, compose_subject, prepare_activity
from .normalize import add_minutes, normalize_agent_key, normalize_email, normalize_phone, normalize_timestamp
from .records import ActivityRecord, AgentReference, ContactReference, SourceRecord
from .report import (
    ProgressSnapshot,
    PurgeSummary,
    RunState,
    SyncReport,
    SyncStage,
    WriteRejection,
    WriteResult,
    format_report,
)
from .runner import ActivitySyncPipeline

__all__ = [
    "ActivityRecord",
    "ActivitySyncPipeline",
    "AgentInfo",
    "AgentReference",
    "ContactReference",
    "IdentityMap",
    "ProgressSnapshot",
    "PurgeSummary",
    "RunState",
    "SourceRecord",
    "SyncReport",
    "SyncStage",
    "WriteRejection",
    "WriteResult",
    "add_minutes",
    "build_activity",
    "build_identity_map",
    "compose_description",
    "compose_subject",
    "format_report",
    "normalize_agent_key",
    "normalize_email",
    "normalize_phone",
    "normalize_timestamp",
    "prepare_activity",
]
