"""
Value objects exchanged between the feeds, the mapper and the writer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

# Staging table column names (Aloware export headers).
COLUMN_ID = "id"
COLUMN_PHONE = "Contact Number"
COLUMN_EMAIL = "Email"
COLUMN_FIRST_NAME = "Contact First Name"
COLUMN_LAST_NAME = "Contact Last Name"
COLUMN_TYPE = "Type"
COLUMN_DIRECTION = "Direction"
COLUMN_STARTED_AT = "Started At"
COLUMN_BODY = "Body"
COLUMN_NOTES = "Notes"
COLUMN_RECORDING = "Recording"
COLUMN_VOICEMAIL = "Voicemail"
COLUMN_CALL_DISPOSITION = "Call Disposition"
COLUMN_DISPOSITION_STATUS = "Disposition Status"
COLUMN_AGENT = "User"


def _text(row: Mapping[str, Any], column: str) -> str | None:
    value = row.get(column)
    if value is None:
        return None
    value = str(value)
    return value or None


@dataclass(frozen=True)
class SourceRecord:
    """One imported call/SMS row from the staging table."""

    id: int | None
    contact_phone: str | None = None
    contact_email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    interaction_type: str | None = None
    direction: str | None = None
    started_at: str | None = None
    body: str | None = None
    notes: str | None = None
    recording: str | None = None
    voicemail: str | None = None
    call_disposition: str | None = None
    disposition_status: str | None = None
    agent_username: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SourceRecord":
        raw_id = row.get(COLUMN_ID)
        try:
            record_id = int(raw_id) if raw_id is not None else None
        except (TypeError, ValueError):
            record_id = None
        return cls(
            id=record_id,
            contact_phone=_text(row, COLUMN_PHONE),
            contact_email=_text(row, COLUMN_EMAIL),
            first_name=_text(row, COLUMN_FIRST_NAME),
            last_name=_text(row, COLUMN_LAST_NAME),
            interaction_type=_text(row, COLUMN_TYPE),
            direction=_text(row, COLUMN_DIRECTION),
            started_at=_text(row, COLUMN_STARTED_AT),
            body=_text(row, COLUMN_BODY),
            notes=_text(row, COLUMN_NOTES),
            recording=_text(row, COLUMN_RECORDING),
            voicemail=_text(row, COLUMN_VOICEMAIL),
            call_disposition=_text(row, COLUMN_CALL_DISPOSITION),
            disposition_status=_text(row, COLUMN_DISPOSITION_STATUS),
            agent_username=_text(row, COLUMN_AGENT),
        )


@dataclass(frozen=True)
class ContactReference:
    id: str
    email: str | None = None
    phone: str | None = None
    mobile_phone: str | None = None


@dataclass(frozen=True)
class AgentReference:
    id: str
    name: str | None = None
    external_username: str | None = None


@dataclass(frozen=True)
class ActivityRecord:
    """A Salesforce Event derived from one source row."""

    subject: str
    contact_id: str
    start: str
    end: str
    owner_id: str
    agent_id: str | None = None
    description: str | None = None
    call_direction: str | None = None
    call_disposition: str | None = None
    disposition_status: str | None = None
    marker_field: str = "Original_Activity_Date__c"
    agent_relation_field: str = "Aloware_Agent__c"

    def to_salesforce(self) -> dict[str, Any]:
        """Serialize into a composite sObjects record payload."""

        payload: dict[str, Any] = {
            "attributes": {"type": "Event"},
            "Subject": self.subject,
            "WhoId": self.contact_id,
            "StartDateTime": self.start,
            "EndDateTime": self.end,
            "Description": self.description,
            self.marker_field: self.start,
            "OwnerId": self.owner_id,
            # Audit fields follow the original interaction time, not the sync time.
            "CreatedDate": self.start,
            "LastModifiedDate": self.start,
            "aloware__Call_Direction__c": self.call_direction,
            "aloware__Call_Disposition__c": self.call_disposition,
            "aloware__Disposition_Status__c": self.disposition_status,
            self.agent_relation_field: self.agent_id,
        }
        return payload
