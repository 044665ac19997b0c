from __future__ import annotations

import pytest

from sync_app.activity_sync.errors import MappingSkip
from sync_app.activity_sync.pipeline import (
    AgentInfo,
    SourceRecord,
    build_activity,
    compose_description,
    compose_subject,
    normalize_timestamp,
    prepare_activity,
)
from sync_app.activity_sync.pipeline.mapper import SUBJECT_MAX_LENGTH
from sync_app.activity_sync.settings import SyncSettings

AGENT = AgentInfo(agent_id="005AGENT", display_name="Agent Smith")


def _row(**overrides) -> SourceRecord:
    values = {
        "id": 1,
        "contact_email": "jane@example.org",
        "first_name": "Jane",
        "last_name": "Doe",
        "interaction_type": "call",
        "direction": "inbound",
        "started_at": "2023-05-01 14:30:00",
    }
    values.update(overrides)
    return SourceRecord(**values)


def test_compose_subject_for_call_with_agent():
    assert compose_subject(_row(), AGENT) == "Inbound Call - Jane Doe | Agent Smith"


def test_compose_subject_for_sms_without_names_or_agent():
    row = _row(interaction_type="sms", direction="outbound", first_name=None, last_name=None)
    assert compose_subject(row, None) == "Outbound SMS - Unknown"


def test_compose_subject_is_truncated():
    subject = compose_subject(_row(first_name="J" * 400), AGENT)
    assert len(subject) == SUBJECT_MAX_LENGTH


def test_compose_description_joins_present_parts():
    row = _row(body="Hello", notes="Left message", recording=None, voicemail="https://vm.example/1")
    assert compose_description(row) == "Hello\nLeft message\nhttps://vm.example/1"
    assert compose_description(_row()) is None


def test_build_activity_requires_contact():
    assert build_activity(_row(), None, AGENT) is None
    assert build_activity(_row(), "", None) is None


def test_prepare_activity_reports_skip_reason():
    with pytest.raises(MappingSkip) as unmatched:
        prepare_activity(_row(), None, AGENT, settings=SyncSettings())
    assert unmatched.value.reason == MappingSkip.UNMATCHED_CONTACT

    with pytest.raises(MappingSkip) as bad_time:
        prepare_activity(_row(started_at="yesterday"), "003A", AGENT, settings=SyncSettings())
    assert bad_time.value.reason == MappingSkip.INVALID_TIMESTAMP


def test_end_time_past_the_last_supported_year_is_skipped():
    with pytest.raises(MappingSkip) as overflow:
        prepare_activity(_row(started_at="9999-12-31 23:50:00"), "003A", AGENT, settings=SyncSettings())
    assert overflow.value.reason == MappingSkip.INVALID_TIMESTAMP

    record = build_activity(_row(started_at="0999-01-01 10:00:00"), "003A", AGENT)
    assert record.start == "0999-01-01T10:00:00.000+0000"
    assert record.end == "0999-01-01T10:15:00.000+0000"


def test_end_is_fifteen_minutes_after_start():
    row = _row()
    record = build_activity(row, "003A", AGENT)

    assert record.start == normalize_timestamp(row.started_at)
    assert record.start == "2023-05-01T14:30:00.000+0000"
    assert record.end == "2023-05-01T14:45:00.000+0000"


def test_activity_duration_and_owner_are_configurable():
    settings = SyncSettings(activity_duration_minutes=30, default_owner_id="005OWNER")
    record = build_activity(_row(), "003A", None, settings=settings)

    assert record.end == "2023-05-01T15:00:00.000+0000"
    assert record.owner_id == "005OWNER"
    assert record.agent_id is None


def test_to_salesforce_payload():
    row = _row(call_disposition="Connected", disposition_status="Done", body="Hi")
    payload = build_activity(row, "003A", AGENT).to_salesforce()

    assert payload["attributes"] == {"type": "Event"}
    assert payload["WhoId"] == "003A"
    assert payload["Subject"] == "Inbound Call - Jane Doe | Agent Smith"
    assert payload["StartDateTime"] == "2023-05-01T14:30:00.000+0000"
    assert payload["EndDateTime"] == "2023-05-01T14:45:00.000+0000"
    assert payload["Original_Activity_Date__c"] == payload["StartDateTime"]
    assert payload["CreatedDate"] == payload["StartDateTime"]
    assert payload["LastModifiedDate"] == payload["StartDateTime"]
    assert payload["OwnerId"] == "005a500001mkMsbAAE"
    assert payload["Aloware_Agent__c"] == "005AGENT"
    assert payload["Description"] == "Hi"
    assert payload["aloware__Call_Direction__c"] == "inbound"
    assert payload["aloware__Call_Disposition__c"] == "Connected"
    assert payload["aloware__Disposition_Status__c"] == "Done"


def test_source_record_from_staging_row():
    record = SourceRecord.from_row(
        {
            "id": "42",
            "Contact Number": "+1 555 123 4567",
            "Email": "",
            "Contact First Name": "Jane",
            "Type": "sms",
            "Direction": "outbound",
            "Started At": "2023-05-01 14:30:00",
            "User": "agent.smith",
        }
    )

    assert record.id == 42
    assert record.contact_phone == "+1 555 123 4567"
    assert record.contact_email is None
    assert record.interaction_type == "sms"
    assert record.agent_username == "agent.smith"
    assert record.last_name is None
