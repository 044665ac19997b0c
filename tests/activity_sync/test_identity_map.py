from __future__ import annotations

from sync_app.activity_sync.pipeline import AgentReference, ContactReference, build_identity_map


def test_contact_lookup_prefers_email_over_phone():
    identity = build_identity_map(
        [
            ContactReference(id="003A", email="Jane@Example.org", phone="(555) 123-4567"),
            ContactReference(id="003B", email="other@example.org", mobile_phone="+1 555 999 0000"),
        ],
        [],
    )

    assert identity.resolve_contact("jane@example.org", "5559990000") == "003A"
    assert identity.resolve_contact("missing@example.org", "555-999-0000") == "003B"
    assert identity.resolve_contact(None, "+1 (555) 123-4567") == "003A"
    assert identity.resolve_contact(None, None) is None


def test_duplicate_keys_last_write_wins():
    identity = build_identity_map(
        [
            ContactReference(id="003A", email="shared@example.org", phone="5551234567"),
            ContactReference(id="003B", email="SHARED@example.org", phone="+1 555 123 4567"),
        ],
        [],
    )

    assert identity.emails == {"shared@example.org": "003B"}
    assert identity.phones == {"5551234567": "003B"}
    assert identity.contact_count == 2


def test_empty_keys_are_never_indexed():
    identity = build_identity_map([ContactReference(id="003A", email="", phone="", mobile_phone=None)], [])

    assert identity.emails == {}
    assert identity.phones == {}
    assert identity.resolve_contact("", "") is None


def test_agent_without_username_resolves_by_display_name():
    identity = build_identity_map([], [AgentReference(id="005J", name="Jane Doe", external_username=None)])

    agent = identity.resolve_agent("jane doe")
    assert agent is not None
    assert agent.agent_id == "005J"
    assert agent.display_name == "Jane Doe"
    assert identity.resolve_agent("JANE DOE") == agent


def test_agent_username_index_overwrites_but_name_index_does_not():
    identity = build_identity_map(
        [],
        [
            AgentReference(id="005A", name="Sam Lee", external_username="sam"),
            AgentReference(id="005B", name="Sam Lee", external_username="samuel"),
            AgentReference(id="005C", name="Other", external_username="SAM"),
        ],
    )

    assert identity.resolve_agent("sam").agent_id == "005C"
    assert identity.resolve_agent("samuel").agent_id == "005B"
    # First agent carrying the display name keeps it.
    assert identity.resolve_agent("sam lee").agent_id == "005A"
    assert identity.resolve_agent(None) is None
    assert identity.as_dict()["agents"] == 3
