from __future__ import annotations

import pytest
import requests

from sync_app.activity_sync.adapters.supabase import SupabaseSourceFeed, parse_content_range
from sync_app.activity_sync.errors import TransportError


class FakeResponse:
    def __init__(self, *, status_code=200, json_data=None, text: str = "", headers=None):
        self.status_code = status_code
        self._json_data = json_data
        self.text = text
        self.headers = headers or {}
        self.ok = status_code < 400

    def json(self):
        return self._json_data


class FakeSession:
    def __init__(self, responses):
        self.get_calls = []
        self.responses = list(responses)

    def get(self, url, params=None, headers=None, timeout=None):
        self.get_calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _feed(session, **kwargs):
    return SupabaseSourceFeed(
        base_url="https://staging.supabase.test/",
        api_key="anon-key",
        session=session,
        timeout=5.0,
        **kwargs,
    )


@pytest.mark.parametrize(
    ("header", "expected"),
    [("0-199/1234", 1234), ("*/0", 0), ("0-0/*", None), (None, None), ("", None)],
)
def test_parse_content_range(header, expected):
    assert parse_content_range(header) == expected


def test_fetch_page_orders_by_id_and_maps_rows():
    session = FakeSession(
        [
            FakeResponse(
                json_data=[
                    {"id": 7, "Email": "a@example.org", "Started At": "2023-05-01 14:30:00", "User": "sam"},
                    {"id": 8, "Contact Number": "5551234567", "Type": "sms"},
                ]
            )
        ]
    )
    feed = _feed(session, table="aloware_import")

    rows = feed.fetch_page(200, 100)

    assert [row.id for row in rows] == [7, 8]
    assert rows[0].contact_email == "a@example.org"
    assert rows[0].agent_username == "sam"
    assert rows[1].interaction_type == "sms"
    call = session.get_calls[0]
    assert call["url"] == "https://staging.supabase.test/rest/v1/aloware_import"
    assert call["params"] == {"select": "*", "order": "id.asc", "offset": "200", "limit": "100"}
    assert call["headers"]["apikey"] == "anon-key"
    assert call["headers"]["Authorization"] == "Bearer anon-key"
    assert call["timeout"] == 5.0


def test_fetch_page_returns_empty_list_at_end():
    feed = _feed(FakeSession([FakeResponse(json_data=[])]))
    assert feed.fetch_page(400, 200) == []


def test_count_reads_exact_total():
    session = FakeSession([FakeResponse(json_data=[{"id": 1}], headers={"Content-Range": "0-0/5321"})])
    feed = _feed(session)

    assert feed.count() == 5321
    assert session.get_calls[0]["headers"]["Prefer"] == "count=exact"


def test_count_without_total_is_a_transport_error():
    feed = _feed(FakeSession([FakeResponse(json_data=[], headers={})]))
    with pytest.raises(TransportError):
        feed.count()


def test_error_status_carries_body():
    session = FakeSession([FakeResponse(status_code=404, text='{"message":"relation does not exist"}')])
    feed = _feed(session, table="missing_table")

    with pytest.raises(TransportError) as excinfo:
        feed.fetch_page(0, 200)

    assert excinfo.value.source == "supabase"
    assert excinfo.value.status_code == 404
    assert "relation does not exist" in excinfo.value.body


def test_request_exceptions_are_wrapped():
    feed = _feed(FakeSession([requests.Timeout("read timed out")]))
    with pytest.raises(TransportError, match="read timed out"):
        feed.fetch_page(0, 200)
