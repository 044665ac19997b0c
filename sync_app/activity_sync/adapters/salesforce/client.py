"""
Salesforce REST adapters for the activity sync.

Reads contacts and agents with paginated SOQL queries, writes Events through the
composite sObjects endpoint, and finds/deletes previously synced Events by the
marker field. All calls go through the simple-salesforce client's session.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, List, Mapping, Sequence, TypeVar

import requests

from sync_app.activity_sync.errors import TransportError
from sync_app.activity_sync.pipeline.records import ActivityRecord, AgentReference, ContactReference
from sync_app.activity_sync.pipeline.report import WriteResult

DEFAULT_API_VERSION = "v59.0"
COMPOSITE_BATCH_LIMIT = 200
SOURCE_NAME = "salesforce"

T = TypeVar("T")


def build_contacts_soql() -> str:
    return "SELECT Id, Email, Phone, MobilePhone FROM Contact"


def build_agents_soql(*, agent_object: str = "User", username_field: str = "Aloware_Username__c") -> str:
    return f"SELECT Id, Name, {username_field} FROM {agent_object}"


def build_marked_events_soql(*, marker_field: str, limit: int) -> str:
    """SOQL selecting one page of Events this sync created earlier."""

    return f"SELECT Id FROM Event WHERE {marker_field} != null LIMIT {int(limit)}"


def chunk_records(records: Iterable[T], chunk_size: int) -> Iterator[List[T]]:
    """Utility to group iterable of records into lists of `chunk_size`."""

    chunk: List[T] = []
    for record in records:
        chunk.append(record)
        if len(chunk) == chunk_size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk


class _SalesforceRestBase:
    def __init__(
        self,
        *,
        client,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.session: requests.Session = getattr(client, "session")
        self.api_version = api_version if api_version.startswith("v") else f"v{api_version}"
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.instance_url = f"https://{client.sf_instance}"
        self._auth_headers = {
            "Authorization": f"Bearer {client.session_id}",
            "Sforce-Call-Options": "client=activity-sync",
        }

    @property
    def _data_url(self) -> str:
        return f"{self.instance_url}/services/data/{self.api_version}"

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        headers = {**self._auth_headers, **kwargs.pop("headers", {})}
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(f"Salesforce request failed: {exc}", source=SOURCE_NAME) from exc
        if not response.ok:
            self.logger.error(
                "Salesforce %s %s failed with status %s",
                method,
                url,
                response.status_code,
                extra={"sync_status_code": response.status_code, "sync_response_body": response.text},
            )
            raise TransportError(
                f"Salesforce {method} returned {response.status_code}",
                source=SOURCE_NAME,
                status_code=response.status_code,
                body=response.text,
            )
        if not response.text:
            return None
        return response.json()

    def _query_all(self, soql: str) -> Iterator[Mapping[str, Any]]:
        """Run ``soql`` and follow ``nextRecordsUrl`` until the result set is exhausted."""

        payload = self._request("GET", f"{self._data_url}/query", params={"q": soql}) or {}
        while True:
            yield from payload.get("records") or []
            next_url = payload.get("nextRecordsUrl")
            if payload.get("done", True) or not next_url:
                break
            payload = self._request("GET", f"{self.instance_url}{next_url}") or {}


class SalesforceReferenceFeed(_SalesforceRestBase):
    """Materialize the contact and agent reference lists."""

    def __init__(
        self,
        *,
        client,
        api_version: str = DEFAULT_API_VERSION,
        agent_object: str = "User",
        agent_username_field: str = "Aloware_Username__c",
        timeout: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(client=client, api_version=api_version, timeout=timeout, logger=logger)
        self.agent_object = agent_object
        self.agent_username_field = agent_username_field

    def list_contacts(self) -> list[ContactReference]:
        return [
            ContactReference(
                id=record["Id"],
                email=record.get("Email"),
                phone=record.get("Phone"),
                mobile_phone=record.get("MobilePhone"),
            )
            for record in self._query_all(build_contacts_soql())
        ]

    def list_agents(self) -> list[AgentReference]:
        soql = build_agents_soql(agent_object=self.agent_object, username_field=self.agent_username_field)
        return [
            AgentReference(
                id=record["Id"],
                name=record.get("Name"),
                external_username=record.get(self.agent_username_field),
            )
            for record in self._query_all(soql)
        ]


class SalesforceActivityWriter(_SalesforceRestBase):
    """Create and purge Events through the composite sObjects collection API."""

    def __init__(
        self,
        *,
        client,
        api_version: str = DEFAULT_API_VERSION,
        marker_field: str = "Original_Activity_Date__c",
        timeout: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(client=client, api_version=api_version, timeout=timeout, logger=logger)
        self.marker_field = marker_field

    @property
    def _collection_url(self) -> str:
        return f"{self._data_url}/composite/sobjects"

    def bulk_create(self, records: Sequence[ActivityRecord]) -> list[WriteResult]:
        """
        Insert ``records`` with ``allOrNone=false``.

        The collection API accepts at most 200 records per call, so larger inputs
        are split; results come back in submission order.
        """

        results: list[WriteResult] = []
        for chunk in chunk_records(records, COMPOSITE_BATCH_LIMIT):
            payload = {"allOrNone": False, "records": [record.to_salesforce() for record in chunk]}
            data = self._request(
                "POST",
                self._collection_url,
                headers={"Content-Type": "application/json"},
                json=payload,
            )
            results.extend(WriteResult.from_payload(item) for item in data or [])
        return results

    def query_marked_ids(self, page_size: int) -> list[str]:
        soql = build_marked_events_soql(marker_field=self.marker_field, limit=page_size)
        payload = self._request("GET", f"{self._data_url}/query", params={"q": soql}) or {}
        return [record["Id"] for record in payload.get("records") or []]

    def bulk_delete(self, ids: Sequence[str]) -> list[WriteResult]:
        results: list[WriteResult] = []
        for chunk in chunk_records(ids, COMPOSITE_BATCH_LIMIT):
            data = self._request(
                "DELETE",
                self._collection_url,
                params={"ids": ",".join(chunk), "allOrNone": "false"},
            )
            results.extend(WriteResult.from_payload(item) for item in data or [])
        return results


__all__ = [
    "COMPOSITE_BATCH_LIMIT",
    "SalesforceActivityWriter",
    "SalesforceReferenceFeed",
    "build_agents_soql",
    "build_contacts_soql",
    "build_marked_events_soql",
    "chunk_records",
]
