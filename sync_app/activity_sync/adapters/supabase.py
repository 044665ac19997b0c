"""
PostgREST client for the Supabase staging table.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from sync_app.activity_sync.errors import TransportError
from sync_app.activity_sync.pipeline.records import COLUMN_ID, SourceRecord

SOURCE_NAME = "supabase"


def parse_content_range(header: str | None) -> int | None:
    """Return the total from a ``Content-Range: 0-199/1234`` header, if present."""

    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    if not total.isdigit():
        return None
    return int(total)


class SupabaseSourceFeed:
    """Read the staging table in ``id`` order, one offset/limit page at a time."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        table: str = "aloware_import",
        session: requests.Session | None = None,
        timeout: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.table = table
        self.session = session or requests.Session()
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    @property
    def table_url(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def fetch_page(self, offset: int, limit: int) -> list[SourceRecord]:
        params = {"select": "*", "order": f"{COLUMN_ID}.asc", "offset": str(offset), "limit": str(limit)}
        response = self._get(params=params)
        rows = response.json() or []
        self.logger.debug("Fetched source page", extra={"sync_offset": offset, "sync_rows": len(rows)})
        return [SourceRecord.from_row(row) for row in rows]

    def count(self) -> int:
        """Exact row count, read from the ``Content-Range`` header."""

        response = self._get(
            params={"select": COLUMN_ID, "limit": "1"},
            headers={"Prefer": "count=exact"},
        )
        total = parse_content_range(response.headers.get("Content-Range"))
        if total is None:
            raise TransportError(
                "Supabase count response carried no Content-Range total",
                source=SOURCE_NAME,
                status_code=response.status_code,
                body=response.text,
            )
        return total

    def _get(self, *, params: dict[str, str], headers: dict[str, str] | None = None) -> Any:
        try:
            response = self.session.get(
                self.table_url,
                params=params,
                headers={**self._headers, **(headers or {})},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Supabase request failed: {exc}", source=SOURCE_NAME) from exc
        if not response.ok:
            self.logger.error(
                "Supabase query on %s failed with status %s",
                self.table,
                response.status_code,
                extra={"sync_status_code": response.status_code, "sync_response_body": response.text},
            )
            raise TransportError(
                f"Supabase returned {response.status_code}",
                source=SOURCE_NAME,
                status_code=response.status_code,
                body=response.text,
            )
        return response


__all__ = ["SupabaseSourceFeed", "parse_content_range"]
