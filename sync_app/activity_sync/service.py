"""
Wire the Flask config into concrete feeds and an ``ActivitySyncPipeline``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import requests

from .adapters.salesforce import create_salesforce_client
from .adapters.salesforce.client import SalesforceActivityWriter, SalesforceReferenceFeed
from .adapters.supabase import SupabaseSourceFeed
from .pipeline.runner import ActivitySyncPipeline, ProgressSink
from .settings import SyncSettings, require_sync_settings


@dataclass(frozen=True)
class SalesforceAdapters:
    reference: SalesforceReferenceFeed
    writer: SalesforceActivityWriter


def build_source_feed(config: Mapping[str, Any], *, session: requests.Session | None = None) -> SupabaseSourceFeed:
    return SupabaseSourceFeed(
        base_url=config["SUPABASE_URL"],
        api_key=config["SUPABASE_KEY"],
        table=config.get("SUPABASE_SOURCE_TABLE") or "aloware_import",
        session=session,
        timeout=config.get("SYNC_HTTP_TIMEOUT", 30.0),
    )


def build_salesforce_adapters(config: Mapping[str, Any], *, client=None) -> SalesforceAdapters:
    client = client if client is not None else create_salesforce_client(config)
    api_version = config.get("SALESFORCE_API_VERSION") or "v59.0"
    timeout = config.get("SYNC_HTTP_TIMEOUT", 30.0)
    return SalesforceAdapters(
        reference=SalesforceReferenceFeed(
            client=client,
            api_version=api_version,
            agent_object=config.get("SYNC_AGENT_OBJECT") or "User",
            agent_username_field=config.get("SYNC_AGENT_USERNAME_FIELD") or "Aloware_Username__c",
            timeout=timeout,
        ),
        writer=SalesforceActivityWriter(
            client=client,
            api_version=api_version,
            marker_field=config.get("SYNC_MARKER_FIELD") or "Original_Activity_Date__c",
            timeout=timeout,
        ),
    )


def build_pipeline(
    config: Mapping[str, Any],
    *,
    progress: ProgressSink | None = None,
    salesforce_client=None,
    source_session: requests.Session | None = None,
    logger: logging.Logger | None = None,
) -> ActivitySyncPipeline:
    """
    Validate connection settings and assemble a ready-to-run pipeline.

    Raises ``ConfigurationError`` before any network call when settings are missing.
    """

    require_sync_settings(config)
    salesforce = build_salesforce_adapters(config, client=salesforce_client)
    return ActivitySyncPipeline(
        source=build_source_feed(config, session=source_session),
        reference=salesforce.reference,
        writer=salesforce.writer,
        settings=SyncSettings.from_config(config),
        progress=progress,
        logger=logger,
    )


__all__ = ["SalesforceAdapters", "build_pipeline", "build_salesforce_adapters", "build_source_feed"]
