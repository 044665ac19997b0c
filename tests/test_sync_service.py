from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests

from config import TestingConfig
from sync_app.activity_sync.errors import ConfigurationError
from sync_app.activity_sync.service import build_pipeline, build_source_feed


def _config(**overrides):
    config = {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}
    config.update(overrides)
    return config


def _fake_client():
    return SimpleNamespace(session=requests.Session(), sf_instance="example.my.salesforce.com", session_id="sess")


def test_build_pipeline_refuses_missing_settings():
    with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
        build_pipeline(_config(SUPABASE_URL=None), salesforce_client=_fake_client())


def test_build_pipeline_wires_config_into_adapters():
    session = requests.Session()
    pipeline = build_pipeline(
        _config(SYNC_PAGE_SIZE=50, SYNC_MARKER_FIELD="Synced_At__c", SUPABASE_SOURCE_TABLE="calls"),
        salesforce_client=_fake_client(),
        source_session=session,
    )

    assert pipeline.settings.page_size == 50
    assert pipeline.settings.marker_field == "Synced_At__c"
    assert pipeline.writer.marker_field == "Synced_At__c"
    assert pipeline.writer.instance_url == "https://example.my.salesforce.com"
    assert pipeline.reference.agent_object == "User"
    assert pipeline.source.table == "calls"
    assert pipeline.source.session is session


def test_build_source_feed_defaults_table():
    feed = build_source_feed({"SUPABASE_URL": "https://project.supabase.co/", "SUPABASE_KEY": "k"})

    assert feed.table == "aloware_import"
    assert feed.base_url == "https://project.supabase.co"
