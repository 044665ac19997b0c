"""
Typed view over the Flask config keys the sync engine reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from config.validation import validate_sync_settings

from .errors import ConfigurationError


@dataclass(frozen=True)
class SyncSettings:
    page_size: int = 200
    purge_page_size: int = 200
    inter_batch_delay: float = 0.05
    progress_log_every: int = 2000
    error_sample_limit: int = 3
    activity_duration_minutes: int = 15
    default_owner_id: str = "005a500001mkMsbAAE"
    marker_field: str = "Original_Activity_Date__c"
    agent_relation_field: str = "Aloware_Agent__c"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "SyncSettings":
        defaults = cls()
        return cls(
            page_size=int(config.get("SYNC_PAGE_SIZE", defaults.page_size)),
            purge_page_size=int(config.get("SYNC_PURGE_PAGE_SIZE", defaults.purge_page_size)),
            inter_batch_delay=float(config.get("SYNC_INTER_BATCH_DELAY", defaults.inter_batch_delay)),
            progress_log_every=int(config.get("SYNC_PROGRESS_LOG_EVERY", defaults.progress_log_every)),
            error_sample_limit=int(config.get("SYNC_ERROR_SAMPLE_LIMIT", defaults.error_sample_limit)),
            activity_duration_minutes=int(
                config.get("SYNC_ACTIVITY_DURATION_MINUTES", defaults.activity_duration_minutes)
            ),
            default_owner_id=config.get("SYNC_DEFAULT_OWNER_ID") or defaults.default_owner_id,
            marker_field=config.get("SYNC_MARKER_FIELD") or defaults.marker_field,
            agent_relation_field=config.get("SYNC_AGENT_RELATION_FIELD") or defaults.agent_relation_field,
        )


def require_sync_settings(config: Mapping[str, Any]) -> None:
    """Raise ``ConfigurationError`` listing every missing connection setting."""

    errors = validate_sync_settings(config)
    if errors:
        raise ConfigurationError("; ".join(errors))
