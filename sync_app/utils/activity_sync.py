"""
Utility helpers for activity sync feature flag checks.
"""

from __future__ import annotations

from flask import current_app


def _get_config(app=None):
    if app is not None:
        return app.config
    return current_app.config


def is_activity_sync_enabled(app=None) -> bool:
    """Return True when the activity sync feature flag is enabled."""
    config = _get_config(app)
    return bool(config.get("ACTIVITY_SYNC_ENABLED", True))
