"""Source, reference and target adapters for the activity sync."""

from __future__ import annotations

from .supabase import SupabaseSourceFeed

__all__ = ["SupabaseSourceFeed"]
