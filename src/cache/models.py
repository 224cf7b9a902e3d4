# src/cache/models.py — v1
"""Cache domain models: CacheEntry, CacheStats."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """Fingerprint key mapped to the site the user confirmed there."""

    key: str
    site_id: str
    first_seen_at: datetime
    last_confirmed_at: datetime
    hit_count: int = Field(default=1, ge=1)


class CacheStats(BaseModel):
    """Snapshot of cache occupancy."""

    entries: int = 0
    max_entries: int = 0
    oldest_confirmed_at: datetime | None = None
    newest_confirmed_at: datetime | None = None
