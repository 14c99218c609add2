"""Store contracts and backends."""

from __future__ import annotations

from skillbridge.config import Settings
from skillbridge.persistence.state_store import StateStore
from skillbridge.stores.base import (
    AllocationStore,
    CatalogStore,
    ProfileStore,
    ProjectStore,
    RatingStore,
    StaffingBackend,
)
from skillbridge.stores.memory import InMemoryBackend
from skillbridge.stores.postgrest import PostgrestBackend


def create_backend(settings: Settings) -> StaffingBackend:
    """Build the backend named in settings."""
    if settings.backend == "postgrest":
        return PostgrestBackend(
            settings.api_url or "",
            settings.api_key or "",
            timeout=settings.http_timeout,
            pool_size=settings.match_workers,
        )
    return InMemoryBackend(state_store=StateStore(settings.state_path))


__all__ = [
    "AllocationStore",
    "CatalogStore",
    "ProfileStore",
    "ProjectStore",
    "RatingStore",
    "StaffingBackend",
    "InMemoryBackend",
    "PostgrestBackend",
    "create_backend",
]
