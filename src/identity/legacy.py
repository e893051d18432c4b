"""
Helpers for attaching UIDs to records.

Records created before UIDs existed keep their old ``id``; migrating one
mints a UID and stores the ``old_id -> uid`` mapping so lookups by the
old id keep working.
"""

import logging
import threading
from typing import Any, Mapping, Optional, Protocol, Union

from src.identity.codec import mint
from src.models.enums import EntityType
from src.models.mapping import UidMapping
from src.storage.database import DatabaseService, get_db_session

logger = logging.getLogger(__name__)


def enrich_with_uid(
    entity: Mapping[str, Any],
    entity_type: Union[EntityType, str],
) -> dict[str, Any]:
    """Return a copy of ``entity`` with a ``uid``, minting one if absent."""
    enriched = dict(entity)
    if not enriched.get("uid"):
        enriched["uid"] = mint(entity_type)
    return enriched


class UidMappingStore(Protocol):
    """Storage for legacy id -> UID mappings."""

    async def upsert(
        self, old_id: str, uid: str, entity_type: Optional[str] = None
    ) -> UidMapping: ...

    async def get(self, old_id: str) -> Optional[UidMapping]: ...

    async def find_uid(self, old_id: str) -> Optional[str]: ...

    async def list_mappings(self, entity_type: Optional[str] = None) -> list[UidMapping]: ...


class InMemoryUidMappingStore:
    """Process-local mapping store."""

    def __init__(self):
        self._mappings: dict[str, UidMapping] = {}
        self._lock = threading.Lock()

    async def upsert(
        self, old_id: str, uid: str, entity_type: Optional[str] = None
    ) -> UidMapping:
        with self._lock:
            existing = self._mappings.get(old_id)
            if existing is not None:
                mapping = existing.model_copy(update={
                    "uid": uid,
                    "entity_type": (entity_type or "").strip() or existing.entity_type,
                })
            else:
                mapping = UidMapping(
                    old_id=old_id,
                    uid=uid,
                    entity_type=(entity_type or "").strip() or "OTHER",
                )
            self._mappings[old_id] = mapping
            return mapping

    async def get(self, old_id: str) -> Optional[UidMapping]:
        with self._lock:
            return self._mappings.get(old_id)

    async def find_uid(self, old_id: str) -> Optional[str]:
        mapping = await self.get(old_id)
        return mapping.uid if mapping else None

    async def list_mappings(self, entity_type: Optional[str] = None) -> list[UidMapping]:
        mappings = list(self._mappings.values())
        if entity_type:
            mappings = [m for m in mappings if m.entity_type == entity_type]
        return sorted(mappings, key=lambda m: m.created_at, reverse=True)


async def migrate_to_uid(
    entity: Mapping[str, Any],
    entity_type: Union[EntityType, str],
    mappings: UidMappingStore,
) -> dict[str, Any]:
    """
    Give a legacy record a UID and remember its old id.

    Records that already carry a UID are returned unchanged (as a copy).
    """
    if entity.get("uid"):
        return dict(entity)

    migrated = enrich_with_uid(entity, entity_type)
    old_id = entity.get("id")
    if old_id:
        etype = entity_type.value if isinstance(entity_type, EntityType) else str(entity_type)
        await mappings.upsert(str(old_id), migrated["uid"], etype)
        logger.info("Migrated %s %s -> %s", etype, old_id, migrated["uid"])
    return migrated


class SqlUidMappingStore:
    """Mapping store backed by the ``business_uid_mappings`` table."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    async def upsert(
        self, old_id: str, uid: str, entity_type: Optional[str] = None
    ) -> UidMapping:
        async with get_db_session(self._session_factory) as session:
            row = await DatabaseService(session).upsert_uid_mapping(old_id, uid, entity_type)
            return row.to_model()

    async def get(self, old_id: str) -> Optional[UidMapping]:
        async with get_db_session(self._session_factory) as session:
            row = await DatabaseService(session).get_uid_mapping(old_id)
            return row.to_model() if row else None

    async def find_uid(self, old_id: str) -> Optional[str]:
        mapping = await self.get(old_id)
        return mapping.uid if mapping else None

    async def list_mappings(self, entity_type: Optional[str] = None) -> list[UidMapping]:
        async with get_db_session(self._session_factory) as session:
            rows = await DatabaseService(session).list_uid_mappings(entity_type=entity_type)
            return [row.to_model() for row in rows]
