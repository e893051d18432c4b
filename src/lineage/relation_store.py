"""
Relation Store

Append-only, de-duplicating index of typed edges between UIDs.

- ``add`` is idempotent on (source_uid, target_uid, relation_type)
- ``by_uid`` returns edges touching a UID at either end, in insertion order
- No delete or update: corrections are new relations (e.g. REVERSAL)

Two implementations share the same async interface: an in-memory store
guarded by a lock, and a SQL store relying on the table's unique
constraint so that concurrent writers can not produce duplicates.
"""

import logging
import threading
from collections import defaultdict
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.models.relation import Relation, RelationKey
from src.storage.database import DatabaseService, get_db_session

logger = logging.getLogger(__name__)


class RelationStore(Protocol):
    """Interface every relation store implements."""

    async def add(self, relation: Relation) -> tuple[Relation, bool]:
        """Store ``relation``; returns (stored relation, created)."""
        ...

    async def by_uid(self, uid: str) -> list[Relation]: ...

    async def by_source(self, uid: str) -> list[Relation]: ...

    async def by_target(self, uid: str) -> list[Relation]: ...

    async def count(self) -> int: ...


class InMemoryRelationStore:
    """
    Process-local relation store.

    The existence check and the insert happen under one lock, so two
    concurrent adds of the same triple store exactly one relation.
    Callers always get copies; the stored relations are never handed out.
    """

    def __init__(self):
        self._relations: dict[RelationKey, Relation] = {}
        self._index: defaultdict[str, list[RelationKey]] = defaultdict(list)
        self._lock = threading.Lock()

    async def add(self, relation: Relation) -> tuple[Relation, bool]:
        key = relation.key
        stored = relation.model_copy(deep=True)
        with self._lock:
            existing = self._relations.get(key)
            if existing is not None:
                return existing.model_copy(deep=True), False
            self._relations[key] = stored
            self._index[relation.source_uid].append(key)
            if relation.target_uid != relation.source_uid:
                self._index[relation.target_uid].append(key)

        logger.info(
            "Relation stored: %s -[%s]-> %s",
            relation.source_uid, relation.relation_type, relation.target_uid,
        )
        return stored.model_copy(deep=True), True

    async def by_uid(self, uid: str) -> list[Relation]:
        with self._lock:
            return [self._relations[k].model_copy(deep=True) for k in self._index.get(uid, ())]

    async def by_source(self, uid: str) -> list[Relation]:
        return [r for r in await self.by_uid(uid) if r.source_uid == uid]

    async def by_target(self, uid: str) -> list[Relation]:
        return [r for r in await self.by_uid(uid) if r.target_uid == uid]

    async def count(self) -> int:
        return len(self._relations)

    def __len__(self) -> int:
        return len(self._relations)


class SqlRelationStore:
    """Relation store backed by the ``business_relations`` table."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    async def add(self, relation: Relation) -> tuple[Relation, bool]:
        async with get_db_session(self._session_factory) as session:
            row, created = await DatabaseService(session).insert_relation(relation)
            stored = row.to_model()
        if created:
            logger.info(
                "Relation stored: %s -[%s]-> %s",
                stored.source_uid, stored.relation_type, stored.target_uid,
            )
        return stored, created

    async def by_uid(self, uid: str) -> list[Relation]:
        async with get_db_session(self._session_factory) as session:
            rows = await DatabaseService(session).get_relations_for_uid(uid)
            return [row.to_model() for row in rows]

    async def by_source(self, uid: str) -> list[Relation]:
        async with get_db_session(self._session_factory) as session:
            rows = await DatabaseService(session).get_relations(source_uid=uid)
            return [row.to_model() for row in rows]

    async def by_target(self, uid: str) -> list[Relation]:
        async with get_db_session(self._session_factory) as session:
            rows = await DatabaseService(session).get_relations(target_uid=uid)
            return [row.to_model() for row in rows]

    async def count(self) -> int:
        async with get_db_session(self._session_factory) as session:
            return await DatabaseService(session).count_relations()
