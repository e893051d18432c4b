"""
Collaborator contracts injected into the trace engine.

The host application owns the business records. It supplies:
- an ``EntityRepository`` that returns the raw record for a UID
- one ``StatusResolver`` per entity type, mapping the record's own status
  field onto a canonical ``BusinessStatus``

Adding an entity type means registering a resolver here; the trace engine
itself does not change.
"""

import logging
import threading
from typing import Any, Callable, Mapping, Optional, Protocol, Union, runtime_checkable

from src.models.enums import BusinessStatus, EntityType

logger = logging.getLogger(__name__)

# Opaque to the core; only the resolver for its type reads it
RawRecord = Any


class EntityRepository(Protocol):
    """Looks up a raw business record; returns None when it does not exist."""

    async def lookup(self, entity_type: EntityType, uid: str) -> Optional[RawRecord]: ...


@runtime_checkable
class StatusResolver(Protocol):
    """Maps a raw record of one entity type to a canonical status."""

    def resolve(self, raw_record: RawRecord) -> BusinessStatus: ...


ResolverLike = Union[StatusResolver, Callable[[RawRecord], Union[BusinessStatus, str]]]


class StatusResolverRegistry:
    """
    Entity type -> status resolver map, populated at startup.

    Plain callables are accepted in place of resolver objects. Types with
    no registered resolver resolve to DRAFT.
    """

    def __init__(self, resolvers: Optional[Mapping[EntityType, ResolverLike]] = None):
        self._resolvers: dict[EntityType, ResolverLike] = dict(resolvers or {})

    def register(self, entity_type: EntityType, resolver: ResolverLike) -> None:
        self._resolvers[EntityType(entity_type)] = resolver

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._resolvers

    def resolve(self, entity_type: EntityType, raw_record: RawRecord) -> BusinessStatus:
        resolver = self._resolvers.get(entity_type)
        if resolver is None:
            logger.debug("No status resolver for %s, defaulting to DRAFT", entity_type.value)
            return BusinessStatus.DRAFT
        if isinstance(resolver, StatusResolver):
            status = resolver.resolve(raw_record)
        else:
            status = resolver(raw_record)
        return BusinessStatus(status)


class InMemoryEntityRepository:
    """
    Dict-backed repository, for tests and embedding.

    Records are found by their ``uid`` field, falling back to ``id``.
    """

    def __init__(self):
        self._records: dict[EntityType, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def put(self, entity_type: EntityType, record: Mapping[str, Any]) -> None:
        keys = [str(record[f]) for f in ("uid", "id") if record.get(f)]
        if not keys:
            raise ValueError("record needs a 'uid' or 'id' field")
        stored = dict(record)
        with self._lock:
            bucket = self._records.setdefault(EntityType(entity_type), {})
            for key in keys:
                bucket[key] = stored

    def remove(self, entity_type: EntityType, uid: str) -> None:
        with self._lock:
            bucket = self._records.get(entity_type, {})
            record = bucket.pop(uid, None)
            if record is not None:
                for f in ("uid", "id"):
                    if bucket.get(str(record.get(f))) is record:
                        del bucket[str(record[f])]

    async def lookup(self, entity_type: EntityType, uid: str) -> Optional[RawRecord]:
        with self._lock:
            return self._records.get(entity_type, {}).get(uid)
