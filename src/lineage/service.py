"""
Lineage Service

High-level entry point used by the surrounding application.
Combines the UID codec, relation store and trace engine so callers
mint identifiers, register links and run lineage queries through one
object.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from src.config import LineageConfig, get_lineage_config
from src.identity.codec import mint
from src.identity.legacy import enrich_with_uid
from src.lineage.collaborators import (
    EntityRepository,
    InMemoryEntityRepository,
    StatusResolverRegistry,
)
from src.lineage.relation_store import InMemoryRelationStore, RelationStore
from src.lineage.resolvers import default_resolver_registry
from src.lineage.trace import TraceBudget, TraceEngine
from src.models.enums import EntityType, RelationType
from src.models.relation import Relation
from src.models.trace import BusinessChain, TraceResult

logger = logging.getLogger(__name__)


class LineageService:
    """
    Lineage service facade.

    Provides:
    - UID minting
    - Relation registration (single, batch, fan-out)
    - Relation lookup by UID
    - Trace and upstream/downstream chain queries
    """

    def __init__(
        self,
        relation_store: Optional[RelationStore] = None,
        repository: Optional[EntityRepository] = None,
        resolvers: Optional[StatusResolverRegistry] = None,
        config: Optional[LineageConfig] = None,
    ):
        self._config = config or get_lineage_config()
        self.relation_store = relation_store or InMemoryRelationStore()
        self.repository = repository or InMemoryEntityRepository()
        self.resolvers = resolvers or default_resolver_registry()
        self.engine = TraceEngine(
            self.relation_store,
            self.repository,
            self.resolvers,
            self._config,
        )

    def mint(self, entity_type: Union[EntityType, str]) -> str:
        return mint(entity_type, random_length=self._config.uid_random_length)

    async def add_relation(
        self,
        source_uid: str,
        target_uid: str,
        relation_type: Union[RelationType, str],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Relation:
        """
        Register a directed relation. Registering an existing
        (source, target, type) triple returns the stored relation.

        Raises:
            ValueError: if any of the three key fields is empty
        """
        relation = Relation(
            source_uid=source_uid,
            target_uid=target_uid,
            relation_type=(
                relation_type.value if isinstance(relation_type, RelationType) else relation_type
            ),
            metadata=dict(metadata) if metadata is not None else None,
        )
        stored, _ = await self.relation_store.add(relation)
        return stored

    async def add_relations(self, relations: Iterable[Mapping[str, Any]]) -> list[Relation]:
        """Batch form of add_relation; each item takes the same keyword names."""
        return [await self.add_relation(**dict(item)) for item in relations]

    async def link_entities(
        self,
        source_uid: str,
        target_uids: Iterable[str],
        relation_type: Union[RelationType, str],
    ) -> list[Relation]:
        """Link one source to many targets with the same relation type."""
        return [
            await self.add_relation(source_uid, target_uid, relation_type)
            for target_uid in target_uids
        ]

    async def create_entity_with_relations(
        self,
        entity: Mapping[str, Any],
        entity_type: Union[EntityType, str],
        related_uids: Sequence[str] = (),
        relation_types: Sequence[str] = (),
    ) -> dict[str, Any]:
        """
        Ensure ``entity`` has a UID, then link it to each related UID.

        ``relation_types[i]`` is used for ``related_uids[i]``; missing or
        empty entries fall back to RELATED.
        """
        enriched = enrich_with_uid(entity, entity_type)
        for index, related_uid in enumerate(related_uids):
            relation_type = (
                relation_types[index] if index < len(relation_types) else None
            ) or RelationType.RELATED.value
            await self.add_relation(enriched["uid"], related_uid, relation_type)
        logger.info("Linked %s to %d related records", enriched["uid"], len(related_uids))
        return enriched

    async def relations_for(self, uid: str) -> list[Relation]:
        return await self.relation_store.by_uid(uid)

    async def trace(
        self,
        uid: str,
        max_depth: Optional[int] = None,
        budget: Optional[TraceBudget] = None,
    ) -> list[TraceResult]:
        return await self.engine.trace(uid, max_depth=max_depth, budget=budget)

    async def chain(self, uid: str, max_depth: Optional[int] = None) -> BusinessChain:
        return await self.engine.chain(uid, max_depth=max_depth)
