"""Lineage package: relation store, collaborators, trace engine."""

from src.lineage.collaborators import (
    EntityRepository,
    InMemoryEntityRepository,
    StatusResolver,
    StatusResolverRegistry,
)
from src.lineage.graph import build_lineage_graph, graph_to_json
from src.lineage.relation_store import (
    InMemoryRelationStore,
    RelationStore,
    SqlRelationStore,
)
from src.lineage.resolvers import default_resolver_registry
from src.lineage.service import LineageService
from src.lineage.trace import TraceBudget, TraceEngine, distinct_uids, sort_results

__all__ = [
    "EntityRepository",
    "InMemoryEntityRepository",
    "StatusResolver",
    "StatusResolverRegistry",
    "build_lineage_graph",
    "graph_to_json",
    "InMemoryRelationStore",
    "RelationStore",
    "SqlRelationStore",
    "default_resolver_registry",
    "LineageService",
    "TraceBudget",
    "TraceEngine",
    "distinct_uids",
    "sort_results",
]
