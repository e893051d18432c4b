"""
Lineage graph export.

Folds a list of trace results into a NetworkX multigraph for audit
export. Nodes carry entity type and status; edges are keyed by relation
type, so the same pair of records can be linked by several relation types.
"""

from typing import Any, Iterable

import networkx as nx

from src.models.trace import TraceResult


def build_lineage_graph(results: Iterable[TraceResult]) -> nx.MultiDiGraph:
    """
    Build a directed multigraph from trace results.

    Repeated results for the same UID (one per branch that reached it)
    collapse to one node. Relation endpoints that were never resolved are
    added with ``resolved=False``.
    """
    results = list(results)
    graph = nx.MultiDiGraph()

    for result in results:
        graph.add_node(
            result.uid,
            entity_type=result.entity_type.value,
            status=result.status.value,
            resolved=True,
        )

    for result in results:
        for relation in result.relations:
            for endpoint in (relation.source_uid, relation.target_uid):
                if endpoint not in graph:
                    graph.add_node(endpoint, resolved=False)
            graph.add_edge(
                relation.source_uid,
                relation.target_uid,
                key=relation.relation_type,
                relation_type=relation.relation_type,
                created_at=relation.created_at.isoformat(),
            )

    return graph


def graph_to_json(graph: nx.MultiDiGraph) -> dict[str, Any]:
    """Node-link JSON representation of a lineage graph."""
    return nx.node_link_data(graph, edges="links")
