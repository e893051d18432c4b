"""
Trace Engine

Answers "what is this record connected to, and how far does the chain go".

Traversal rules:
- Depth-first from the root UID, following relations in either direction.
- Depth is counted per hop (root = 1); a node deeper than ``max_depth`` is
  not visited.
- Each branch gets its own copy of the visited set, so only cycles along
  the ancestor chain are cut. A diamond shows its converging node once per
  branch.
- A UID that does not parse, or whose record the repository can not find,
  contributes nothing; the rest of the trace continues.
- A ``TraceBudget`` caps the total number of node visits and wall-clock
  time of one invocation. Running out returns the partial result.

Exceptions raised by the injected repository or resolvers propagate.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from src.config import LineageConfig, get_lineage_config
from src.identity.codec import ParsedUID, parse
from src.lineage.collaborators import EntityRepository, StatusResolverRegistry
from src.lineage.relation_store import RelationStore
from src.models.trace import BusinessChain, TraceResult

logger = logging.getLogger(__name__)


@dataclass
class TraceBudget:
    """Call-count and wall-clock budget shared by one trace invocation."""
    max_nodes: int
    timeout_seconds: Optional[float] = None
    visits: int = 0
    exhausted: bool = False
    _deadline: Optional[float] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.timeout_seconds is not None:
            self._deadline = time.monotonic() + self.timeout_seconds

    @classmethod
    def from_config(cls, config: LineageConfig) -> "TraceBudget":
        return cls(
            max_nodes=config.trace_max_nodes,
            timeout_seconds=config.trace_timeout_seconds,
        )

    def consume(self) -> bool:
        """Take one visit from the budget; False once it is spent."""
        if self.exhausted:
            return False
        if self.visits >= self.max_nodes or (
            self._deadline is not None and time.monotonic() >= self._deadline
        ):
            self.exhausted = True
            return False
        self.visits += 1
        return True


class TraceEngine:
    """
    Lineage traversal over a relation store.

    Combines the UID codec, relation store, entity repository and status
    resolvers. Holds no entity data itself.
    """

    def __init__(
        self,
        relation_store: RelationStore,
        repository: EntityRepository,
        resolvers: StatusResolverRegistry,
        config: Optional[LineageConfig] = None,
    ):
        self._store = relation_store
        self._repository = repository
        self._resolvers = resolvers
        self._config = config or get_lineage_config()

    def new_budget(self) -> TraceBudget:
        return TraceBudget.from_config(self._config)

    async def trace(
        self,
        uid: str,
        max_depth: Optional[int] = None,
        budget: Optional[TraceBudget] = None,
    ) -> list[TraceResult]:
        """
        Trace everything reachable from ``uid``.

        Args:
            uid: Root UID
            max_depth: Maximum hops from the root, root included
            budget: Shared budget (a fresh one from config if omitted)

        Returns:
            The root's result followed by its children's results, in
            relation-iteration order. Empty if nothing resolves.
        """
        if max_depth is None:
            max_depth = self._config.default_trace_depth
        if budget is None:
            budget = self.new_budget()

        results: list[TraceResult] = []
        await self._visit(uid, 1, max_depth, set(), [], budget, results)

        if budget.exhausted:
            logger.warning(
                "Trace budget exhausted for %s after %d visits; returning %d partial results",
                uid, budget.visits, len(results),
            )
        return results

    async def _visit(
        self,
        uid: str,
        depth: int,
        max_depth: int,
        visited: set[str],
        path: list[str],
        budget: TraceBudget,
        results: list[TraceResult],
    ) -> None:
        if uid in visited or depth > max_depth:
            return
        if not budget.consume():
            return

        visited.add(uid)
        path = [*path, uid]

        parsed = parse(uid)
        if not isinstance(parsed, ParsedUID):
            logger.debug("Skipping unparseable uid %r: %s", uid, parsed.error.value)
            return

        record = await self._repository.lookup(parsed.entity_type, uid)
        if record is None:
            logger.debug("Skipping %s: not found in repository", uid)
            return

        status = self._resolvers.resolve(parsed.entity_type, record)
        relations = await self._store.by_uid(uid)

        results.append(
            TraceResult(
                uid=uid,
                entity_type=parsed.entity_type,
                status=status,
                raw_data=dict(record) if isinstance(record, Mapping) else record,
                relations=relations,
                trace_path=path,
            )
        )

        for relation in relations:
            await self._visit(
                relation.other_side(uid),
                depth + 1,
                max_depth,
                set(visited),
                path,
                budget,
                results,
            )

    async def chain(
        self,
        uid: str,
        max_depth: Optional[int] = None,
        budget: Optional[TraceBudget] = None,
    ) -> BusinessChain:
        """
        Split lineage into upstream and downstream.

        Upstream traces start from sources of relations pointing at ``uid``;
        downstream traces start from targets ``uid`` points at. Each side's
        trace starts with a fresh visited set, so it may walk back through
        ``uid`` itself.
        """
        if max_depth is None:
            max_depth = self._config.chain_trace_depth
        if budget is None:
            budget = self.new_budget()

        chain = BusinessChain(uid=uid)
        for relation in await self._store.by_uid(uid):
            if relation.target_uid == uid:
                chain.upstream.extend(await self.trace(relation.source_uid, max_depth, budget))
            elif relation.source_uid == uid:
                chain.downstream.extend(await self.trace(relation.target_uid, max_depth, budget))
        return chain


def distinct_uids(results: Iterable[TraceResult]) -> list[str]:
    """UIDs in first-seen order, without repeats."""
    return list(dict.fromkeys(r.uid for r in results))


def sort_results(results: Iterable[TraceResult]) -> list[TraceResult]:
    """Stable order: shallowest first, then by UID."""
    return sorted(results, key=lambda r: (len(r.trace_path), r.uid))
