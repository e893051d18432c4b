"""Trace and state-machine result models.

These are constructed fresh per call and never persisted.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import BusinessStatus, EntityType
from src.models.relation import Relation


class TraceResult(BaseModel):
    """One visited node of a lineage trace."""

    model_config = ConfigDict(populate_by_name=True)

    uid: str
    entity_type: EntityType = Field(..., alias="entityType")
    status: BusinessStatus
    raw_data: Any = Field(default_factory=dict, alias="rawData")
    relations: list[Relation] = Field(default_factory=list)
    trace_path: list[str] = Field(
        default_factory=list,
        alias="tracePath",
        description="UIDs visited from the root down to (and including) this node",
    )

    @property
    def depth(self) -> int:
        """Hops from the trace root (root is 1)."""
        return len(self.trace_path)


class BusinessChain(BaseModel):
    """Upstream (sources pointing here) and downstream (targets) lineage."""

    uid: str
    upstream: list[TraceResult] = Field(default_factory=list)
    downstream: list[TraceResult] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.upstream and not self.downstream


class TransitionResult(BaseModel):
    """Outcome of validating a proposed status change. Has no side effects."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    previous_status: Optional[BusinessStatus] = Field(default=None, alias="previousStatus")
    new_status: Optional[BusinessStatus] = Field(default=None, alias="newStatus")
    allowed: list[BusinessStatus] = Field(
        default_factory=list,
        description="Legal next states from previous_status",
    )


class StatusInfo(BaseModel):
    """Display information for a canonical status."""

    model_config = ConfigDict(populate_by_name=True)

    status: BusinessStatus
    label: str
    available_transitions: list[BusinessStatus] = Field(
        default_factory=list, alias="availableTransitions"
    )
    terminal: bool = False
