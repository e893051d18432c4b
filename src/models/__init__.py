"""
Data models for the lineage core.

Pydantic models and enums shared by every other package.
All modules import from here - no circular dependencies allowed.
"""

from src.models.enums import (
    ENTITY_TYPE_LABELS,
    BusinessAction,
    BusinessStatus,
    EntityType,
    RelationType,
)
from src.models.relation import Relation, RelationKey
from src.models.trace import (
    BusinessChain,
    StatusInfo,
    TraceResult,
    TransitionResult,
)
from src.models.mapping import UidMapping

__all__ = [
    # Enums
    "ENTITY_TYPE_LABELS",
    "BusinessAction",
    "BusinessStatus",
    "EntityType",
    "RelationType",
    # Relations
    "Relation",
    "RelationKey",
    # Results
    "BusinessChain",
    "StatusInfo",
    "TraceResult",
    "TransitionResult",
    # Legacy ids
    "UidMapping",
]
