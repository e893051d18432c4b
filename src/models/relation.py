"""Relation model: a typed, directed edge between two business UIDs."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


RelationKey = tuple[str, str, str]


class Relation(BaseModel):
    """
    A directed, typed link from one business record to another.

    Relations are created once and never edited. A correction is a new
    relation (e.g. relation_type=REVERSAL) pointing at the original record.
    Uniqueness key: (source_uid, target_uid, relation_type).
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "sourceUID": "CASH_FLOW-1705123456789-EF34GH7K2Q",
                "targetUID": "ORDER-1705123400000-AB12CD9X4M",
                "relationType": "PAYMENT",
                "createdAt": "2024-01-13T05:24:16.789000Z",
                "metadata": {"amount": "1200.00"},
            }
        },
    )

    source_uid: str = Field(..., min_length=1, alias="sourceUID")
    target_uid: str = Field(..., min_length=1, alias="targetUID")
    relation_type: str = Field(
        ...,
        min_length=1,
        alias="relationType",
        description="Relation tag, e.g. PAYMENT, SETTLEMENT, REVERSAL",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
    )
    metadata: Optional[dict[str, Any]] = Field(
        default=None,
        description="Opaque key/value bag, never interpreted by the core",
    )

    @property
    def key(self) -> RelationKey:
        """Uniqueness triple."""
        return (self.source_uid, self.target_uid, self.relation_type)

    def other_side(self, uid: str) -> str:
        """The endpoint of this edge that is not ``uid``."""
        return self.target_uid if self.source_uid == uid else self.source_uid

    def touches(self, uid: str) -> bool:
        return uid in (self.source_uid, self.target_uid)
