"""Legacy record id to UID mapping model."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class UidMapping(BaseModel):
    """
    Maps a record id that predates UIDs onto its minted UID.

    Keyed by old_id; re-mapping the same old_id overwrites the UID.
    """

    model_config = ConfigDict(populate_by_name=True)

    old_id: str = Field(..., min_length=1, alias="oldId")
    uid: str = Field(..., min_length=1)
    entity_type: str = Field(default="OTHER", alias="entityType")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
    )
