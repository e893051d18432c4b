"""
Tests for the data models

Tests validate:
- Enum values
- Relation wire aliases, key, immutability and validation
- Trace result serialization
"""

import pytest
from datetime import datetime, timezone

from pydantic import ValidationError

from src.models import (
    ENTITY_TYPE_LABELS,
    BusinessAction,
    BusinessChain,
    BusinessStatus,
    EntityType,
    Relation,
    RelationType,
    TraceResult,
    TransitionResult,
    UidMapping,
)


class TestEnums:
    """Test all enumeration types."""

    def test_entity_types(self):
        """Closed entity type set."""
        assert {e.value for e in EntityType} == {
            "ORDER", "RECHARGE", "CONSUMPTION", "BILL", "PAYMENT_REQUEST",
            "CASH_FLOW", "SETTLEMENT", "REBATE", "TRANSFER", "ADJUSTMENT",
        }

    def test_entity_tags_have_no_separator(self):
        """No tag contains the UID separator."""
        assert all("-" not in e.value for e in EntityType)

    def test_every_entity_type_has_label(self):
        assert set(ENTITY_TYPE_LABELS) == set(EntityType)

    def test_business_statuses(self):
        """Eight canonical statuses."""
        assert len(BusinessStatus) == 8
        assert BusinessStatus.PENDING_APPROVAL.value == "PENDING_APPROVAL"

    def test_actions(self):
        assert {a.value for a in BusinessAction} == {
            "edit", "submit", "approve", "reject", "settle", "reverse", "cancel",
        }

    def test_relation_types(self):
        assert RelationType.REVERSAL.value == "REVERSAL"
        assert RelationType.RELATED.value == "RELATED"


class TestRelation:
    """Test Relation model."""

    def test_create_by_field_name(self):
        relation = Relation(
            source_uid="CASH_FLOW-1-AAA",
            target_uid="ORDER-1-BBB",
            relation_type="PAYMENT",
        )
        assert relation.key == ("CASH_FLOW-1-AAA", "ORDER-1-BBB", "PAYMENT")
        assert relation.metadata is None
        assert relation.created_at.tzinfo is not None

    def test_create_from_wire_shape(self):
        """Persisted camelCase shape parses."""
        relation = Relation.model_validate({
            "sourceUID": "CASH_FLOW-1-AAA",
            "targetUID": "ORDER-1-BBB",
            "relationType": "PAYMENT",
            "createdAt": "2024-01-13T05:24:16Z",
            "metadata": {"amount": "10.00"},
        })
        assert relation.created_at == datetime(2024, 1, 13, 5, 24, 16, tzinfo=timezone.utc)
        assert relation.metadata == {"amount": "10.00"}

    def test_dump_uses_wire_aliases(self):
        relation = Relation(source_uid="A-1-X", target_uid="B-1-Y", relation_type="PAYMENT")
        data = relation.model_dump(mode="json", by_alias=True)
        assert set(data) == {"sourceUID", "targetUID", "relationType", "createdAt", "metadata"}

    def test_other_side(self):
        relation = Relation(source_uid="A", target_uid="B", relation_type="PAYMENT")
        assert relation.other_side("A") == "B"
        assert relation.other_side("B") == "A"
        assert relation.touches("A") and relation.touches("B")
        assert not relation.touches("C")

    def test_immutable(self):
        """Relations are never edited."""
        relation = Relation(source_uid="A", target_uid="B", relation_type="PAYMENT")
        with pytest.raises(ValidationError):
            relation.relation_type = "REVERSAL"

    @pytest.mark.parametrize("field", ["source_uid", "target_uid", "relation_type"])
    def test_empty_key_field_rejected(self, field):
        values = {"source_uid": "A", "target_uid": "B", "relation_type": "PAYMENT"}
        values[field] = ""
        with pytest.raises(ValueError):
            Relation(**values)


class TestResults:
    """Test trace and transition result models."""

    def test_trace_result_aliases(self):
        result = TraceResult(
            uid="ORDER-1-AAA",
            entity_type=EntityType.ORDER,
            status=BusinessStatus.DRAFT,
            raw_data={"id": "po-1"},
            trace_path=["ORDER-1-AAA"],
        )
        data = result.model_dump(by_alias=True)
        assert data["entityType"] == EntityType.ORDER
        assert data["tracePath"] == ["ORDER-1-AAA"]
        assert data["rawData"] == {"id": "po-1"}
        assert result.depth == 1

    def test_empty_chain(self):
        assert BusinessChain(uid="ORDER-1-AAA").is_empty

    def test_transition_result_defaults(self):
        result = TransitionResult(success=False, message="nope")
        assert result.previous_status is None
        assert result.allowed == []

    def test_uid_mapping_default_type(self):
        mapping = UidMapping(old_id="po-1", uid="ORDER-1-AAA")
        assert mapping.entity_type == "OTHER"
