"""
Tests for status resolvers and the resolver registry
"""

import pytest

from src.lineage.collaborators import InMemoryEntityRepository, StatusResolverRegistry
from src.lineage.resolvers import (
    CanonicalStatusResolver,
    MappingStatusResolver,
    ORDER_STATUS_MAP,
    default_resolver_registry,
    resolve_cash_flow_status,
    resolve_consumption_status,
    resolve_rebate_status,
)
from src.models.enums import BusinessStatus, EntityType

S = BusinessStatus


class TestBuiltInResolvers:
    """Test per-entity status mapping."""

    @pytest.mark.parametrize("entity_type,record,expected", [
        (EntityType.ORDER, {"status": "待收货"}, S.PENDING_APPROVAL),
        (EntityType.ORDER, {"status": "收货完成，待结清"}, S.APPROVED),
        (EntityType.ORDER, {"status": "unknown"}, S.DRAFT),
        (EntityType.RECHARGE, {"paymentStatus": "Paid"}, S.SETTLED),
        (EntityType.RECHARGE, {"paymentStatus": "Cancelled"}, S.CANCELLED),
        (EntityType.CONSUMPTION, {"isSettled": False}, S.PENDING_APPROVAL),
        (EntityType.BILL, {"status": "Pending_Approval"}, S.PENDING_APPROVAL),
        (EntityType.PAYMENT_REQUEST, {"status": "Approved"}, S.APPROVED),
        (EntityType.CASH_FLOW, {"status": "confirmed", "isReversal": True}, S.REVERSED),
        (EntityType.CASH_FLOW, {}, S.DRAFT),
        (EntityType.REBATE, {"status": "已核销"}, S.SETTLED),
        (EntityType.SETTLEMENT, {"status": "APPROVED"}, S.APPROVED),
        (EntityType.TRANSFER, {"status": "bogus"}, S.DRAFT),
        (EntityType.ADJUSTMENT, {}, S.DRAFT),
    ])
    def test_default_registry(self, entity_type, record, expected):
        """The default registry maps each type's own status field."""
        assert default_resolver_registry().resolve(entity_type, record) == expected

    def test_default_registry_covers_every_type(self):
        registry = default_resolver_registry()
        assert all(entity_type in registry for entity_type in EntityType)

    def test_plain_functions(self):
        assert resolve_consumption_status({"isSettled": True}) == S.SETTLED
        assert resolve_cash_flow_status({"status": "pending"}) == S.PENDING_APPROVAL
        assert resolve_rebate_status({"status": "待核销"}) == S.PENDING_APPROVAL

    def test_mapping_resolver_default(self):
        resolver = MappingStatusResolver("state", ORDER_STATUS_MAP, default=S.SUBMITTED)
        assert resolver.resolve({}) == S.SUBMITTED
        assert resolver.resolve({"state": "部分收货"}) == S.PENDING_APPROVAL

    def test_canonical_resolver_field(self):
        assert CanonicalStatusResolver("state").resolve({"state": "REJECTED"}) == S.REJECTED


class TestRegistry:
    """Test StatusResolverRegistry."""

    def test_missing_resolver_is_draft(self):
        assert StatusResolverRegistry().resolve(EntityType.BILL, {"status": "Paid"}) == S.DRAFT

    def test_register_callable_returning_string(self):
        """Callables may return canonical status strings."""
        registry = StatusResolverRegistry()
        registry.register(EntityType.BILL, lambda record: "SETTLED")
        assert registry.resolve(EntityType.BILL, {}) == S.SETTLED
        assert EntityType.BILL in registry
        assert EntityType.ORDER not in registry

    def test_non_canonical_result_raises(self):
        """A resolver returning a non-status value is a resolver bug."""
        registry = StatusResolverRegistry({EntityType.BILL: lambda record: "PAID"})
        with pytest.raises(ValueError):
            registry.resolve(EntityType.BILL, {})

    def test_register_replaces(self):
        registry = default_resolver_registry()
        registry.register("ORDER", CanonicalStatusResolver())
        assert registry.resolve(EntityType.ORDER, {"status": "SETTLED"}) == S.SETTLED


class TestInMemoryEntityRepository:
    """Test the dict-backed repository."""

    @pytest.mark.asyncio
    async def test_lookup_by_uid_and_id(self):
        repository = InMemoryEntityRepository()
        repository.put(EntityType.ORDER, {"uid": "ORDER-1-AAA", "id": "po-1"})
        assert (await repository.lookup(EntityType.ORDER, "ORDER-1-AAA"))["id"] == "po-1"
        assert (await repository.lookup(EntityType.ORDER, "po-1"))["uid"] == "ORDER-1-AAA"
        assert await repository.lookup(EntityType.BILL, "ORDER-1-AAA") is None

    @pytest.mark.asyncio
    async def test_remove(self):
        repository = InMemoryEntityRepository()
        repository.put(EntityType.ORDER, {"uid": "ORDER-1-AAA", "id": "po-1"})
        repository.remove(EntityType.ORDER, "ORDER-1-AAA")
        assert await repository.lookup(EntityType.ORDER, "ORDER-1-AAA") is None
        assert await repository.lookup(EntityType.ORDER, "po-1") is None

    def test_put_requires_key(self):
        with pytest.raises(ValueError):
            InMemoryEntityRepository().put(EntityType.ORDER, {"status": "x"})
