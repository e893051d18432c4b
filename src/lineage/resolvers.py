"""
Built-in status resolvers.

Each maps the status field of one entity type's raw record to a canonical
``BusinessStatus``. Unmapped values fall back to DRAFT.
"""

from typing import Any, Mapping

from src.lineage.collaborators import StatusResolverRegistry
from src.models.enums import BusinessStatus, EntityType


class MappingStatusResolver:
    """Looks up ``record[field]`` in a fixed table."""

    def __init__(
        self,
        field: str,
        table: Mapping[str, BusinessStatus],
        default: BusinessStatus = BusinessStatus.DRAFT,
    ):
        self.field = field
        self.table = dict(table)
        self.default = default

    def resolve(self, raw_record: Mapping[str, Any]) -> BusinessStatus:
        return self.table.get(raw_record.get(self.field), self.default)


class CanonicalStatusResolver:
    """For records that already store a canonical status string."""

    def __init__(self, field: str = "status"):
        self.field = field

    def resolve(self, raw_record: Mapping[str, Any]) -> BusinessStatus:
        value = raw_record.get(self.field)
        try:
            return BusinessStatus(value)
        except ValueError:
            return BusinessStatus.DRAFT


ORDER_STATUS_MAP = {
    "待收货": BusinessStatus.PENDING_APPROVAL,
    "部分收货": BusinessStatus.PENDING_APPROVAL,
    "收货完成，待结清": BusinessStatus.APPROVED,
}

RECHARGE_STATUS_MAP = {
    "Pending": BusinessStatus.PENDING_APPROVAL,
    "Paid": BusinessStatus.SETTLED,
    "Cancelled": BusinessStatus.CANCELLED,
}

BILL_STATUS_MAP = {
    "Draft": BusinessStatus.DRAFT,
    "Pending_Approval": BusinessStatus.PENDING_APPROVAL,
    "Approved": BusinessStatus.APPROVED,
    "Paid": BusinessStatus.SETTLED,
}


def resolve_consumption_status(raw_record: Mapping[str, Any]) -> BusinessStatus:
    return BusinessStatus.SETTLED if raw_record.get("isSettled") else BusinessStatus.PENDING_APPROVAL


def resolve_cash_flow_status(raw_record: Mapping[str, Any]) -> BusinessStatus:
    # A reversal entry wins over whatever its status field says
    if raw_record.get("isReversal"):
        return BusinessStatus.REVERSED
    status = raw_record.get("status")
    if status == "confirmed":
        return BusinessStatus.SETTLED
    if status == "pending":
        return BusinessStatus.PENDING_APPROVAL
    return BusinessStatus.DRAFT


def resolve_rebate_status(raw_record: Mapping[str, Any]) -> BusinessStatus:
    # "待核销" = awaiting write-off
    if raw_record.get("status") == "待核销":
        return BusinessStatus.PENDING_APPROVAL
    return BusinessStatus.SETTLED


def default_resolver_registry() -> StatusResolverRegistry:
    """Registry covering every EntityType with the built-in resolvers."""
    bill_resolver = MappingStatusResolver("status", BILL_STATUS_MAP)
    canonical = CanonicalStatusResolver()
    return StatusResolverRegistry({
        EntityType.ORDER: MappingStatusResolver("status", ORDER_STATUS_MAP),
        EntityType.RECHARGE: MappingStatusResolver("paymentStatus", RECHARGE_STATUS_MAP),
        EntityType.CONSUMPTION: resolve_consumption_status,
        EntityType.BILL: bill_resolver,
        EntityType.PAYMENT_REQUEST: bill_resolver,
        EntityType.CASH_FLOW: resolve_cash_flow_status,
        EntityType.REBATE: resolve_rebate_status,
        EntityType.SETTLEMENT: canonical,
        EntityType.TRANSFER: canonical,
        EntityType.ADJUSTMENT: canonical,
    })
