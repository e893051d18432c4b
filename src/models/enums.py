"""Enumeration types for the lineage core."""

from enum import Enum


class EntityType(str, Enum):
    """Closed set of business entity tags used as the UID prefix."""
    ORDER = "ORDER"                      # Purchase order
    RECHARGE = "RECHARGE"                # Ad account recharge
    CONSUMPTION = "CONSUMPTION"          # Ad spend consumption
    BILL = "BILL"                        # Monthly bill
    PAYMENT_REQUEST = "PAYMENT_REQUEST"
    CASH_FLOW = "CASH_FLOW"
    SETTLEMENT = "SETTLEMENT"
    REBATE = "REBATE"
    TRANSFER = "TRANSFER"                # Internal transfer between accounts
    ADJUSTMENT = "ADJUSTMENT"


class BusinessStatus(str, Enum):
    """Canonical status shared by every entity type."""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SETTLED = "SETTLED"
    REVERSED = "REVERSED"      # Terminal
    CANCELLED = "CANCELLED"    # Terminal


class BusinessAction(str, Enum):
    """User-facing actions gated by the current status."""
    EDIT = "edit"
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    SETTLE = "settle"
    REVERSE = "reverse"
    CANCEL = "cancel"


class RelationType(str, Enum):
    """Well-known relation tags. Any non-empty string is also accepted."""
    PAYMENT = "PAYMENT"
    SETTLEMENT = "SETTLEMENT"
    REVERSAL = "REVERSAL"
    RECHARGE = "RECHARGE"
    CONSUMPTION = "CONSUMPTION"
    BILLING = "BILLING"
    REBATE = "REBATE"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    RELATED = "RELATED"        # Fallback when the caller gives no type


ENTITY_TYPE_LABELS: dict[EntityType, str] = {
    EntityType.ORDER: "采购订单",
    EntityType.RECHARGE: "充值记录",
    EntityType.CONSUMPTION: "消耗记录",
    EntityType.BILL: "账单",
    EntityType.PAYMENT_REQUEST: "付款申请",
    EntityType.CASH_FLOW: "财务流水",
    EntityType.SETTLEMENT: "结算记录",
    EntityType.REBATE: "返点记录",
    EntityType.TRANSFER: "内部划拨",
    EntityType.ADJUSTMENT: "调整记录",
}
