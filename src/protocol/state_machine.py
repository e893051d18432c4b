"""
Business Status State Machine

One transition table shared by every entity type. No entity type may
override it; per-type differences live only in the status resolvers that
map a raw domain status onto these canonical states.

States:
- DRAFT: Being edited, not yet submitted
- SUBMITTED: Handed in, awaiting routing to approval
- PENDING_APPROVAL: Awaiting an approver
- APPROVED: Approved, not yet settled
- REJECTED: Sent back to the author
- SETTLED: Money has moved / obligation cleared
- REVERSED: Undone by a reversal entry (terminal)
- CANCELLED: Abandoned (terminal)

Every function here is pure. Committing a new status onto the owning
record is the caller's job.
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional, Union

from src.models.enums import BusinessAction, BusinessStatus
from src.models.trace import StatusInfo, TransitionResult

logger = logging.getLogger(__name__)

StatusLike = Union[BusinessStatus, str]


# Valid state transitions
STATUS_TRANSITIONS: Mapping[BusinessStatus, frozenset[BusinessStatus]] = MappingProxyType({
    BusinessStatus.DRAFT: frozenset({
        BusinessStatus.SUBMITTED,
        BusinessStatus.CANCELLED,
    }),
    BusinessStatus.SUBMITTED: frozenset({
        BusinessStatus.PENDING_APPROVAL,
        BusinessStatus.DRAFT,  # Withdrawn
        BusinessStatus.CANCELLED,
    }),
    BusinessStatus.PENDING_APPROVAL: frozenset({
        BusinessStatus.APPROVED,
        BusinessStatus.REJECTED,
        BusinessStatus.CANCELLED,
    }),
    BusinessStatus.APPROVED: frozenset({
        BusinessStatus.SETTLED,
        BusinessStatus.REVERSED,
    }),
    BusinessStatus.REJECTED: frozenset({
        BusinessStatus.DRAFT,  # Reworked
        BusinessStatus.CANCELLED,
    }),
    BusinessStatus.SETTLED: frozenset({
        BusinessStatus.REVERSED,
    }),
    BusinessStatus.REVERSED: frozenset(),
    BusinessStatus.CANCELLED: frozenset(),
})

# Table order, used to render allowed-state lists deterministically
_STATUS_ORDER = {status: index for index, status in enumerate(BusinessStatus)}

STATUS_LABELS: Mapping[BusinessStatus, str] = MappingProxyType({
    BusinessStatus.DRAFT: "草稿",
    BusinessStatus.SUBMITTED: "已提交",
    BusinessStatus.PENDING_APPROVAL: "审批中",
    BusinessStatus.APPROVED: "已批准",
    BusinessStatus.REJECTED: "已退回",
    BusinessStatus.SETTLED: "已结清",
    BusinessStatus.REVERSED: "已冲销",
    BusinessStatus.CANCELLED: "已取消",
})

_EDITABLE = frozenset({BusinessStatus.DRAFT, BusinessStatus.REJECTED})
_NOT_CANCELLABLE = frozenset({
    BusinessStatus.SETTLED,
    BusinessStatus.REVERSED,
    BusinessStatus.CANCELLED,
})

ACTION_RULES: Mapping[BusinessAction, frozenset[BusinessStatus]] = MappingProxyType({
    BusinessAction.EDIT: _EDITABLE,
    BusinessAction.SUBMIT: _EDITABLE,
    BusinessAction.APPROVE: frozenset({BusinessStatus.PENDING_APPROVAL}),
    BusinessAction.REJECT: frozenset({BusinessStatus.PENDING_APPROVAL}),
    BusinessAction.SETTLE: frozenset({BusinessStatus.APPROVED}),
    BusinessAction.REVERSE: frozenset({BusinessStatus.APPROVED, BusinessStatus.SETTLED}),
    BusinessAction.CANCEL: frozenset(BusinessStatus) - _NOT_CANCELLABLE,
})


def _coerce_status(status: StatusLike) -> Optional[BusinessStatus]:
    if isinstance(status, BusinessStatus):
        return status
    try:
        return BusinessStatus(status)
    except ValueError:
        return None


def _sorted(statuses: frozenset[BusinessStatus]) -> list[BusinessStatus]:
    return sorted(statuses, key=_STATUS_ORDER.__getitem__)


def available_transitions(status: StatusLike) -> frozenset[BusinessStatus]:
    """Legal next states from ``status`` (empty for terminal or unknown)."""
    current = _coerce_status(status)
    if current is None:
        return frozenset()
    return STATUS_TRANSITIONS[current]


def is_terminal(status: StatusLike) -> bool:
    current = _coerce_status(status)
    return current is not None and not STATUS_TRANSITIONS[current]


def can_transition(from_status: StatusLike, to_status: StatusLike) -> bool:
    """Check if ``from_status -> to_status`` is in the transition table."""
    target = _coerce_status(to_status)
    return target is not None and target in available_transitions(from_status)


def _label(status: BusinessStatus) -> str:
    return f"{status.value}({STATUS_LABELS[status]})"


def transition(
    from_status: StatusLike,
    to_status: StatusLike,
    reason: Optional[str] = None,
) -> TransitionResult:
    """
    Validate a proposed status change.

    Same-state requests succeed as a no-op. Illegal requests fail with a
    message listing the legal next states for ``from_status``.
    """
    current = _coerce_status(from_status)
    target = _coerce_status(to_status)

    if current is None:
        return TransitionResult(
            success=False,
            message=f"Unknown current status: {from_status!r}",
        )
    allowed = _sorted(STATUS_TRANSITIONS[current])
    if target is None:
        return TransitionResult(
            success=False,
            message=f"Unknown target status: {to_status!r}",
            previous_status=current,
            allowed=allowed,
        )

    if current == target:
        return TransitionResult(
            success=True,
            message="Status unchanged",
            previous_status=current,
            new_status=target,
            allowed=allowed,
        )

    if target not in STATUS_TRANSITIONS[current]:
        legal = ", ".join(_label(s) for s in allowed) or "none"
        return TransitionResult(
            success=False,
            message=(
                f"Cannot transition from {_label(current)} to {_label(target)}. "
                f"Allowed transitions: {legal}"
            ),
            previous_status=current,
            allowed=allowed,
        )

    return TransitionResult(
        success=True,
        message=reason or f"Status changed from {_label(current)} to {_label(target)}",
        previous_status=current,
        new_status=target,
        allowed=allowed,
    )


def safe_transition(
    from_status: StatusLike,
    to_status: StatusLike,
    entity_uid: str,
    reason: Optional[str] = None,
) -> TransitionResult:
    """``transition`` plus a log line naming the entity."""
    result = transition(from_status, to_status, reason)
    if result.success:
        logger.info("Status transition %s: %s", entity_uid, result.message)
    else:
        logger.warning("Status transition rejected %s: %s", entity_uid, result.message)
    return result


def can_perform_action(status: StatusLike, action: Union[BusinessAction, str]) -> bool:
    """
    Check whether a user action is allowed in ``status``.

    Unknown statuses or action names are never allowed.
    """
    current = _coerce_status(status)
    try:
        act = BusinessAction(action)
    except ValueError:
        return False
    return current is not None and current in ACTION_RULES[act]


def get_status_info(status: StatusLike) -> StatusInfo:
    """
    Label and next states for display.

    Raises:
        ValueError: if status is not a canonical status
    """
    current = _coerce_status(status)
    if current is None:
        raise ValueError(f"Unknown status: {status!r}")
    return StatusInfo(
        status=current,
        label=STATUS_LABELS[current],
        available_transitions=_sorted(STATUS_TRANSITIONS[current]),
        terminal=is_terminal(current),
    )
