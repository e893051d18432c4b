"""Status state machine package."""

from src.protocol.state_machine import (
    ACTION_RULES,
    STATUS_LABELS,
    STATUS_TRANSITIONS,
    available_transitions,
    can_perform_action,
    can_transition,
    get_status_info,
    is_terminal,
    safe_transition,
    transition,
)

__all__ = [
    "ACTION_RULES",
    "STATUS_LABELS",
    "STATUS_TRANSITIONS",
    "available_transitions",
    "can_perform_action",
    "can_transition",
    "get_status_info",
    "is_terminal",
    "safe_transition",
    "transition",
]
