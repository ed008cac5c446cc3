"""
Completion Status State Machine

Shared by question completions and assignment completions.

State Flow: pending ⇄ inProgress → completed (terminal)

A record that has reached COMPLETED never moves again. Every other state
may be overwritten by any state, including itself.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union


class CompletionStatus(str, Enum):
    """Status of a student's work on one question or assignment."""
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self is CompletionStatus.COMPLETED


class InvalidStatusError(ValueError):
    """Raised when a status string is not one of the known values."""

    def __init__(self, value: str):
        self.value = value
        allowed = ", ".join(s.value for s in CompletionStatus)
        super().__init__(f"Invalid status '{value}'. Must be one of: {allowed}")


_ANY = frozenset(CompletionStatus)

TRANSITIONS: Dict[CompletionStatus, FrozenSet[CompletionStatus]] = {
    CompletionStatus.PENDING: _ANY,
    CompletionStatus.IN_PROGRESS: _ANY,
    CompletionStatus.COMPLETED: frozenset(),
}


def parse_status(value: Union[str, CompletionStatus]) -> CompletionStatus:
    """
    Coerce a wire value into a CompletionStatus.

    Raises:
        InvalidStatusError: unknown status string
    """
    if isinstance(value, CompletionStatus):
        return value
    try:
        return CompletionStatus(value)
    except ValueError:
        raise InvalidStatusError(value) from None


def can_transition(
    current: Optional[CompletionStatus],
    target: CompletionStatus
) -> bool:
    """
    Check whether a record in `current` may move to `target`.

    `current` is None when no record exists yet; every target is allowed.
    """
    if current is None:
        return True
    return target in TRANSITIONS[current]


def allowed_targets(current: Optional[CompletionStatus]) -> FrozenSet[CompletionStatus]:
    if current is None:
        return _ANY
    return TRANSITIONS[current]


def sources_for(target: CompletionStatus) -> FrozenSet[CompletionStatus]:
    """
    States a stored record may be in for a write to `target` to apply.

    Conditional UPDATEs use this as their WHERE guard, so the table above
    is the single source of the terminal rule.
    """
    return frozenset(
        current for current, allowed in TRANSITIONS.items() if target in allowed
    )
