from __future__ import annotations

from ..core.enums import BreakStatus
from ..core.exceptions import InvalidStateTransition, StateConflict

BREAK_TRANSITIONS = {
    BreakStatus.PENDING: frozenset({BreakStatus.APPROVED, BreakStatus.REJECTED, BreakStatus.CANCELLED}),
    BreakStatus.APPROVED: frozenset({BreakStatus.ACTIVE, BreakStatus.CANCELLED}),
    BreakStatus.ACTIVE: frozenset({BreakStatus.COMPLETED, BreakStatus.CANCELLED}),
    BreakStatus.REJECTED: frozenset(),
    BreakStatus.COMPLETED: frozenset(),
    BreakStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in BREAK_TRANSITIONS.items() if not targets)


def can_transition(current: BreakStatus, target: BreakStatus) -> bool:
    return target in BREAK_TRANSITIONS[current]


def ensure_transition(current: BreakStatus, target: BreakStatus, *, break_id: int | None = None) -> None:
    if not can_transition(current, target):
        raise InvalidStateTransition(
            f"Break request cannot move from {current.value} to {target.value}",
            entity="break_request",
            break_id=break_id,
            current=current.value,
            target=target.value,
        )


def ensure_applied(applied: bool, *, break_id: int, expected: BreakStatus) -> None:
    """A conditional update that touched no row lost a race with another writer."""

    if not applied:
        raise StateConflict(break_id=break_id, expected=expected.value)
