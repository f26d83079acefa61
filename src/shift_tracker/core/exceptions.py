"""Typed failures returned to callers.

Every error carries a stable ``code`` (the message key clients translate),
an HTTP-ish ``status_code`` and a ``context`` dict with the numbers a client
needs to explain the denial.
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400
    code = "errors.badRequest"
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "context": dict(self.context)}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when no principal was injected for the request."""

    status_code = 401
    code = "errors.unauthorized"
    default_message = "Authentication required"


class AuthorizationError(DomainError):
    """Raised when a principal lacks permission for an action."""

    status_code = 403
    code = "errors.forbidden"
    default_message = "You are not allowed to perform this action"


class NotFoundError(DomainError):
    status_code = 404
    code = "errors.notFound"
    default_message = "Resource not found"


class ConflictError(DomainError):
    status_code = 409
    code = "errors.conflict"
    default_message = "Operation conflicts with the current state"


class PolicyViolation(ValidationError):
    """A named rule denied the request; ``rule`` identifies it."""

    rule = "policy"
    code = "shift.policyViolation"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["rule"] = self.rule
        return data


class InvalidStateTransition(ValidationError):
    code = "shift.invalidStateTransition"
    default_message = "Invalid state transition"


class StateConflict(ConflictError):
    """Someone else changed the row between our read and our write."""

    code = "shift.stateConflict"
    default_message = "The record was modified concurrently, reload and retry"


# -------- Session manager --------
class AgentNotFound(NotFoundError):
    code = "shift.agentNotFound"
    default_message = "Agent not found"


class NoShiftAssigned(ValidationError):
    code = "shift.noShiftAssigned"
    default_message = "No shift is assigned to this agent"


class ShiftNotFound(NotFoundError):
    code = "shift.shiftNotFound"
    default_message = "Shift not found"


class AlreadyCheckedIn(ConflictError):
    code = "shift.alreadyCheckedIn"
    default_message = "Already checked in today"


class TooLateToCheckIn(PolicyViolation):
    rule = "max_late"
    code = "shift.tooLateToCheckIn"
    default_message = "Too late to check in for this shift"


class NoActiveSession(NotFoundError):
    code = "shift.noActiveSession"
    default_message = "No active session for today"


class CannotCheckOutOnBreak(ConflictError):
    code = "shift.cannotCheckOutOnBreak"
    default_message = "End the current break before checking out"


class AlreadyCheckedOut(ConflictError):
    code = "shift.alreadyCheckedOut"
    default_message = "Already checked out today"


class SessionNotFound(NotFoundError):
    code = "shift.sessionNotFound"
    default_message = "Session not found"


# -------- Break policy engine --------
class BreakWithoutSession(ValidationError):
    """Break operations need an open session; same code as ``NoActiveSession``."""

    code = "shift.noActiveSession"
    default_message = "No active session for today"


class AlreadyOnBreak(ConflictError):
    code = "shift.alreadyOnBreak"
    default_message = "Already on break"


class BreakRequestAlreadyPending(ConflictError):
    code = "shift.breakRequestAlreadyPending"
    default_message = "A break request is already waiting for review"


class BreakPolicyNotFound(NotFoundError):
    code = "shift.breakPolicyNotFound"
    default_message = "No break policy configured for this shift"


class BreakTooShort(PolicyViolation):
    rule = "min_duration"
    code = "shift.breakTooShort"
    default_message = "Requested break is shorter than the minimum duration"


class BreakTooLong(PolicyViolation):
    rule = "max_duration"
    code = "shift.breakTooLong"
    default_message = "Requested break is longer than the maximum duration"


class MaxBreaksReached(PolicyViolation):
    rule = "max_breaks"
    code = "shift.maxBreaksReached"
    default_message = "Maximum number of breaks for today reached"


class BreakCooldownActive(PolicyViolation):
    rule = "cooldown"
    code = "shift.breakCooldownActive"
    default_message = "Too soon after the previous break"


class BreakTypeNotAllowed(PolicyViolation):
    rule = "break_type"
    code = "shift.breakTypeNotAllowed"
    default_message = "Break type not allowed for this shift"


# -------- Approval workflow --------
class BreakRequestNotFound(NotFoundError):
    code = "shift.breakRequestNotFound"
    default_message = "Break request not found"


class BreakNotPending(InvalidStateTransition):
    code = "shift.breakNotPending"
    default_message = "Break request is not pending"


class BreakRequestRejected(InvalidStateTransition):
    code = "shift.breakRequestRejected"
    default_message = "Break request was rejected"


class BreakNotApproved(InvalidStateTransition):
    code = "shift.breakNotApproved"
    default_message = "Break request is not approved yet"


class BreakAlreadyActive(ConflictError):
    code = "shift.breakAlreadyActive"
    default_message = "Break is already active"


class NoActiveBreak(NotFoundError):
    code = "shift.noActiveBreak"
    default_message = "No active break"
