"""Break policy rules.

Each rule looks at one limit of the :class:`BreakPolicy`. Rules run in a
fixed order and the first blocking violation is raised as its own typed
error; advisory rules only add a diagnostic code to the request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from ..common.datetime_utils import minutes_between, within_window
from ..core.enums import BreakType
from ..core.exceptions import (
    BreakCooldownActive,
    BreakTooLong,
    BreakTooShort,
    BreakTypeNotAllowed,
    MaxBreaksReached,
    PolicyViolation,
)
from ..shifts.model import BreakPolicy


@dataclass(frozen=True)
class BreakRequestContext:
    policy: BreakPolicy
    break_type: BreakType
    requested_duration: int
    now: datetime
    breaks_taken: int = 0
    last_break_end: Optional[datetime] = None


@dataclass(frozen=True)
class RuleViolation:
    code: str
    error: Optional[PolicyViolation] = None

    @property
    def blocking(self) -> bool:
        return self.error is not None


class BreakRule(ABC):
    code: str = "rule"

    @abstractmethod
    def check(self, ctx: BreakRequestContext) -> Optional[RuleViolation]:
        raise NotImplementedError


class MinDurationRule(BreakRule):
    code = "min_duration"

    def check(self, ctx: BreakRequestContext) -> Optional[RuleViolation]:
        if ctx.requested_duration < ctx.policy.min_duration:
            return RuleViolation(
                self.code,
                BreakTooShort(min_duration=ctx.policy.min_duration, requested=ctx.requested_duration),
            )
        return None


class MaxDurationRule(BreakRule):
    code = "max_duration"

    def check(self, ctx: BreakRequestContext) -> Optional[RuleViolation]:
        if ctx.requested_duration > ctx.policy.max_duration:
            return RuleViolation(
                self.code,
                BreakTooLong(max_duration=ctx.policy.max_duration, requested=ctx.requested_duration),
            )
        return None


class MaxBreaksPerDayRule(BreakRule):
    code = "max_breaks"

    def check(self, ctx: BreakRequestContext) -> Optional[RuleViolation]:
        if ctx.breaks_taken >= ctx.policy.max_breaks_per_day:
            return RuleViolation(
                self.code,
                MaxBreaksReached(max_breaks=ctx.policy.max_breaks_per_day, taken=ctx.breaks_taken),
            )
        return None


class CooldownRule(BreakRule):
    code = "cooldown"

    def check(self, ctx: BreakRequestContext) -> Optional[RuleViolation]:
        if ctx.last_break_end is None or ctx.policy.cooldown_minutes <= 0:
            return None
        remaining = ctx.policy.cooldown_minutes - minutes_between(ctx.last_break_end, ctx.now)
        if remaining > 0:
            return RuleViolation(
                self.code,
                BreakCooldownActive(cooldown_minutes=ctx.policy.cooldown_minutes, remaining_minutes=remaining),
            )
        return None


class AllowedTypeRule(BreakRule):
    code = "break_type"

    def check(self, ctx: BreakRequestContext) -> Optional[RuleViolation]:
        if ctx.break_type not in ctx.policy.allowed_break_types:
            allowed = sorted(t.value for t in ctx.policy.allowed_break_types)
            return RuleViolation(self.code, BreakTypeNotAllowed(type=ctx.break_type.value, allowed_types=allowed))
        return None


class PreferredWindowRule(BreakRule):
    """Advisory: breaks outside the preferred window are flagged, never refused."""

    code = "preferred_window"

    def check(self, ctx: BreakRequestContext) -> Optional[RuleViolation]:
        policy = ctx.policy
        if within_window(ctx.now.time(), policy.preferred_start_time, policy.preferred_end_time):
            return None
        return RuleViolation(self.code)


DEFAULT_RULES: Sequence[BreakRule] = (
    MinDurationRule(),
    MaxDurationRule(),
    MaxBreaksPerDayRule(),
    CooldownRule(),
    AllowedTypeRule(),
    PreferredWindowRule(),
)


def evaluate_rules(ctx: BreakRequestContext, rules: Sequence[BreakRule] = DEFAULT_RULES) -> List[str]:
    """Raise the first blocking violation; return advisory codes otherwise."""

    advisories: List[str] = []
    for rule in rules:
        violation = rule.check(ctx)
        if violation is None:
            continue
        if violation.blocking:
            raise violation.error
        advisories.append(violation.code)
    return advisories
