from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import BreakPolicy, Shift


class ShiftRepository(Protocol):
    def list_all(self) -> Sequence[Shift]:
        raise NotImplementedError

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        raise NotImplementedError


class BreakPolicyRepository(Protocol):
    def get_for_shift(self, shift_id: int) -> Optional[BreakPolicy]:
        raise NotImplementedError
