"""
Sale status state machine.

The TRANSITIONS mapping is the only place that says which status a sale can
move to. There is no "set status" operation: a status change always goes
through one of the four actions below.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from storeback.domain.errors import FieldError, InvalidTransitionError


class SaleStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELED = "canceled"
    RETURNED = "returned"


class SaleAction(str, Enum):
    CANCEL = "cancel"
    COMPLETE = "complete"
    RETURN = "return"
    ACTIVATE = "activate"


@dataclass(frozen=True)
class Transition:
    sources: frozenset[SaleStatus]
    target: SaleStatus
    rule: str


SALE_STATUSES: frozenset[str] = frozenset(s.value for s in SaleStatus)
INITIAL_STATUS = SaleStatus.ACTIVE

TRANSITIONS: Mapping[SaleAction, Transition] = MappingProxyType(
    {
        SaleAction.CANCEL: Transition(
            frozenset({SaleStatus.ACTIVE}), SaleStatus.CANCELED, "only active sales can be canceled"
        ),
        SaleAction.COMPLETE: Transition(
            frozenset({SaleStatus.ACTIVE}), SaleStatus.COMPLETED, "only active sales can be completed"
        ),
        SaleAction.RETURN: Transition(
            frozenset({SaleStatus.COMPLETED}), SaleStatus.RETURNED, "only completed sales can be returned"
        ),
        SaleAction.ACTIVATE: Transition(
            frozenset({SaleStatus.CANCELED, SaleStatus.RETURNED}),
            SaleStatus.ACTIVE,
            "only canceled or returned sales can be activated",
        ),
    }
)


def status_value(status: str | SaleStatus) -> str:
    return status.value if isinstance(status, SaleStatus) else str(status)


def can_transition(current: str, action: SaleAction) -> bool:
    return status_value(current) in {s.value for s in TRANSITIONS[action].sources}


def next_status(current: str, action: SaleAction) -> SaleStatus:
    """Return the status `action` leads to, or raise InvalidTransitionError."""
    transition = TRANSITIONS[action]
    if not can_transition(current, action):
        raise InvalidTransitionError(
            transition.rule,
            errors=[FieldError("status", f"{transition.rule} (current: {status_value(current)})")],
        )
    return transition.target
