from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Final, Optional


class WizardStep(IntEnum):
    SELECT_PARTY = 1
    BUILD_ITEMS = 2
    FINALIZE = 3


FORWARD: Final[dict[WizardStep, WizardStep]] = {
    WizardStep.SELECT_PARTY: WizardStep.BUILD_ITEMS,
    WizardStep.BUILD_ITEMS: WizardStep.FINALIZE,
}

BACKWARD: Final[dict[WizardStep, WizardStep]] = {
    WizardStep.FINALIZE: WizardStep.BUILD_ITEMS,
    WizardStep.BUILD_ITEMS: WizardStep.SELECT_PARTY,
}


@dataclass(frozen=True)
class Transition:
    accepted: bool
    step: WizardStep
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.accepted


def can_advance(step: WizardStep, *, party_ref: Optional[str], item_count: int) -> bool:
    if step is WizardStep.SELECT_PARTY:
        return bool(party_ref)
    if step is WizardStep.BUILD_ITEMS:
        return item_count > 0
    # FINALIZE ne se quitte que par commit
    return False


def advance(step: WizardStep, *, party_ref: Optional[str], item_count: int) -> Transition:
    if step not in FORWARD:
        return Transition(False, step, "last step, commit instead")
    if not can_advance(step, party_ref=party_ref, item_count=item_count):
        reason = "no customer selected" if step is WizardStep.SELECT_PARTY else "no line items"
        return Transition(False, step, reason)
    return Transition(True, FORWARD[step])


def back(step: WizardStep) -> Transition:
    if step not in BACKWARD:
        return Transition(False, step, "first step, cancel instead")
    return Transition(True, BACKWARD[step])
