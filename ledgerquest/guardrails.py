"""Deterministic safety rules applied to every oracle proposal.

Rules are checked in order and the first match wins:

  | # | When                                             | Replacement                        |
  |---|--------------------------------------------------|------------------------------------|
  | 1 | fightMonster, losses >= max_consecutive_losses   | train, "loss-streak override"      |
  | 2 | fightMonster, gold < min_gold_for_fight          | train, "insufficient-gold override"|
  | 3 | buyItem, item cost > gold                        | train, "unaffordable-item override"|
  | 4 | buyItem, item id not in the catalog              | train, "unknown-item override"     |
  | 5 | anything else                                    | unchanged                          |

review_decision() is pure and total: it never raises and never touches I/O.
Logging of overrides happens in the scheduler, which owns the turn context.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from ledgerquest.config import GuardrailSettings
from ledgerquest.models import (
    ActionKind,
    AgentMemory,
    Decision,
    GuardrailOverride,
    ItemData,
    ObservedState,
)

LOSS_STREAK = "loss-streak override"
INSUFFICIENT_GOLD = "insufficient-gold override"
UNAFFORDABLE_ITEM = "unaffordable-item override"
UNKNOWN_ITEM = "unknown-item override"


@dataclass(frozen=True)
class GuardrailVerdict:
    decision: Decision
    override: Optional[GuardrailOverride] = None

    @property
    def overridden(self) -> bool:
        return self.override is not None


def _replace(original: Decision, rule: str) -> GuardrailVerdict:
    replacement = Decision(action=ActionKind.TRAIN, reasoning=rule)
    return GuardrailVerdict(
        decision=replacement,
        override=GuardrailOverride(rule=rule, original=original, replacement=replacement),
    )


def review_decision(
    decision: Decision,
    state: ObservedState,
    memory: AgentMemory,
    guardrails: GuardrailSettings,
    catalog: Sequence[ItemData],
) -> GuardrailVerdict:
    if decision.action is ActionKind.FIGHT_MONSTER:
        if memory.consecutive_losses >= guardrails.max_consecutive_losses:
            return _replace(decision, LOSS_STREAK)
        if state.gold < guardrails.min_gold_for_fight:
            return _replace(decision, INSUFFICIENT_GOLD)

    if decision.action is ActionKind.BUY_ITEM:
        item = next((i for i in catalog if i.id == decision.item_id), None)
        if item is not None and item.cost > state.gold:
            return _replace(decision, UNAFFORDABLE_ITEM)
        if item is None:
            return _replace(decision, UNKNOWN_ITEM)

    return GuardrailVerdict(decision=decision)
