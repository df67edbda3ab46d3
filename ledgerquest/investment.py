"""Shop item ROI analysis.

Each catalog item is scored on its own; ranking and the final pick are the
oracle's job (the analysis is rendered into its prompt).
"""

import math
from typing import Sequence

from ledgerquest.models import AgentMemory, ItemData, ItemROIReport, ObservedState

WIN_RATE_PER_POWER_RATIO = 0.5
GOLD_PER_WIN_RATE = 60
IMPRACTICAL_PAYBACK = 999


def _recommend(roi_score: float) -> str:
    if roi_score > 1:
        return "High Value"
    if roi_score > 0.5:
        return "Good Value"
    return "Low Value"


def analyze_item_roi(item: ItemData, state: ObservedState, memory: AgentMemory) -> ItemROIReport:
    """Score one upgrade against the player's current stats.

    A player with zero combined power gets a zero power increase rather than
    a division by zero, which makes the payback IMPRACTICAL_PAYBACK.
    """
    current_power = state.strength + state.defense
    bonus_power = item.strength + item.defense

    if current_power > 0:
        power_increase = (current_power + bonus_power) / current_power - 1
    else:
        power_increase = 0.0

    expected_win_rate_increase = power_increase * WIN_RATE_PER_POWER_RATIO
    gold_per_battle_increase = expected_win_rate_increase * GOLD_PER_WIN_RATE

    if gold_per_battle_increase > 0:
        payback = math.ceil(item.cost / gold_per_battle_increase)
    else:
        payback = IMPRACTICAL_PAYBACK

    roi_score = bonus_power / item.cost * 100 if item.cost > 0 else 0.0

    return ItemROIReport(
        item_id=item.id,
        item_name=item.name,
        cost=item.cost,
        is_owned=item.id in memory.owned_items,
        is_affordable=state.gold >= item.cost,
        expected_win_rate_increase=expected_win_rate_increase,
        payback_battles=payback,
        roi_score=roi_score,
        recommendation=_recommend(roi_score),
    )


def analyze_shop(
    catalog: Sequence[ItemData],
    state: ObservedState,
    memory: AgentMemory,
) -> list[ItemROIReport]:
    """Analyze every catalog item, preserving catalog order."""
    return [analyze_item_roi(item, state, memory) for item in catalog]
