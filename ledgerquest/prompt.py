"""Strategic prompt rendering for the decision oracle."""

from typing import Sequence

from ledgerquest.models import (
    AgentIdentity,
    AgentMemory,
    BattlePrediction,
    ItemData,
    ItemROIReport,
    ObservedState,
)

SYSTEM_PROMPT = (
    "You are an AI player in an on-ledger role-playing game. "
    "Each turn you choose exactly one action for your character. "
    "Output ONLY valid JSON: "
    "{\"action\": \"train\" | \"fightMonster\" | \"buyItem\" | \"levelUp\" | \"wait\", "
    "\"reasoning\": \"short explanation\", "
    "\"itemId\": <number, only for buyItem>, "
    "\"confidence\": <number between 0 and 1, optional>}"
)


def _shop_lines(reports: Sequence[ItemROIReport]) -> str:
    lines = []
    for report in reports:
        if report.is_owned:
            lines.append(f"[owned] {report.item_name}")
            continue
        afford = "CAN AFFORD" if report.is_affordable else "CANNOT AFFORD"
        lines.append(
            f"[{report.item_id}] {report.item_name} ({report.cost}g) - "
            f"ROI Score: {report.roi_score:.2f} ({report.recommendation}) - "
            f"Payback: {report.payback_battles} battles - {afford}"
        )
    return "\n".join(lines) or "Shop is empty."


def build_strategy_prompt(
    identity: AgentIdentity,
    state: ObservedState,
    memory: AgentMemory,
    prediction: BattlePrediction,
    reports: Sequence[ItemROIReport],
    catalog: Sequence[ItemData],
) -> str:
    """Render everything the oracle needs for one decision into a user prompt."""
    win_rate = memory.win_rate
    win_rate_str = f"{win_rate * 100:.1f}%" if win_rate is not None else "N/A"

    names = {item.id: item.name for item in catalog}
    owned = ", ".join(names.get(i, f"item #{i}") for i in sorted(memory.owned_items)) or "None"

    if memory.consecutive_wins > 0:
        streak = f"{memory.consecutive_wins} Wins"
    else:
        streak = f"{memory.consecutive_losses} Losses"

    factors = ", ".join(prediction.contributing_factors) or "None"

    return (
        f"--- IDENTITY ---\n"
        f"Name: \"{identity.name}\"\n"
        f"Style: {identity.style}\n"
        f"Background: {identity.background}\n"
        f"Risk Tolerance: {identity.risk_tolerance.value}\n\n"
        f"--- STRATEGIC & CULTURAL DIRECTIVE ---\n"
        f"Your Nationality: {identity.nationality}\n"
        f"Your Core Trait: \"{identity.special_trait}\"\n"
        f"This trait is the most important part of your identity. "
        f"Let it heavily influence your final decision.\n\n"
        f"--- STATUS ---\n"
        f"Level: {state.level}\n"
        f"Gold: {state.gold}\n"
        f"XP: {state.experience}\n"
        f"Strength: {state.strength}\n"
        f"Defense: {state.defense}\n"
        f"Items: {owned}\n\n"
        f"--- HISTORY & PERFORMANCE ---\n"
        f"Win Rate: {win_rate_str} ({memory.battles_won}W / {memory.battles_lost}L)\n"
        f"Current Streak: {streak}\n"
        f"Best Win Streak: {memory.best_win_streak}\n\n"
        f"--- BATTLE INTELLIGENCE ---\n"
        f"Next Battle Win Probability: {prediction.win_probability * 100:.1f}%\n"
        f"Risk Level: {prediction.risk_level.value.upper()}\n"
        f"Recommendation: {prediction.recommendation}\n"
        f"Factors: {factors}\n\n"
        f"--- SHOP ANALYSIS (ROI) ---\n"
        f"{_shop_lines(reports)}\n\n"
        f"--- DECISION ---\n"
        f"Based on your personality and your CULTURAL DIRECTIVE, what is your next action? "
        f"Respond with a JSON object with \"action\" and \"reasoning\" fields "
        f"(and \"itemId\" when buying).\n"
        f"Example: {{\"action\": \"fightMonster\", \"reasoning\": \"These odds are a worthy challenge.\"}}"
    )
