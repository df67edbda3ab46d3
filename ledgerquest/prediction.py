"""Battle outcome predictor.

Deterministic and side-effect free so the same stats + history always give
the same prediction (tests rely on exact values).

  win_p = 0.5
        + (strength + defense - 20) * 0.005
        + (win_rate - 0.5) * 0.2          if more than 5 battles fought
        + consecutive_wins * 0.05         if on a 2+ win streak
        - consecutive_losses * 0.07       if on a 2+ loss streak
  clamped to [0.05, 0.95]
"""

from ledgerquest.models import AgentMemory, BattlePrediction, RiskLevel

BASE_WIN_PROBABILITY = 0.5
POWER_BASELINE = 20
POWER_WEIGHT = 0.005
STRONG_POWER_SCORE = 30
HISTORY_MIN_BATTLES = 5
HISTORY_WEIGHT = 0.2
STREAK_MIN = 2
HOT_STREAK_BONUS = 0.05
COLD_STREAK_PENALTY = 0.07
MIN_WIN_PROBABILITY = 0.05
MAX_WIN_PROBABILITY = 0.95

# Expected value model for a single fight
WIN_GOLD = 40
LOSS_GOLD = 20
WIN_XP = 25
BASE_XP = 5

_RECOMMENDATIONS: dict[RiskLevel, str] = {
    RiskLevel.LOW: "Favorable odds",
    RiskLevel.MEDIUM: "Calculated risk",
    RiskLevel.HIGH: "High risk, not recommended",
}


def classify_risk(win_probability: float) -> RiskLevel:
    if win_probability > 0.7:
        return RiskLevel.LOW
    if win_probability > 0.45:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def predict_battle_outcome(strength: int, defense: int, memory: AgentMemory) -> BattlePrediction:
    """Estimate the odds of winning the next fightMonster.

    Args:
        strength: Current on-ledger strength (>= 0).
        defense: Current on-ledger defense (>= 0).
        memory: The agent's battle history and streaks.

    Returns:
        A BattlePrediction with the clamped probability, risk band,
        expected gold/xp deltas and the factors that moved the estimate.

    Raises:
        ValueError: If strength or defense is negative.
    """
    if strength < 0 or defense < 0:
        raise ValueError(f"stats must be non-negative (strength={strength}, defense={defense})")

    factors: list[str] = []
    win_p = BASE_WIN_PROBABILITY

    power_score = strength + defense
    win_p += (power_score - POWER_BASELINE) * POWER_WEIGHT
    if power_score > STRONG_POWER_SCORE:
        factors.append(f"Strong Power Score ({power_score})")

    total_battles = memory.battles_won + memory.battles_lost
    if total_battles > HISTORY_MIN_BATTLES:
        historical_rate = memory.battles_won / total_battles
        win_p += (historical_rate - 0.5) * HISTORY_WEIGHT
        factors.append(f"Historical Win Rate: {historical_rate * 100:.0f}%")

    if memory.consecutive_wins >= STREAK_MIN:
        win_p += memory.consecutive_wins * HOT_STREAK_BONUS
        factors.append(f"Hot Streak ({memory.consecutive_wins} wins)")

    if memory.consecutive_losses >= STREAK_MIN:
        win_p -= memory.consecutive_losses * COLD_STREAK_PENALTY
        factors.append(f"Cold Streak ({memory.consecutive_losses} losses)")

    win_p = max(MIN_WIN_PROBABILITY, min(MAX_WIN_PROBABILITY, win_p))
    risk = classify_risk(win_p)

    return BattlePrediction(
        win_probability=win_p,
        expected_gold_change=win_p * WIN_GOLD - (1 - win_p) * LOSS_GOLD,
        expected_xp_change=win_p * WIN_XP + BASE_XP,
        risk_level=risk,
        recommendation=_RECOMMENDATIONS[risk],
        contributing_factors=factors,
    )
