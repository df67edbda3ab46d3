"""
models.py: Single Source of Truth for ledgerquest data shapes.

This file contains ONLY:
  1. Enums shared across the turn pipeline (ActionKind, RiskLevel)
  2. Pydantic models for ledger observations, decisions, outcomes, memory
     and the analysis reports handed to the oracle

It does NOT contain:
  - Settings / config loading (see config.py)
  - Business logic: prediction, guardrails, memory updates live in their
    own modules and only *produce* these models.

Invariants enforced here:
  - AgentMemory is frozen. The only way to get a new one is
    memory.update_memory(), which returns a fresh value.
  - Decision.item_id is only meaningful for BUY_ITEM.
"""

import enum
import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# ENUMS
# ============================================================================

class ActionKind(str, enum.Enum):
    CREATE_PLAYER = "createPlayer"
    TRAIN = "train"
    FIGHT_MONSTER = "fightMonster"
    BUY_ITEM = "buyItem"
    LEVEL_UP = "levelUp"
    WAIT = "wait"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ============================================================================
# IDENTITY + OBSERVATION
# ============================================================================

class AgentIdentity(BaseModel):
    """One controlled ledger account and the personality that plays it.

    Identities are built once at startup by profiles.assign_identities()
    and never change for the lifetime of the process.
    """
    model_config = ConfigDict(frozen=True)

    address: str = Field(..., min_length=1)
    name: str
    nationality: str
    background: str
    style: str
    risk_tolerance: RiskLevel
    special_trait: str


class ObservedState(BaseModel):
    """Player stats read from the ledger at the start of a turn."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    level: int = Field(default=0, ge=0)
    experience: int = Field(default=0, ge=0)
    gold: int = Field(default=0, ge=0)
    strength: int = Field(default=0, ge=0)
    defense: int = Field(default=0, ge=0)
    exists: bool = False


class ItemData(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    name: str = Field(..., min_length=1)
    cost: int = Field(..., ge=0)
    strength: int = Field(default=0, ge=0)
    defense: int = Field(default=0, ge=0)


class Receipt(BaseModel):
    """Confirmation returned by the ledger after a submitted action lands."""
    tx_hash: str
    status: str = "confirmed"
    gas_used: Optional[int] = None
    raw: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# DECISIONS
# ============================================================================

class Decision(BaseModel):
    """An action choice, either proposed by the oracle or validated by guardrails."""
    model_config = ConfigDict(frozen=True)

    action: ActionKind
    item_id: Optional[int] = Field(default=None, ge=0)
    reasoning: str = Field(..., min_length=1)
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def item_only_for_purchases(self) -> "Decision":
        if self.item_id is not None and self.action is not ActionKind.BUY_ITEM:
            raise ValueError("item_id is only valid for buyItem decisions")
        return self


class GuardrailOverride(BaseModel):
    """Audit record of a guardrail substitution. Not an error."""
    model_config = ConfigDict(frozen=True)

    rule: str
    original: Decision
    replacement: Decision


# ============================================================================
# OUTCOMES + MEMORY
# ============================================================================

class ActionOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: ActionKind
    success: bool
    gold_delta: int = 0
    experience_delta: int = 0
    timestamp: float = Field(default_factory=time.time)
    item_id: Optional[int] = None


class AgentMemory(BaseModel):
    """Long-lived per-agent performance memory.

    Persisted across restarts by memory.JsonFileStore. Frozen: never edit
    in place, route every change through memory.update_memory().
    """
    model_config = ConfigDict(frozen=True)

    total_actions: int = Field(default=0, ge=0)
    total_battles: int = Field(default=0, ge=0)
    battles_won: int = Field(default=0, ge=0)
    battles_lost: int = Field(default=0, ge=0)
    gold_earned: int = Field(default=0, ge=0)
    gold_spent: int = Field(default=0, ge=0)
    owned_items: frozenset[int] = Field(default_factory=frozenset)
    recent_outcomes: tuple[ActionOutcome, ...] = ()
    consecutive_wins: int = Field(default=0, ge=0)
    consecutive_losses: int = Field(default=0, ge=0)
    best_win_streak: int = Field(default=0, ge=0)

    @property
    def win_rate(self) -> Optional[float]:
        """Historical win rate, or None before the first battle."""
        decided = self.battles_won + self.battles_lost
        if decided == 0:
            return None
        return self.battles_won / decided

    @property
    def net_gold(self) -> int:
        return self.gold_earned - self.gold_spent


# ============================================================================
# ANALYSIS REPORTS
# ============================================================================

class BattlePrediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    win_probability: float = Field(..., ge=0.05, le=0.95)
    expected_gold_change: float
    expected_xp_change: float
    risk_level: RiskLevel
    recommendation: str
    contributing_factors: list[str] = Field(default_factory=list)


class ItemROIReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: int
    item_name: str
    cost: int
    is_owned: bool
    is_affordable: bool
    expected_win_rate_increase: float
    payback_battles: int
    roi_score: float
    recommendation: str
