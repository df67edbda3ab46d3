"""Per-agent memory: pure state machine plus durable JSON snapshot.

Three layers:
  - update_memory()  pure (memory, outcome) -> memory, owns every invariant
  - JsonFileStore    read_all()/write_all() of the whole address -> memory map
  - MemoryStore      the one handle the scheduler owns; record() is the only
                     mutation path and it always goes through update_memory()

On-disk format: a JSON array of [address, memory] pairs. Writes go to a temp
file in the same directory and are then os.replace()d over the target, so a
crash mid-write leaves the previous snapshot intact.
"""

import json
import logging
import os
import random
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from pydantic import ValidationError

from ledgerquest.errors import PersistenceError
from ledgerquest.models import ActionKind, ActionOutcome, AgentMemory

logger = logging.getLogger("memory")

MAX_RECENT_OUTCOMES = 30
SIMULATED_WIN_RATE = 0.6


def initialize_memory() -> AgentMemory:
    """Zero-state memory for an agent seen for the first time."""
    return AgentMemory()


def update_memory(memory: AgentMemory, outcome: ActionOutcome) -> AgentMemory:
    """Return a new memory with ``outcome`` applied. Never mutates ``memory``."""
    recent = (memory.recent_outcomes + (outcome,))[-MAX_RECENT_OUTCOMES:]

    total_battles = memory.total_battles
    battles_won = memory.battles_won
    battles_lost = memory.battles_lost
    consecutive_wins = memory.consecutive_wins
    consecutive_losses = memory.consecutive_losses
    best_win_streak = memory.best_win_streak

    if outcome.action is ActionKind.FIGHT_MONSTER:
        total_battles += 1
        if outcome.success:
            battles_won += 1
            consecutive_wins += 1
            consecutive_losses = 0
            best_win_streak = max(best_win_streak, consecutive_wins)
        else:
            battles_lost += 1
            consecutive_losses += 1
            consecutive_wins = 0

    gold_earned = memory.gold_earned + max(outcome.gold_delta, 0)
    gold_spent = memory.gold_spent + max(-outcome.gold_delta, 0)

    owned_items = memory.owned_items
    if (
        outcome.action is ActionKind.BUY_ITEM
        and outcome.success
        and outcome.item_id is not None
    ):
        owned_items = owned_items | {outcome.item_id}

    return AgentMemory(
        total_actions=memory.total_actions + 1,
        total_battles=total_battles,
        battles_won=battles_won,
        battles_lost=battles_lost,
        gold_earned=gold_earned,
        gold_spent=gold_spent,
        owned_items=owned_items,
        recent_outcomes=recent,
        consecutive_wins=consecutive_wins,
        consecutive_losses=consecutive_losses,
        best_win_streak=best_win_streak,
    )


def simulate_outcome(
    action: ActionKind,
    rng: Optional[random.Random] = None,
    *,
    item_id: Optional[int] = None,
    item_cost: int = 0,
) -> ActionOutcome:
    """Fabricate an outcome for simulation mode only.

    fightMonster wins 60% of the time (+40g/+25xp, loss -20g/+5xp),
    train always pays +15g/+10xp, a purchase costs the item price.
    """
    rng = rng or random.Random()

    if action is ActionKind.FIGHT_MONSTER:
        won = rng.random() < SIMULATED_WIN_RATE
        return ActionOutcome(
            action=action,
            success=won,
            gold_delta=40 if won else -20,
            experience_delta=25 if won else 5,
        )
    if action is ActionKind.TRAIN:
        return ActionOutcome(action=action, success=True, gold_delta=15, experience_delta=10)
    if action is ActionKind.BUY_ITEM:
        return ActionOutcome(action=action, success=True, gold_delta=-item_cost, item_id=item_id)
    return ActionOutcome(action=action, success=True)


# ============================================================================
# Durable snapshot
# ============================================================================

class JsonFileStore:
    """Whole-map JSON snapshot with atomic replace."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def read_all(self) -> dict[str, AgentMemory]:
        """Load every memory. Missing or unreadable data yields an empty map."""
        if not self.path.is_file():
            logger.info("No memory file at %s, starting with a clean slate", self.path)
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read memories from %s, starting empty: %s", self.path, exc)
            return {}

        if not isinstance(data, list):
            logger.error("Memory file %s is not a list of pairs, starting empty", self.path)
            return {}

        memories: dict[str, AgentMemory] = {}
        try:
            for address, raw in data:
                memories[str(address)] = AgentMemory.model_validate(raw)
        except (TypeError, ValueError, ValidationError) as exc:
            logger.error("Corrupt memory entry in %s, starting empty: %s", self.path, exc)
            return {}

        logger.info("Loaded memories for %d wallets from %s", len(memories), self.path)
        return memories

    def write_all(self, memories: Mapping[str, AgentMemory]) -> None:
        """Atomically replace the snapshot.

        Raises:
            PersistenceError: If the temp file cannot be written or moved into
                place. The previous snapshot is left untouched.
        """
        payload = json.dumps(
            [[address, memory.model_dump(mode="json")] for address, memory in memories.items()],
            indent=2,
        )
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Could not save memories to {self.path}: {exc}") from exc

        logger.info("Memories for %d wallets saved to %s", len(memories), self.path)


class MemoryStore:
    """Owned address -> AgentMemory map.

    The scheduler (and, in live mode, the external event observer) hold a
    reference to one MemoryStore. Nothing else touches the underlying dict.
    """

    def __init__(self, backend: JsonFileStore) -> None:
        self._backend = backend
        self._memories: dict[str, AgentMemory] = {}

    def load(self) -> int:
        self._memories = self._backend.read_all()
        return len(self._memories)

    def get(self, address: str) -> AgentMemory:
        memory = self._memories.get(address)
        return memory if memory is not None else initialize_memory()

    def record(self, address: str, outcome: ActionOutcome) -> AgentMemory:
        updated = update_memory(self.get(address), outcome)
        self._memories[address] = updated
        return updated

    def snapshot(self) -> dict[str, AgentMemory]:
        return dict(self._memories)

    def save(self) -> bool:
        """Flush a snapshot to disk. Returns False (and logs) on failure."""
        try:
            self._backend.write_all(self.snapshot())
            return True
        except PersistenceError as exc:
            logger.error("Memory flush failed, keeping previous snapshot: %s", exc)
            return False

    def __len__(self) -> int:
        return len(self._memories)
