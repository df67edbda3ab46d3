"""In-process ledger for offline runs and tests.

Implements the game rules closely enough to exercise every executor path:
duplicate createPlayer -> "player already exists", buying without gold ->
"not enough gold", levelUp without experience -> "not enough experience".
All rejections are TerminalExternalError.

Unknown addresses are auto-registered with starter stats unless
``auto_register`` is False, so a simulation-mode run (where the executor
never submits createPlayer) still has players to analyse.
"""

import hashlib
import random
from dataclasses import dataclass
from typing import Optional, Sequence

from ledgerquest.errors import TerminalExternalError
from ledgerquest.models import ActionKind, ItemData, ObservedState, Receipt
from ledgerquest.services.ledger.interface import LedgerClient

STARTING_GOLD = 100
STARTING_STRENGTH = 10
STARTING_DEFENSE = 10
XP_PER_LEVEL = 100


@dataclass
class _Player:
    name: str
    level: int = 1
    experience: int = 0
    gold: int = STARTING_GOLD
    strength: int = STARTING_STRENGTH
    defense: int = STARTING_DEFENSE

    def observed(self) -> ObservedState:
        return ObservedState(
            name=self.name,
            level=self.level,
            experience=self.experience,
            gold=self.gold,
            strength=self.strength,
            defense=self.defense,
            exists=True,
        )


class SimulatedLedgerClient(LedgerClient):
    def __init__(
        self,
        catalog: Sequence[ItemData] = (),
        *,
        auto_register: bool = True,
        congestion: float = 10.0,
        balance: float = 1.0,
        seed: Optional[int] = None,
    ) -> None:
        self._catalog = {item.id: item for item in catalog}
        self._auto_register = auto_register
        self._players: dict[str, _Player] = {}
        self._nonce = 0
        self.congestion = congestion
        self.native_balance = balance
        self._rng = random.Random(seed)

    def _player(self, address: str) -> _Player:
        player = self._players.get(address)
        if player is None:
            raise TerminalExternalError(f"player {address} does not exist")
        return player

    async def get_state(self, address: str) -> ObservedState:
        player = self._players.get(address)
        if player is None and self._auto_register:
            player = self._players[address] = _Player(name=f"Adventurer-{address[-4:]}")
        if player is None:
            return ObservedState(exists=False)
        return player.observed()

    async def submit(
        self,
        action: ActionKind,
        address: str,
        *,
        player_name: Optional[str] = None,
        item_id: Optional[int] = None,
    ) -> Receipt:
        raw: dict = {"action": action.value}

        if action is ActionKind.CREATE_PLAYER:
            if address in self._players:
                raise TerminalExternalError("player already exists")
            self._players[address] = _Player(name=player_name or "Adventurer")
        elif action is ActionKind.TRAIN:
            player = self._player(address)
            player.experience += 10
            player.gold += 15
            if self._rng.random() < 0.5:
                player.strength += 1
            else:
                player.defense += 1
        elif action is ActionKind.FIGHT_MONSTER:
            player = self._player(address)
            won = self._rng.random() < 0.6
            player.gold = max(player.gold + (40 if won else -20), 0)
            player.experience += 25 if won else 5
            raw["won"] = won
        elif action is ActionKind.BUY_ITEM:
            player = self._player(address)
            item = self._catalog.get(item_id) if item_id is not None else None
            if item is None:
                raise TerminalExternalError(f"item {item_id} does not exist")
            if player.gold < item.cost:
                raise TerminalExternalError("not enough gold")
            player.gold -= item.cost
            player.strength += item.strength
            player.defense += item.defense
        elif action is ActionKind.LEVEL_UP:
            player = self._player(address)
            needed = player.level * XP_PER_LEVEL
            if player.experience < needed:
                raise TerminalExternalError("not enough experience")
            player.experience -= needed
            player.level += 1
        else:
            raise TerminalExternalError(f"action {action.value} cannot be submitted")

        self._nonce += 1
        tx_hash = "0x" + hashlib.sha256(f"{address}|{action.value}|{self._nonce}".encode()).hexdigest()
        return Receipt(tx_hash=tx_hash, gas_used=21000, raw=raw)

    async def congestion_level(self) -> float:
        return self.congestion

    async def balance(self, address: str) -> float:
        return self.native_balance
