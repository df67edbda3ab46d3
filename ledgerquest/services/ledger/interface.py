"""Abstract interface for the game ledger.

The ledger owns the authoritative player state and executes actions; key
custody and on-ledger semantics live behind this boundary. Implementations
raise TransientExternalError / TerminalExternalError (errors.py) and put the
ledger's own rejection message in the exception text so the executor can
classify it.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ledgerquest.models import ActionKind, ObservedState, Receipt


class LedgerClient(ABC):
    """Reader/writer for one game deployment, shared by the whole roster."""

    @abstractmethod
    async def get_state(self, address: str) -> ObservedState:
        """Fresh player stats for ``address`` (exists=False if never created)."""

    @abstractmethod
    async def submit(
        self,
        action: ActionKind,
        address: str,
        *,
        player_name: Optional[str] = None,
        item_id: Optional[int] = None,
    ) -> Receipt:
        """Submit one action and wait for confirmation."""

    @abstractmethod
    async def congestion_level(self) -> float:
        """Current network congestion (gas price in gwei for EVM gateways)."""

    @abstractmethod
    async def balance(self, address: str) -> float:
        """Native balance available to pay for submissions."""

    async def aclose(self) -> None:
        """Release shared connections. Default: nothing to release."""
