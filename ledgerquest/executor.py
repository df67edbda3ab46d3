"""Action executor: turns a validated Decision into one ledger submission.

  | Mode       | Pre-flight                       | Submission                      |
  |------------|----------------------------------|---------------------------------|
  | simulation | none                             | none, sleeps simulation_delay   |
  | live       | balance >= min_balance,          | exactly one successful submit,  |
  |            | congestion <= max_congestion     | transient errors retried        |

Error classification:
  - message contains a TERMINAL_KEYWORDS entry, or the error is already a
    TerminalExternalError  -> raised at once, never retried
  - anything else          -> retried up to behavior.max_retries attempts,
                              sleeping retry_backoff_base * attempt between
                              them, then RetriesExhaustedError
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from ledgerquest.config import Settings
from ledgerquest.errors import (
    PreflightError,
    RetriesExhaustedError,
    TerminalExternalError,
)
from ledgerquest.metrics import get_current_collector
from ledgerquest.models import ActionKind, AgentIdentity, Decision, Receipt
from ledgerquest.services.ledger.interface import LedgerClient

logger = logging.getLogger("executor")

TERMINAL_KEYWORDS = (
    "insufficient funds",
    "nonce too low",
    "replacement fee too low",
    "already exists",
    "not enough gold",
)


def is_terminal(error: BaseException) -> bool:
    if isinstance(error, TerminalExternalError):
        return True
    message = str(error).lower()
    return any(keyword in message for keyword in TERMINAL_KEYWORDS)


class ActionExecutor:
    def __init__(
        self,
        settings: Settings,
        ledger: LedgerClient,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._sleep = sleep

    async def execute(self, identity: AgentIdentity, decision: Decision) -> Optional[Receipt]:
        """Carry out ``decision`` for ``identity``.

        Returns:
            The ledger receipt in live mode; None in simulation mode or for
            a ``wait`` decision.

        Raises:
            PreflightError: Balance or congestion check failed.
            TerminalExternalError: The ledger rejected the action for good.
            RetriesExhaustedError: Transient failures outlived max_retries.
        """
        if decision.action is ActionKind.WAIT:
            return None

        if self._settings.simulation_mode:
            logger.info("[%s] SIMULATION: would execute %s", identity.name, decision.action.value)
            await self._sleep(self._settings.behavior.simulation_delay)
            return None

        if decision.action is ActionKind.BUY_ITEM and decision.item_id is None:
            raise TerminalExternalError("buyItem submitted without an item id")

        await self._preflight(identity)
        return await self._submit_with_retry(identity, decision)

    async def _preflight(self, identity: AgentIdentity) -> None:
        behavior = self._settings.behavior
        balance = await self._ledger.balance(identity.address)
        if balance < behavior.min_balance:
            raise PreflightError(
                f"balance {balance:.6f} below minimum {behavior.min_balance:.6f}"
            )

        congestion = await self._ledger.congestion_level()
        ceiling = self._settings.guardrails.max_congestion
        if congestion > ceiling:
            raise PreflightError(f"congestion {congestion:.1f} above ceiling {ceiling:.1f}")

    async def _submit_with_retry(self, identity: AgentIdentity, decision: Decision) -> Receipt:
        behavior = self._settings.behavior
        collector = get_current_collector()
        last_error: Optional[BaseException] = None

        for attempt in range(1, behavior.max_retries + 1):
            if collector is not None:
                collector.ledger_attempt(retry=attempt > 1)
            try:
                receipt = await self._ledger.submit(
                    decision.action,
                    identity.address,
                    player_name=identity.name if decision.action is ActionKind.CREATE_PLAYER else None,
                    item_id=decision.item_id,
                )
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if is_terminal(exc):
                    logger.debug(
                        "[%s] %s rejected (terminal, attempt %d): %s",
                        identity.name, decision.action.value, attempt, exc,
                    )
                    if isinstance(exc, TerminalExternalError):
                        raise
                    raise TerminalExternalError(str(exc)) from exc

                last_error = exc
                logger.warning(
                    "[%s] %s failed (attempt %d/%d): %s",
                    identity.name, decision.action.value, attempt, behavior.max_retries, exc,
                )
                if attempt < behavior.max_retries:
                    await self._sleep(behavior.retry_backoff_base * attempt)
                continue

            logger.info(
                "[%s] %s confirmed tx=%s", identity.name, decision.action.value, receipt.tx_hash,
            )
            return receipt

        raise RetriesExhaustedError(
            f"{decision.action.value} failed after {behavior.max_retries} attempts: {last_error}",
            attempts=behavior.max_retries,
            last_error=last_error,
        )
