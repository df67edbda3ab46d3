"""Decision oracle adapter.

Turns one turn's analysis into an LLM request and the LLM's untyped reply
into a Decision. The reply goes through exactly one parse-and-validate step,
parse_reply(), which yields ValidReply or MalformedReply; nothing downstream
ever sees raw oracle output.

Contract of behavior:
  - decide() ALWAYS returns a Decision. It never raises to the scheduler.
  - Empty replies, provider failures and malformed replies each burn one
    attempt. Attempts are sequential with linear backoff
    (backoff_base * attempt) between them.
  - When attempts run out the FALLBACK_DECISION (train) is returned.
  - Refusal boilerplate in otherwise valid reasoning is replaced with
    REDACTED_REASONING; the action stands.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from ledgerquest.config import OracleSettings
from ledgerquest.errors import MalformedResponseError
from ledgerquest.metrics import get_current_collector
from ledgerquest.models import (
    ActionKind,
    AgentIdentity,
    AgentMemory,
    BattlePrediction,
    Decision,
    ItemData,
    ItemROIReport,
    ObservedState,
)
from ledgerquest.prompt import SYSTEM_PROMPT, build_strategy_prompt
from ledgerquest.services.llm.factory import get_llm_provider
from ledgerquest.services.llm.interface import LLMProvider
from ledgerquest.utils.sanitizer import LLMGuard

logger = logging.getLogger("oracle")

FALLBACK_DECISION = Decision(action=ActionKind.TRAIN, reasoning="fallback")
REDACTED_REASONING = "Strategy decision."

_ACTIONS_BY_NAME: dict[str, ActionKind] = {kind.value.lower(): kind for kind in ActionKind}


@dataclass(frozen=True)
class ValidReply:
    decision: Decision


@dataclass(frozen=True)
class MalformedReply:
    reason: str
    raw: Optional[str] = None


ParsedReply = Union[ValidReply, MalformedReply]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _decision_from_payload(payload: dict[str, Any]) -> Decision:
    """Validate a decoded reply object. Raises MalformedResponseError."""
    action_raw = payload.get("action")
    if not isinstance(action_raw, str) or not action_raw.strip():
        raise MalformedResponseError("missing or non-string 'action'")
    action = _ACTIONS_BY_NAME.get(action_raw.strip().lower())
    if action is None:
        raise MalformedResponseError(f"unknown action '{action_raw[:40]}'")

    reasoning_raw = payload.get("reasoning")
    if not isinstance(reasoning_raw, str):
        raise MalformedResponseError("missing or non-string 'reasoning'")
    if not reasoning_raw.strip():
        raise MalformedResponseError("empty 'reasoning'")
    reasoning = LLMGuard.sanitize_reasoning(reasoning_raw) or REDACTED_REASONING

    item_id: Optional[int] = None
    item_raw = payload.get("itemId")
    if item_raw is not None:
        if not _is_number(item_raw):
            raise MalformedResponseError("non-numeric 'itemId'")
        if item_raw < 0 or int(item_raw) != item_raw:
            raise MalformedResponseError(f"'itemId' must be a non-negative integer, got {item_raw}")
        if action is ActionKind.BUY_ITEM:
            item_id = int(item_raw)
    if action is ActionKind.BUY_ITEM and item_id is None:
        raise MalformedResponseError("buyItem without 'itemId'")

    confidence: Optional[float] = None
    confidence_raw = payload.get("confidence")
    if confidence_raw is not None:
        if not _is_number(confidence_raw) or not 0.0 <= confidence_raw <= 1.0:
            raise MalformedResponseError("'confidence' must be a number in [0, 1]")
        confidence = float(confidence_raw)

    return Decision(action=action, item_id=item_id, reasoning=reasoning, confidence=confidence)


def parse_reply(raw: Optional[str]) -> ParsedReply:
    """The single parse-and-validate step for untrusted oracle output."""
    if raw is None or not raw.strip():
        return MalformedReply("empty reply", raw)

    payload = LLMGuard.clean_json(raw)
    if payload is None:
        return MalformedReply("reply is not a JSON object", raw)

    try:
        return ValidReply(_decision_from_payload(payload))
    except MalformedResponseError as exc:
        return MalformedReply(str(exc), raw)


class DecisionOracle:
    """Adapter between one turn's analysis and the external decision service."""

    def __init__(
        self,
        settings: OracleSettings,
        catalog: Sequence[ItemData],
        *,
        provider: Optional[LLMProvider] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._catalog = list(catalog)
        self._provider = provider
        self._sleep = sleep

    def _get_provider(self) -> LLMProvider:
        if self._provider is not None:
            return self._provider
        return get_llm_provider(timeout=self._settings.timeout)

    async def ask(self, prompt: str) -> Optional[str]:
        """One raw request. Returns the reply text or None on failure."""
        provider = self._get_provider()
        return await provider.generate(
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            model=self._settings.model,
            max_tokens=self._settings.max_tokens,
            temperature=self._settings.temperature,
            response_format={"type": "json_object"},
        )

    async def decide(
        self,
        identity: AgentIdentity,
        state: ObservedState,
        memory: AgentMemory,
        prediction: BattlePrediction,
        reports: Sequence[ItemROIReport],
    ) -> Decision:
        """Return a validated proposal, or FALLBACK_DECISION after max_retries failures."""
        prompt = build_strategy_prompt(identity, state, memory, prediction, reports, self._catalog)
        max_attempts = self._settings.max_retries
        collector = get_current_collector()

        for attempt in range(1, max_attempts + 1):
            try:
                raw = await self.ask(prompt)
                parsed = parse_reply(raw)
            except Exception as exc:
                parsed = MalformedReply(f"provider error: {type(exc).__name__}: {exc}")

            if isinstance(parsed, ValidReply):
                if collector:
                    collector.oracle_attempt()
                return parsed.decision

            if collector:
                collector.oracle_attempt(failed=True)
            logger.warning(
                "[%s] Oracle attempt %d/%d rejected: %s",
                identity.name, attempt, max_attempts, parsed.reason,
            )
            if attempt < max_attempts:
                await self._sleep(self._settings.backoff_base * attempt)

        logger.error(
            "[%s] All %d oracle attempts failed. Using fallback decision.",
            identity.name, max_attempts,
        )
        if collector:
            collector.oracle_fallback()
        return FALLBACK_DECISION
