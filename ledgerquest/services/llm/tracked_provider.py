"""Token accounting for oracle calls.

``TrackedProvider`` wraps the real backend while a turn collector is active
and adds each call's prompt/completion tokens and estimated USD cost to it.
Retries inside one turn add up on the same collector.

Rates are USD per million tokens:
  LEDGERQUEST_INPUT_COST_PER_M   (default 3.0)
  LEDGERQUEST_OUTPUT_COST_PER_M  (default 15.0)
"""
from __future__ import annotations

import logging
import os

from ledgerquest.metrics import MetricsCollector, get_current_collector
from ledgerquest.services.llm.interface import LLMProvider, Messages

logger = logging.getLogger("llm.tracked")

_PER_M = 1_000_000
INPUT_RATE = float(os.environ.get("LEDGERQUEST_INPUT_COST_PER_M", "3.0")) / _PER_M
OUTPUT_RATE = float(os.environ.get("LEDGERQUEST_OUTPUT_COST_PER_M", "15.0")) / _PER_M


def estimate_cost(prompt_tokens: int, completion_tokens: int) -> float:
    return prompt_tokens * INPUT_RATE + completion_tokens * OUTPUT_RATE


def _charge(collector: MetricsCollector, prompt_tokens: int, completion_tokens: int) -> None:
    cost = estimate_cost(prompt_tokens, completion_tokens)
    collector.increment_tokens(input_tokens=prompt_tokens, output_tokens=completion_tokens, cost=cost)
    if prompt_tokens or completion_tokens:
        snap = collector.snapshot()
        logger.debug(
            "TOKEN agent=%s turn=%s in=%d out=%d cost=$%.6f",
            snap.agent, snap.turn_id[:8], prompt_tokens, completion_tokens, cost,
        )


class TrackedProvider(LLMProvider):
    def __init__(self, base: LLMProvider) -> None:
        self._base = base

    @property
    def base(self) -> LLMProvider:
        return self._base

    async def generate(
        self,
        messages: Messages,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        response_format: dict | None = None,
    ) -> str | None:
        options = dict(model=model, max_tokens=max_tokens,
                       temperature=temperature, response_format=response_format)
        collector = get_current_collector()
        if collector is None:
            return await self._base.generate(messages, **options)

        text, prompt_tokens, completion_tokens = await self._base.generate_tracked(messages, **options)
        _charge(collector, prompt_tokens, completion_tokens)
        return text
