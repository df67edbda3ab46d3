"""Deterministic mock LLM provider for testing and offline simulation.

Returns predictable, hash-derived decisions so that:
  - Tests are reproducible (no network, no API keys needed)
  - Simulation mode can run the full turn pipeline without an oracle bill
  - The decisions still react to the prompt (gold, shop affordability,
    win probability), so guardrails and the executor get exercised
"""

import hashlib
import json
import re

from ledgerquest.services.llm.interface import LLMProvider

_GOLD_RE = re.compile(r"^Gold:\s*(\d+)", re.MULTILINE)
_WIN_P_RE = re.compile(r"Win Probability:\s*([\d.]+)%")
_AFFORDABLE_ITEM_RE = re.compile(r"^\[(\d+)\] .*CAN AFFORD$", re.MULTILINE)


class MockLLMProvider(LLMProvider):
    """Returns deterministic responses derived from prompt content hash."""

    async def generate(
        self,
        messages: list[dict[str, str]],
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        response_format: dict | None = None,
    ) -> str | None:
        prompt_blob = "|".join(m.get("content", "") for m in messages)
        seed = hashlib.md5(prompt_blob.encode()).hexdigest()[:8]

        if response_format and response_format.get("type") == "json_object":
            return self._decision_response(prompt_blob, seed)

        return f"Mock response [{seed}]: The ledger remembers every move."

    @staticmethod
    def _decision_response(prompt_blob: str, seed: str) -> str:
        """Pick an action from the rendered status block.

        Priority: affordable unowned item (1 in 4) > fight on good odds >
        train. Every 16th seed waits.
        """
        roll = int(seed, 16)

        gold_match = _GOLD_RE.search(prompt_blob)
        gold = int(gold_match.group(1)) if gold_match else 0
        win_match = _WIN_P_RE.search(prompt_blob)
        win_p = float(win_match.group(1)) / 100 if win_match else 0.5
        affordable = [int(i) for i in _AFFORDABLE_ITEM_RE.findall(prompt_blob)]
        confidence = round(0.5 + (roll % 45) / 100, 2)

        if roll % 16 == 0:
            return json.dumps({
                "action": "wait",
                "reasoning": f"Mock: observing the field [{seed}]",
                "confidence": confidence,
            })

        if affordable and roll % 4 == 0:
            item_id = affordable[roll % len(affordable)]
            return json.dumps({
                "action": "buyItem",
                "itemId": item_id,
                "reasoning": f"Mock: investing {gold}g reserve in item {item_id} [{seed}]",
                "confidence": confidence,
            })

        if win_p >= 0.5:
            return json.dumps({
                "action": "fightMonster",
                "reasoning": f"Mock: {win_p:.0%} odds are worth it [{seed}]",
                "confidence": confidence,
            })

        return json.dumps({
            "action": "train",
            "reasoning": f"Mock: {win_p:.0%} odds too thin, training [{seed}]",
            "confidence": confidence,
        })
