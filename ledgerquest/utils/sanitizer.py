"""LLM output sanitization layer.

Cleans raw oracle replies before reply validation sees them. Handles:
  - Markdown code-fence stripping
  - Common JSON errors (trailing commas, unquoted keys)
  - AI refusal boilerplate in the reasoning text
  - Log-safe truncation of reasoning
"""

import json
import logging
import re

logger = logging.getLogger("llm_guard")

# Refusal patterns: case-insensitive partial matches
_REFUSAL_PATTERNS: list[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in [
        r"as an ai(?: language model)?",
        r"i(?:'m| am) (?:just )?an? ai",
        r"i cannot (?:decide|provide|assist|do that)",
        r"i(?:'m| am) (?:not able|unable) to",
        r"sorry,? (?:but )?i (?:can(?:'t|not)|am unable)",
    ]
]

REASONING_MAX_CHARS = 280


class LLMGuard:
    """Sanitizes raw LLM output for safe ingestion."""

    @staticmethod
    def clean_json(text: str) -> dict | None:
        """Parse LLM output into a dict, tolerating common formatting issues.

        Returns the parsed dict, or None if the text is empty, unparseable,
        or parses to something other than a JSON object.
        """
        if not text or not text.strip():
            return None

        cleaned = re.sub(
            r"```(?:json|JSON)?\s*\n?(.*?)\n?\s*```",
            r"\1",
            text.strip(),
            flags=re.DOTALL,
        ).strip()

        try:
            result = json.loads(cleaned)
        except json.JSONDecodeError:
            # Trailing commas before closing braces/brackets
            repaired = re.sub(r",\s*([}\]])", r"\1", cleaned)
            # Bare keys:  {key: "val"} -> {"key": "val"}
            repaired = re.sub(
                r"(?<=[\{,])\s*([a-zA-Z_]\w*)\s*:",
                r' "\1":',
                repaired,
            )
            try:
                result = json.loads(repaired)
            except json.JSONDecodeError as exc:
                logger.warning("JSON decode failed after cleaning: %s | raw: %.200s", exc, text)
                return None

        if not isinstance(result, dict):
            logger.warning("LLM JSON parsed but was not an object: %s", type(result).__name__)
            return None
        return result

    @staticmethod
    def sanitize_reasoning(text: str, max_length: int = REASONING_MAX_CHARS) -> str | None:
        """Collapse whitespace and truncate. None for empty text or a refusal."""
        if not text or not text.strip():
            return None

        cleaned = re.sub(r"\s{2,}", " ", text.strip())

        if LLMGuard.is_refusal(cleaned):
            logger.info("Blocked refusal reasoning: %.120s", cleaned)
            return None

        if len(cleaned) > max_length:
            cleaned = cleaned[: max_length - 1] + "…"
        return cleaned

    @staticmethod
    def is_refusal(text: str) -> bool:
        if not text:
            return False
        return any(p.search(text) for p in _REFUSAL_PATTERNS)
