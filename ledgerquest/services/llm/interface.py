"""Provider contract for the decision oracle.

A provider turns a chat transcript into reply text. It returns None instead
of raising when the backend fails, and it never interprets the reply:
``oracle.parse_reply`` owns validation.
"""

from abc import ABC, abstractmethod

Messages = list[dict[str, str]]


class LLMProvider(ABC):
    """Base class for chat-completion backends (hosted, local or mock)."""

    @abstractmethod
    async def generate(
        self,
        messages: Messages,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        response_format: dict | None = None,
    ) -> str | None:
        """Return the reply text for ``messages``, or None on failure.

        ``messages`` uses the OpenAI shape ``[{"role": ..., "content": ...}]``.
        ``response_format`` is passed through, e.g. ``{"type": "json_object"}``.
        """

    async def generate_tracked(
        self,
        messages: Messages,
        *,
        model: str | None = None,
        max_tokens: int = 150,
        temperature: float = 0.7,
        response_format: dict | None = None,
    ) -> tuple[str | None, int, int]:
        """``generate()`` plus (prompt_tokens, completion_tokens).

        Backends without usage data report zero tokens.
        """
        text = await self.generate(
            messages, model=model, max_tokens=max_tokens,
            temperature=temperature, response_format=response_format,
        )
        return text, 0, 0
