"""OpenAI-compatible LLM client.

Wraps the `openai` SDK behind the small `ChatCompleter` interface used by triage and deep
extraction, so tests can pass a scripted fake instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol, Sequence

from openai import OpenAI

from rivalscope.config import Settings
from rivalscope.errors import ConfigError
from rivalscope.logging import get_logger

logger = get_logger(__name__)

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    """A chat message."""

    role: Role
    content: str


class ChatCompleter(Protocol):
    def complete(self, messages: Sequence[ChatMessage], *, temperature: float = 0.2) -> str:
        ...


class LLMClient:
    """LLM client using the OpenAI-compatible Chat Completions API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        if not settings.openai_api_key:
            raise ConfigError(
                "Missing RIVALSCOPE_OPENAI_API_KEY. "
                "Set it in environment variables or a .env file."
            )

        self._client = OpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)

    def complete(self, messages: Sequence[ChatMessage], *, temperature: float = 0.2) -> str:
        """Generate a completion.

        Args:
            messages: Chat messages.
            temperature: Sampling temperature.

        Returns:
            Assistant message content (empty string when the model returned nothing).
        """

        payload: list[dict[str, str]] = [{"role": m.role, "content": m.content} for m in messages]
        resp = self._client.chat.completions.create(
            model=self._settings.openai_model,
            messages=payload,
            temperature=temperature,
            timeout=self._settings.openai_timeout_s,
        )
        choice = resp.choices[0]
        if not choice.message or choice.message.content is None:
            logger.debug("Empty completion", extra={"model": self._settings.openai_model})
            return ""
        return choice.message.content
