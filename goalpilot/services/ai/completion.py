"""Chat-completion client for the configured LLM endpoint."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence

import openai

from goalpilot.core.config import Settings
from goalpilot.core.errors import ConfigurationError, RemoteServiceError
from goalpilot.observability.tracing import annotate, trace
from goalpilot.services.ai.sanitizer import sanitize
from goalpilot.services.ai.types import ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com"
DEFAULT_MODEL = "deepseek-chat"
DEFAULT_TEMPERATURE = 0.3


class ChatCompleter(Protocol):
    """The one capability the generation use-cases need from the remote model."""

    def complete(self, messages: Sequence[ChatMessage], system_prompt: Optional[str] = None) -> str:
        ...


@dataclass(frozen=True)
class CompletionConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = DEFAULT_TEMPERATURE

    @classmethod
    def from_settings(cls, config: Settings) -> "CompletionConfig":
        return cls(
            api_key=config.llm_api_key or "",
            base_url=config.llm_api_base or DEFAULT_BASE_URL,
            model=config.llm_model or DEFAULT_MODEL,
            temperature=config.llm_temperature,
        )


def build_conversation(messages: Sequence[ChatMessage], system_prompt: Optional[str] = None) -> List[ChatMessage]:
    """Prepend the system prompt, when given, so it is always the first message."""
    conversation = list(messages)
    if system_prompt:
        conversation.insert(0, ChatMessage(role="system", content=system_prompt))
    return conversation


def _first_choice_content(completion: Any) -> str:
    choices = getattr(completion, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return getattr(message, "content", None) or ""


class CompletionClient:
    """
    Sends one chat-completion request per call.

    The SDK's built-in retries are disabled: a failed call surfaces as
    RemoteServiceError and retrying is left to the caller.
    """

    def __init__(self, config: CompletionConfig, *, client: Optional[openai.OpenAI] = None) -> None:
        if not config.api_key:
            raise ConfigurationError("LLM_API_KEY is not set")
        self.config = config
        self._client = client or openai.OpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            max_retries=0,
        )

    def complete(self, messages: Sequence[ChatMessage], system_prompt: Optional[str] = None) -> str:
        """Return the raw text of the first choice."""
        conversation = build_conversation(messages, system_prompt)
        metadata = {"model": self.config.model, "message_count": len(conversation)}

        with trace("llm.chat_completion", metadata=metadata) as span:
            try:
                completion = self._client.chat.completions.create(
                    model=self.config.model,
                    messages=[message.model_dump() for message in conversation],
                    temperature=self.config.temperature,
                )
            except openai.APIStatusError as exc:
                body = exc.response.text if exc.response is not None else str(exc)
                logger.warning("Completion endpoint returned %s", exc.status_code)
                raise RemoteServiceError(exc.status_code, body) from exc
            except openai.APIConnectionError as exc:
                logger.warning("Completion endpoint unreachable: %s", exc)
                raise RemoteServiceError(None, str(exc)) from exc

            content = _first_choice_content(completion)
            annotate(span, llm_output_text=content)

        logger.debug("Completion returned %d characters", len(content))
        return content

    def complete_clean(self, messages: Sequence[ChatMessage], system_prompt: Optional[str] = None) -> str:
        """Like complete(), with markdown stripped for prose consumers."""
        return sanitize(self.complete(messages, system_prompt))
