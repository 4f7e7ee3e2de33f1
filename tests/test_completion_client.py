"""Tests for the chat-completion client."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import httpx
import openai
import pytest

from goalpilot.core.config import Settings
from goalpilot.core.errors import ConfigurationError, RemoteServiceError
from goalpilot.services.ai.completion import CompletionClient, CompletionConfig, build_conversation
from goalpilot.services.ai.types import ChatMessage

ENDPOINT = "https://api.deepseek.com/chat/completions"


class _FakeCompletions:
    def __init__(self, content: Any = "Hello", error: Exception | None = None):
        self.calls: List[Dict[str, Any]] = []
        self._content = content
        self._error = error

    def create(self, **kwargs: Any):
        self.calls.append(kwargs)
        if self._error:
            raise self._error
        if self._content is None:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self._content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions: _FakeCompletions) -> CompletionClient:
    fake_sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return CompletionClient(CompletionConfig(api_key="test-key"), client=fake_sdk)


def test_missing_key_is_rejected_at_construction() -> None:
    with pytest.raises(ConfigurationError):
        CompletionClient(CompletionConfig(api_key=""))


def test_config_from_settings_applies_defaults() -> None:
    config = CompletionConfig.from_settings(Settings(llm_api_key="abc", _env_file=None))

    assert config.api_key == "abc"
    assert config.base_url == "https://api.deepseek.com"
    assert config.model == "deepseek-chat"
    assert config.temperature == 0.3


def test_build_conversation_puts_system_prompt_first() -> None:
    conversation = build_conversation([ChatMessage(role="user", content="hi")], "be brief")

    assert [m.role for m in conversation] == ["system", "user"]
    assert build_conversation([ChatMessage(role="user", content="hi")]) == [ChatMessage(role="user", content="hi")]


def test_complete_sends_model_temperature_and_system_first() -> None:
    completions = _FakeCompletions(content="**Done**")
    client = _client(completions)

    raw = client.complete([ChatMessage(role="user", content="Plan my week")], system_prompt="You are a planner.")

    assert raw == "**Done**"
    call = completions.calls[0]
    assert call["model"] == "deepseek-chat"
    assert call["temperature"] == 0.3
    assert call["messages"] == [
        {"role": "system", "content": "You are a planner."},
        {"role": "user", "content": "Plan my week"},
    ]


def test_complete_clean_sanitizes() -> None:
    client = _client(_FakeCompletions(content="# Hi\n- **there**"))

    assert client.complete_clean([ChatMessage(role="user", content="x")]) == "Hi\nthere"


def test_missing_choices_yield_empty_text() -> None:
    assert _client(_FakeCompletions(content=None)).complete([]) == ""


def test_status_error_maps_to_remote_service_error() -> None:
    request = httpx.Request("POST", ENDPOINT)
    response = httpx.Response(429, request=request, text="rate limited")
    error = openai.APIStatusError("rate limited", response=response, body=None)
    completions = _FakeCompletions(error=error)

    with pytest.raises(RemoteServiceError) as excinfo:
        _client(completions).complete([ChatMessage(role="user", content="x")])

    assert excinfo.value.status_code == 429
    assert excinfo.value.body == "rate limited"
    assert len(completions.calls) == 1


def test_connection_error_has_no_status() -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", ENDPOINT))

    with pytest.raises(RemoteServiceError) as excinfo:
        _client(_FakeCompletions(error=error)).complete([ChatMessage(role="user", content="x")])

    assert excinfo.value.status_code is None
