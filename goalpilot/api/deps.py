"""Shared FastAPI dependencies for the AI routes."""
from __future__ import annotations

from functools import lru_cache

from goalpilot.core.config import get_settings
from goalpilot.services.ai.completion import CompletionClient, CompletionConfig
from goalpilot.services.ai.generation import GenerationService


@lru_cache
def _service_for(config: CompletionConfig) -> GenerationService:
    return GenerationService(CompletionClient(config))


def get_generation_service() -> GenerationService:
    """
    Return the generation service for the current LLM settings.

    Raises ConfigurationError when no API key is configured.
    """
    return _service_for(CompletionConfig.from_settings(get_settings()))
