"""Error types shared by services and routes."""
from __future__ import annotations

from typing import Optional


class ConfigurationError(RuntimeError):
    """A required setting is missing; raised once at construction time."""


class RemoteServiceError(RuntimeError):
    """
    The chat-completion endpoint failed.

    `status_code` is the upstream HTTP status, or None when no response was
    received at all (connection refused, timeout).
    """

    def __init__(self, status_code: Optional[int], body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Completion endpoint error {status_code}: {body}")


class NotFoundError(LookupError):
    """Requested row does not exist (or is not visible to the caller)."""


class PermissionDeniedError(PermissionError):
    """Row exists but belongs to another user."""
