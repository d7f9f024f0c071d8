"""Python client for the GeminiTalk REST service."""

from .api import ApiClient, ApiError, AuthenticationError, ServerUnavailable
from .session import ChatSession, WriteIntent
from .settings import ClientSettings

__all__ = [
    "ApiClient",
    "ApiError",
    "AuthenticationError",
    "ServerUnavailable",
    "ChatSession",
    "WriteIntent",
    "ClientSettings",
]
