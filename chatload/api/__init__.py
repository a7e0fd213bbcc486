"""HTTP access to the chat backend."""

from .client import ChatApiClient, ChatApiError

__all__ = ["ChatApiClient", "ChatApiError"]
