"""AI client and the completion provider built on it."""

from .client import AIClient, AIStreamEvent, ClientSettings
from .provider import CompletionProvider, OpenAICompletionProvider, map_provider_error

__all__ = [
    "AIClient",
    "AIStreamEvent",
    "ClientSettings",
    "CompletionProvider",
    "OpenAICompletionProvider",
    "map_provider_error",
]
