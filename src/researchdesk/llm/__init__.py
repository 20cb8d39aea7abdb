"""LLM tooling for the research desk."""

from .offline import OfflineChatModel
from .providers import (
    WEB_SEARCH_TOOL,
    AgentInvoker,
    ProviderDependencyError,
    ProviderSettings,
    build_chat_model,
    build_invoker,
    extract_text,
    to_messages,
)

__all__ = [
    "WEB_SEARCH_TOOL",
    "AgentInvoker",
    "OfflineChatModel",
    "ProviderDependencyError",
    "ProviderSettings",
    "build_chat_model",
    "build_invoker",
    "extract_text",
    "to_messages",
]
