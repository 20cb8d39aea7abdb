"""LangChain chat model wiring and the agent invoker used by every stage."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Tuple

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from ..errors import ResearchDeskError, TransportError

try:  # pragma: no cover - import guard for optional dependency
    from langchain_openai import ChatOpenAI
except ImportError:  # pragma: no cover - gracefully degrade when dependency missing
    ChatOpenAI = None  # type: ignore[assignment]

try:  # pragma: no cover - import guard for optional dependency
    from langchain_anthropic import ChatAnthropic
except ImportError:  # pragma: no cover - gracefully degrade when dependency missing
    ChatAnthropic = None  # type: ignore[assignment]

__all__ = [
    "ProviderDependencyError",
    "ProviderSettings",
    "AgentInvoker",
    "WEB_SEARCH_TOOL",
    "build_chat_model",
    "build_invoker",
    "extract_text",
    "to_messages",
]

logger = logging.getLogger(__name__)

ToolSpec = Mapping[str, Any]

WEB_SEARCH_TOOL: dict[str, str] = {"type": "web_search_20250305", "name": "web_search"}

DEFAULT_PROVIDER = "anthropic"
DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-20250514",
    "openai": "gpt-4o-mini",
    "offline": "offline-desk",
}
DEFAULT_MAX_TOKENS = 4000
DEFAULT_PROVIDER_ENV = "RESEARCHDESK_PROVIDER"
DEFAULT_MODEL_ENVS: Tuple[str, ...] = ("RESEARCHDESK_MODEL",)
DEFAULT_API_KEY_ENVS: Tuple[str, ...] = ("RESEARCHDESK_API_KEY",)
DEFAULT_BASE_URL_ENVS: Tuple[str, ...] = ("RESEARCHDESK_BASE_URL",)
PROVIDER_API_KEY_ENVS: dict[str, Tuple[str, ...]] = {
    "anthropic": ("ANTHROPIC_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
}
PROVIDER_BASE_URL_ENVS: dict[str, Tuple[str, ...]] = {
    "anthropic": ("ANTHROPIC_BASE_URL",),
    "openai": ("OPENAI_BASE_URL",),
}
DEFAULT_TEMPERATURE_ENV = "RESEARCHDESK_TEMPERATURE"
DEFAULT_MAX_TOKEN_ENV = "RESEARCHDESK_MAX_TOKENS"
DEFAULT_TIMEOUT_ENV = "RESEARCHDESK_TIMEOUT"


class ProviderDependencyError(ResearchDeskError):
    """Raised when the package backing the requested provider is unavailable."""


@dataclass(slots=True)
class ProviderSettings:
    """Settings bundle for a chat model."""

    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODELS[DEFAULT_PROVIDER]
    base_url: str | None = None
    api_key: str | None = None
    temperature: float | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float | None = None

    def as_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.base_url:
            kwargs["base_url"] = self.base_url
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs


def to_messages(system_prompt: str, conversation: Iterable[Any]) -> list[BaseMessage]:
    """Turn ``{role, content}`` turns into LangChain messages behind a system prompt."""

    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
    for turn in conversation:
        if isinstance(turn, Mapping):
            role, content = turn["role"], turn["content"]
        else:
            role, content = turn.role, turn.content
        role = getattr(role, "value", role)
        if role == "user":
            messages.append(HumanMessage(content=content))
        elif role == "assistant":
            messages.append(AIMessage(content=content))
        else:
            raise ValueError(f"Unsupported conversation role '{role}'.")
    return messages


def extract_text(response: Any) -> str:
    """Join the text blocks of a model reply; anything without text yields ``""``."""

    content = getattr(response, "content", response)
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        pieces: list[str] = []
        for block in content:
            if isinstance(block, str):
                text = block
            elif isinstance(block, Mapping):
                text = block.get("text") or ""
            else:
                text = getattr(block, "text", "") or ""
            if text:
                pieces.append(str(text))
        return "\n".join(pieces)
    return str(content)


def _status_of(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):  # pragma: no cover - defensive guard
        return None


class AgentInvoker:
    """One request/response exchange with a chat model per call.

    No retries and no caching happen here; callers own any retry policy. Every
    backend failure surfaces as :class:`TransportError`.
    """

    def __init__(self, client: Any, *, name: str | None = None) -> None:
        self._client = client
        self._name = name or getattr(client, "model", None) or client.__class__.__name__

    @property
    def name(self) -> str:
        return str(self._name)

    @property
    def client(self) -> Any:
        return self._client

    def invoke(
        self,
        system_prompt: str,
        conversation: Sequence[Any],
        tools: Sequence[ToolSpec] | None = None,
        *,
        max_tokens: int | None = None,
    ) -> str:
        messages = to_messages(system_prompt, conversation)
        kwargs: dict[str, Any] = {}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        logger.debug(
            "Invoking %s with %d message(s), %d tool(s)",
            self.name,
            len(messages),
            len(tools or ()),
        )
        try:
            model = self._client.bind_tools([dict(tool) for tool in tools]) if tools else self._client
            response = model.invoke(messages, **kwargs)
        except Exception as exc:
            status = _status_of(exc)
            label = f"API {status}" if status is not None else "API request failed"
            raise TransportError(f"{label}: {exc}", status=status) from exc
        return extract_text(response)

    def invoke1(
        self,
        system_prompt: str,
        user_message: str,
        tools: Sequence[ToolSpec] | None = None,
        *,
        max_tokens: int | None = None,
    ) -> str:
        return self.invoke(
            system_prompt,
            [{"role": "user", "content": user_message}],
            tools,
            max_tokens=max_tokens,
        )


def build_chat_model(settings: ProviderSettings) -> Any:
    """Instantiate the LangChain chat model named by ``settings.provider``."""

    provider = settings.provider.lower()
    if provider == "offline":
        from .offline import OfflineChatModel

        return OfflineChatModel(model=settings.model)
    if provider == "openai":
        factory = ChatOpenAI
        package = "langchain-openai"
    elif provider == "anthropic":
        factory = ChatAnthropic
        package = "langchain-anthropic"
    else:
        raise ValueError(f"Unsupported provider '{settings.provider}'.")
    if factory is None:
        raise ProviderDependencyError(f"{package} is required for the '{provider}' provider")
    try:
        return factory(**settings.as_kwargs())  # type: ignore[arg-type]
    except Exception as exc:  # pragma: no cover - passthrough
        raise ResearchDeskError(f"Failed to initialise chat model '{settings.model}': {exc}") from exc


def build_invoker(
    *,
    provider: str | None = None,
    model: str | None = None,
    base_url: str | None = None,
    api_key: str | None = None,
    api_key_env: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
) -> AgentInvoker:
    """Factory that mirrors CLI/env resolution for provider credentials."""

    resolved_provider = (provider or os.getenv(DEFAULT_PROVIDER_ENV) or DEFAULT_PROVIDER).lower()
    resolved_model = (
        model
        or _resolve_from_env(DEFAULT_MODEL_ENVS)
        or DEFAULT_MODELS.get(resolved_provider, DEFAULT_MODELS[DEFAULT_PROVIDER])
    )
    key_envs = (api_key_env,) if api_key_env else DEFAULT_API_KEY_ENVS
    resolved_api_key = api_key or _resolve_from_env(
        (*key_envs, *PROVIDER_API_KEY_ENVS.get(resolved_provider, ()))
    )
    resolved_base_url = base_url or _resolve_from_env(
        (*DEFAULT_BASE_URL_ENVS, *PROVIDER_BASE_URL_ENVS.get(resolved_provider, ()))
    )

    settings = ProviderSettings(
        provider=resolved_provider,
        model=resolved_model,
        base_url=resolved_base_url,
        api_key=resolved_api_key,
        temperature=_coerce_float(temperature, os.getenv(DEFAULT_TEMPERATURE_ENV)),
        max_tokens=_coerce_int(max_tokens, os.getenv(DEFAULT_MAX_TOKEN_ENV)) or DEFAULT_MAX_TOKENS,
        timeout=_coerce_float(timeout, os.getenv(DEFAULT_TIMEOUT_ENV)),
    )
    logger.info("Using %s model '%s'", settings.provider, settings.model)
    return AgentInvoker(build_chat_model(settings), name=f"{settings.provider}:{settings.model}")


def _resolve_from_env(envs: Sequence[str]) -> str | None:
    for env_name in envs:
        value = os.getenv(env_name)
        if value:
            return value
    return None


def _coerce_float(explicit: float | None, env_value: str | None) -> float | None:
    if explicit is not None:
        return explicit
    if env_value is None:
        return None
    try:
        return float(env_value)
    except ValueError:  # pragma: no cover - defensive guard
        return None


def _coerce_int(explicit: int | None, env_value: str | None) -> int | None:
    if explicit is not None:
        return explicit
    if env_value is None:
        return None
    try:
        return int(env_value)
    except ValueError:  # pragma: no cover - defensive guard
        return None
