from __future__ import annotations

from typing import Any

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from conftest import BackendStatusError
from researchdesk.errors import TransportError
from researchdesk.llm import providers
from researchdesk.llm.offline import OfflineChatModel
from researchdesk.llm.providers import (
    WEB_SEARCH_TOOL,
    ProviderDependencyError,
    ProviderSettings,
    build_invoker,
    extract_text,
)


class DummyChatModel:
    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs


@pytest.fixture
def dummy_anthropic(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(providers, "ChatAnthropic", DummyChatModel)
    return DummyChatModel


def test_invoke_maps_conversation_to_messages(scripted_model) -> None:
    model, invoker = scripted_model("Revised text")

    reply = invoker.invoke(
        "system prompt",
        [{"role": "user", "content": "hello"}, {"role": "assistant", "content": "hi"}],
    )

    assert reply == "Revised text"
    messages = model.calls[0]["messages"]
    assert isinstance(messages[0], SystemMessage)
    assert messages[0].content == "system prompt"
    assert isinstance(messages[1], HumanMessage)
    assert isinstance(messages[2], AIMessage)
    assert model.bound_tools == []


def test_invoke1_binds_tools_and_forwards_max_tokens(scripted_model) -> None:
    model, invoker = scripted_model("summary")

    invoker.invoke1("fetch", "Please fetch", [WEB_SEARCH_TOOL], max_tokens=3000)

    assert model.bound_tools == [[WEB_SEARCH_TOOL]]
    assert model.calls[0]["kwargs"] == {"max_tokens": 3000}
    assert len(model.calls[0]["messages"]) == 2


def test_invoke_wraps_backend_failure_with_status(scripted_model) -> None:
    _, invoker = scripted_model(BackendStatusError(529, "overloaded"))

    with pytest.raises(TransportError) as exc:
        invoker.invoke1("system", "hello")

    assert exc.value.status == 529
    assert "API 529" in str(exc.value)


def test_invoke_wraps_network_failure_without_status(scripted_model) -> None:
    _, invoker = scripted_model(ConnectionError("connection reset"))

    with pytest.raises(TransportError) as exc:
        invoker.invoke1("system", "hello")

    assert exc.value.status is None


def test_empty_response_resolves_to_empty_string(scripted_model) -> None:
    _, invoker = scripted_model(AIMessage(content=[]), AIMessage(content=""))

    assert invoker.invoke1("system", "hello") == ""
    assert invoker.invoke1("system", "hello") == ""


def test_extract_text_joins_text_blocks_and_skips_tool_blocks() -> None:
    message = AIMessage(
        content=[
            {"type": "server_tool_use", "name": "web_search", "input": {"query": "x"}},
            {"type": "text", "text": "First"},
            {"type": "web_search_tool_result", "content": []},
            {"type": "text", "text": "Second"},
        ]
    )
    assert extract_text(message) == "First\nSecond"


def test_provider_settings_as_kwargs_filters_none() -> None:
    settings = ProviderSettings(provider="openai", model="demo", temperature=None, timeout=None)
    assert settings.as_kwargs() == {"model": "demo", "max_tokens": 4000}


def test_build_invoker_prefers_explicit_over_env(monkeypatch: pytest.MonkeyPatch, dummy_anthropic) -> None:
    monkeypatch.setenv("RESEARCHDESK_MODEL", "env-model")
    monkeypatch.setenv("RESEARCHDESK_API_KEY", "env-key")
    monkeypatch.setenv("ANTHROPIC_BASE_URL", "https://env.example")
    monkeypatch.setenv("RESEARCHDESK_TEMPERATURE", "0.25")

    invoker = build_invoker(provider="anthropic", model="cli-model", temperature=0.9, timeout=30.0)

    client = invoker.client
    assert isinstance(client, DummyChatModel)
    assert client.kwargs["model"] == "cli-model"
    assert client.kwargs["api_key"] == "env-key"
    assert client.kwargs["base_url"] == "https://env.example"
    assert client.kwargs["temperature"] == 0.9
    assert client.kwargs["timeout"] == 30.0
    assert client.kwargs["max_tokens"] == 4000
    assert invoker.name == "anthropic:cli-model"


def test_build_invoker_uses_provider_key_fallback(monkeypatch: pytest.MonkeyPatch, dummy_anthropic) -> None:
    monkeypatch.setenv("ANTHROPIC_API_KEY", "fallback-key")

    invoker = build_invoker()

    assert invoker.client.kwargs["api_key"] == "fallback-key"
    assert invoker.client.kwargs["model"] == providers.DEFAULT_MODELS["anthropic"]


def test_build_invoker_raises_dependency_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(providers, "ChatOpenAI", None)
    with pytest.raises(ProviderDependencyError):
        build_invoker(provider="openai")


def test_build_invoker_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError):
        build_invoker(provider="carrier-pigeon")


def test_offline_provider_answers_each_agent() -> None:
    invoker = build_invoker(provider="offline")
    assert isinstance(invoker.client, OfflineChatModel)

    analysis = invoker.invoke1(
        "You are a Research Analyst agent.",
        "--- SOURCE 1: Field notes ---\nSmall batches win.\n\nTOPIC/ANGLE: delivery speed",
    )
    assert "Field notes" in analysis
    assert "delivery speed" in analysis

    fetched = invoker.invoke1("You extract and summarize web content.", "Please fetch and summarize the content at: https://a.example", [WEB_SEARCH_TOOL])
    assert "https://a.example" in fetched
