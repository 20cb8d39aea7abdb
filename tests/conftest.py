"""Shared fixtures for the test suite."""
from __future__ import annotations

from typing import Any, Iterable

import pytest
from langchain_core.messages import AIMessage

from researchdesk.llm.providers import AgentInvoker
from researchdesk.research import LibraryStore, MemoryKeyValueStore, Source, SourceType

ENV_VARS = {
    "RESEARCHDESK_PROVIDER",
    "RESEARCHDESK_MODEL",
    "RESEARCHDESK_API_KEY",
    "RESEARCHDESK_BASE_URL",
    "RESEARCHDESK_TEMPERATURE",
    "RESEARCHDESK_MAX_TOKENS",
    "RESEARCHDESK_TIMEOUT",
    "RESEARCHDESK_OUTPUT_DIR",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_BASE_URL",
}


class BackendStatusError(Exception):
    """Mimics the status-coded errors raised by provider SDKs."""

    def __init__(self, status_code: int, message: str = "backend error") -> None:
        super().__init__(message)
        self.status_code = status_code


class ScriptedChatModel:
    """Chat model double that replays scripted replies and records every call."""

    def __init__(self, responses: Iterable[Any] = ()) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []
        self.bound_tools: list[list[dict[str, Any]]] = []

    def bind_tools(self, tools: list[dict[str, Any]], **kwargs: Any) -> "ScriptedChatModel":
        self.bound_tools.append(list(tools))
        return self

    def invoke(self, messages: Iterable[Any], **kwargs: Any) -> Any:
        self.calls.append({"messages": list(messages), "kwargs": dict(kwargs)})
        if not self.responses:
            raise AssertionError("No scripted responses remaining")
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, str):
            return AIMessage(content=response)
        return response


@pytest.fixture(autouse=True)
def _clear_llm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure LLM-related environment variables do not leak between tests."""

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def scripted_model():
    """Factory building a scripted chat model and an invoker around it."""

    def factory(*responses: Any) -> tuple[ScriptedChatModel, AgentInvoker]:
        model = ScriptedChatModel(responses)
        return model, AgentInvoker(model, name="scripted")

    return factory


@pytest.fixture
def memory_store() -> LibraryStore:
    return LibraryStore(MemoryKeyValueStore())


@pytest.fixture
def sample_sources() -> list[Source]:
    return [
        Source(type=SourceType.TEXT, title="Field notes", content="Teams ship faster with small batches."),
        Source(type=SourceType.URL, title="https://example.com/post", content="Survey: 62% of teams deploy daily."),
    ]
