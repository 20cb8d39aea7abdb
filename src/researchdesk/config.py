"""Dataclass-driven configuration for the research desk."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable

from .llm.providers import PROVIDER_API_KEY_ENVS
from .paths import DeskPathConfig, resolve_data_path, resolve_output_path

__all__ = [
    "LLMConfig",
    "ResearchDeskConfig",
]


def _env_float(name: str, default: float | None = None) -> float | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:  # pragma: no cover - defensive guard
        return default


def _env_int(name: str, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:  # pragma: no cover - defensive guard
        return default


@dataclass(slots=True)
class LLMConfig:
    """Configuration for the LangChain chat model behind every agent."""

    provider: str = os.getenv("RESEARCHDESK_PROVIDER", "anthropic")
    model: str | None = os.getenv("RESEARCHDESK_MODEL")
    base_url: str | None = os.getenv("RESEARCHDESK_BASE_URL")
    temperature: float | None = _env_float("RESEARCHDESK_TEMPERATURE")
    max_tokens: int = _env_int("RESEARCHDESK_MAX_TOKENS", 4000) or 4000
    timeout: float | None = _env_float("RESEARCHDESK_TIMEOUT", 120.0)
    api_key_env: str = os.getenv("RESEARCHDESK_API_KEY_ENV", "RESEARCHDESK_API_KEY")

    @property
    def fallback_api_key_envs(self) -> tuple[str, ...]:
        return PROVIDER_API_KEY_ENVS.get(self.provider.lower(), ())

    def resolve_api_key(self, override: str | None = None) -> str | None:
        if override:
            return override
        env_candidates: Iterable[str | None] = (self.api_key_env, *self.fallback_api_key_envs)
        for name in env_candidates:
            if not name:
                continue
            value = os.getenv(name)
            if value:
                return value
        return None

    def provider_kwargs(
        self,
        *,
        provider: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        api_key: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> dict[str, object | None]:
        return {
            "provider": provider or self.provider,
            "model": model or self.model,
            "base_url": base_url or self.base_url,
            "api_key": api_key if api_key is not None else self.resolve_api_key(),
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": self.max_tokens if max_tokens is None else max_tokens,
            "timeout": self.timeout if timeout is None else timeout,
        }


@dataclass(slots=True)
class ResearchDeskConfig:
    """Primary configuration entry point for the research desk."""

    paths: DeskPathConfig = field(default_factory=DeskPathConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    log_level: str = os.getenv("RESEARCHDESK_LOG_LEVEL", "WARNING")

    def with_paths(
        self,
        *,
        data_path: Path | str | None = None,
        output_path: Path | str | None = None,
    ) -> "ResearchDeskConfig":
        new_paths = replace(
            self.paths,
            data_path=resolve_data_path(data_path or self.paths.data_path, create=False),
            output_path=resolve_output_path(output_path or self.paths.output_path),
        )
        return replace(self, paths=new_paths)

    @property
    def data_path(self) -> Path:
        return resolve_data_path(self.paths.data_path, create=self.paths.create_data)

    @property
    def output_path(self) -> Path | None:
        return resolve_output_path(self.paths.output_path)

    def as_provider_kwargs(self, **overrides: object) -> dict[str, object | None]:
        return self.llm.provider_kwargs(**overrides)
