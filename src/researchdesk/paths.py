"""Path helpers for the research desk."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

__all__ = [
    "DATA_ROOT_ENV",
    "OUTPUT_DIR_ENV",
    "DeskPathConfig",
    "default_data_root",
    "default_output_dir",
    "resolve_data_path",
    "resolve_output_path",
]

DATA_ROOT_ENV = "RESEARCHDESK_DATA_ROOT"
OUTPUT_DIR_ENV = "RESEARCHDESK_OUTPUT_DIR"


def _normalise(path: Path | str) -> Path:
    return Path(path).expanduser()


def default_data_root() -> Path:
    return _normalise(os.getenv(DATA_ROOT_ENV, "~/.researchdesk")) / "library"


def default_output_dir() -> Path | None:
    raw = os.getenv(OUTPUT_DIR_ENV)
    return _normalise(raw) if raw else None


def resolve_data_path(path: Path | str | None = None, *, create: bool = True) -> Path:
    candidate = _normalise(path) if path else default_data_root()
    if create:
        candidate.mkdir(parents=True, exist_ok=True)
    return candidate


def resolve_output_path(path: Path | str | None = None) -> Path | None:
    """Artefact directory, or ``None`` when stage output should stay in memory."""

    if path:
        return _normalise(path)
    return default_output_dir()


@dataclass(slots=True)
class DeskPathConfig:
    """Where the library lives and, optionally, where pipeline artefacts are written."""

    data_path: Path = field(default_factory=default_data_root)
    output_path: Path | None = field(default_factory=default_output_dir)
    create_data: bool = True
