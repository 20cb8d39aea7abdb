"""Pydantic records for sources, saved drafts, transcripts and the library."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "CATEGORIES",
    "SourceType",
    "Role",
    "OutputFormat",
    "Source",
    "Draft",
    "ConversationTurn",
    "Library",
    "new_id",
    "utc_timestamp",
]

CATEGORIES = ("sources", "drafts", "notes")


def new_id() -> str:
    return uuid.uuid4().hex


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""

    now = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return now.replace("+00:00", "Z")


class SourceType(str, Enum):
    URL = "url"
    TEXT = "text"
    NOTE = "note"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class OutputFormat(str, Enum):
    """Requested shape of the final piece, passed verbatim to the agents."""

    BLOG = "blog"
    THREAD = "thread"
    NEWSLETTER = "newsletter"
    OUTLINE_ONLY = "outline"

    @classmethod
    def _missing_(cls, value: object) -> "OutputFormat | None":
        if not isinstance(value, str):
            return None
        normalised = value.strip().lower().replace("_", "-")
        if normalised == "outline-only":
            return cls.OUTLINE_ONLY
        for member in cls:
            if member.value == normalised:
                return member
        return None

    @property
    def label(self) -> str:
        return {
            OutputFormat.BLOG: "Blog Post",
            OutputFormat.THREAD: "Thread",
            OutputFormat.NEWSLETTER: "Newsletter",
            OutputFormat.OUTLINE_ONLY: "Outline Only",
        }[self]


class FrozenBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class Source(FrozenBaseModel):
    """A unit of research material with a stable identity."""

    id: str = Field(default_factory=new_id, description="Opaque identity used for dedup and removal.")
    type: SourceType = Field(..., description="Where the material came from.")
    title: str = Field(..., description="URL, caller supplied title, or a placeholder.")
    content: str = Field(..., description="Raw or summarised text of the material.")
    date: str = Field(default_factory=utc_timestamp, description="Creation time, ISO-8601 UTC.")


class Draft(FrozenBaseModel):
    """Frozen snapshot of a pipeline run saved into the library."""

    id: str = Field(default_factory=new_id)
    title: str
    content: str
    outline: str = ""
    analysis: str = ""
    date: str = Field(default_factory=utc_timestamp)
    format: OutputFormat = OutputFormat.BLOG


class ConversationTurn(FrozenBaseModel):
    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.ASSISTANT, content=content)


class Library(FrozenBaseModel):
    """The persisted aggregate. Ids are unique within each list."""

    sources: List[Source] = Field(default_factory=list)
    drafts: List[Draft] = Field(default_factory=list)
    notes: List[Source] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "Library":
        return cls()

    @classmethod
    def from_json(cls, payload: str) -> "Library":
        return cls.model_validate(json.loads(payload))

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False)

    def category(self, name: str) -> list:
        if name not in CATEGORIES:
            raise ValueError(f"Unknown library category '{name}'. Expected one of {', '.join(CATEGORIES)}.")
        return list(getattr(self, name))

    def replace(self, name: str, items: Iterable[Source | Draft]) -> "Library":
        self.category(name)
        return self.model_copy(update={name: list(items)})

    def find(self, item_id: str) -> Source | Draft | None:
        for name in CATEGORIES:
            for item in getattr(self, name):
                if item.id == item_id:
                    return item
        return None
