"""Source ingestion: fetched URLs, pasted text and notes become uniform records."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from ..errors import FetchError, TransportError
from ..llm.providers import WEB_SEARCH_TOOL, AgentInvoker
from .models import Source, SourceType
from .prompts import FETCH_AGENT, FETCH_MAX_TOKENS, fetch_message

__all__ = [
    "DEFAULT_TEXT_TITLE",
    "DEFAULT_NOTE_TITLE",
    "SourceIngestor",
    "WorkingSet",
]

logger = logging.getLogger(__name__)

DEFAULT_TEXT_TITLE = "Untitled paste"
DEFAULT_NOTE_TITLE = "Note"


class SourceIngestor:
    """Builds :class:`Source` records along the three ingestion paths.

    Blank input is a no-op on every path and yields ``None``. Only the URL
    path talks to the model backend.
    """

    def __init__(self, invoker: AgentInvoker, *, fetch_tools: Iterable[dict] | None = None) -> None:
        self._invoker = invoker
        self._fetch_tools = list(fetch_tools) if fetch_tools is not None else [WEB_SEARCH_TOOL]

    def from_url(self, url: str) -> Source | None:
        target = (url or "").strip()
        if not target:
            return None
        logger.info("Fetching source from %s", target)
        try:
            content = self._invoker.invoke1(
                FETCH_AGENT,
                fetch_message(target),
                self._fetch_tools,
                max_tokens=FETCH_MAX_TOKENS,
            )
        except TransportError as exc:
            logger.warning("Fetch failed for %s: %s", target, exc)
            raise FetchError(target, str(exc), status=exc.status) from exc
        return Source(type=SourceType.URL, title=target, content=content)

    def from_text(self, content: str, title: str | None = None) -> Source | None:
        return self._local(SourceType.TEXT, content, title, DEFAULT_TEXT_TITLE)

    def from_note(self, content: str, title: str | None = None) -> Source | None:
        return self._local(SourceType.NOTE, content, title, DEFAULT_NOTE_TITLE)

    @staticmethod
    def _local(kind: SourceType, content: str, title: str | None, fallback: str) -> Source | None:
        if not (content or "").strip():
            return None
        return Source(type=kind, title=title or fallback, content=content)


class WorkingSet:
    """Ordered, id-unique collection of sources feeding the next pipeline run."""

    def __init__(self, sources: Iterable[Source] = ()) -> None:
        self._sources: list[Source] = []
        for source in sources:
            self.add(source)

    def __iter__(self) -> Iterator[Source]:
        return iter(tuple(self._sources))

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: object) -> bool:
        return any(source.id == source_id for source in self._sources)

    def as_tuple(self) -> tuple[Source, ...]:
        return tuple(self._sources)

    def add(self, source: Source) -> bool:
        if source.id in self:
            return False
        self._sources.append(source)
        return True

    def load_from_library(self, source: Source) -> bool:
        """Bring a saved source back into play unless its id is already present."""

        added = self.add(source)
        if added:
            logger.info("Loaded library item %s into the working set", source.id)
        return added

    def remove(self, source_id: str) -> bool:
        before = len(self._sources)
        self._sources = [source for source in self._sources if source.id != source_id]
        return len(self._sources) != before

    def clear(self) -> None:
        self._sources.clear()
