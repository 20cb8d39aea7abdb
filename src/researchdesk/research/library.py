"""Durable, deduplicated library of sources, drafts and notes.

The whole library is one JSON document stored under a single key of an
injected key-value backend. Every mutation replaces and persists the whole
structure. Loading never fails: a missing or unreadable value is an empty
library. Saving is best effort: a failure is logged and the in-memory copy
stays authoritative.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Iterable, Protocol, Sequence, TypeVar

from pydantic import ValidationError as SchemaError

from ..errors import PersistenceError
from .models import CATEGORIES, Draft, Library, Source

__all__ = [
    "STORAGE_KEY",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "LibraryStore",
    "merge_sources",
]

logger = logging.getLogger(__name__)

STORAGE_KEY = "ra:library-v2"

Record = TypeVar("Record", Source, Draft)


class KeyValueStore(Protocol):
    """String key-value persistence substrate."""

    def get(self, key: str) -> str | None:  # pragma: no cover - interface
        ...

    def set(self, key: str, value: str) -> None:  # pragma: no cover - interface
        ...


class MemoryKeyValueStore:
    """Process-local backend, handy for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class FileKeyValueStore:
    """One UTF-8 file per key inside ``root``."""

    def __init__(self, root: Path | str, *, encoding: str = "utf-8") -> None:
        self.root = Path(root).expanduser()
        self.encoding = encoding

    def path_for(self, key: str) -> Path:
        return self.root / (re.sub(r"[^A-Za-z0-9._-]", "_", key) + ".json")

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding=self.encoding)

    def set(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding=self.encoding) as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def merge_sources(existing: Sequence[Record], incoming: Iterable[Record]) -> list[Record]:
    """Union keyed by ``id``: existing order kept, unseen incoming records appended."""

    merged = list(existing)
    seen = {item.id for item in merged}
    for item in incoming:
        if item.id in seen:
            continue
        merged.append(item)
        seen.add(item.id)
    return merged


class LibraryStore:
    """Load/save lifecycle for the :class:`Library` over a key-value backend."""

    def __init__(self, backend: KeyValueStore, *, key: str = STORAGE_KEY) -> None:
        self._backend = backend
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> Library:
        try:
            payload = self._backend.get(self._key)
        except Exception as exc:
            logger.warning("%s", PersistenceError(f"Library load failed: {exc}"))
            return Library.empty()
        if not payload:
            return Library.empty()
        try:
            return Library.from_json(payload)
        except (ValueError, TypeError, SchemaError) as exc:
            logger.warning("Stored library under '%s' is unreadable; starting empty (%s)", self._key, exc)
            return Library.empty()

    def save(self, library: Library) -> bool:
        try:
            self._backend.set(self._key, library.to_json())
        except Exception as exc:
            logger.error("%s", PersistenceError(f"Library save failed: {exc}"))
            return False
        return True

    merge_sources = staticmethod(merge_sources)

    def delete(self, library: Library, category: str, item_id: str) -> Library:
        """Drop ``item_id`` from one category and persist the result."""

        items = library.category(category)
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return library
        updated = library.replace(category, remaining)
        self.save(updated)
        logger.info("Deleted %s from library %s", item_id, category)
        return updated

    def add_note(self, library: Library, note: Source) -> Library:
        updated = library.replace("notes", merge_sources(library.notes, [note]))
        self.save(updated)
        return updated

    def add_draft(self, library: Library, draft: Draft) -> Library:
        updated = library.replace("drafts", merge_sources(library.drafts, [draft]))
        self.save(updated)
        return updated

    def add_sources(self, library: Library, sources: Iterable[Source]) -> tuple[Library, int]:
        """Merge ``sources`` into the saved sources; nothing is written when all are known."""

        merged = merge_sources(library.sources, sources)
        added = len(merged) - len(library.sources)
        if not added:
            return library, 0
        updated = library.replace("sources", merged)
        self.save(updated)
        logger.info("Saved %d new source(s) to the library", added)
        return updated, added

    @staticmethod
    def categories() -> tuple[str, ...]:
        return CATEGORIES
