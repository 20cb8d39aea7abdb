from __future__ import annotations

import logging
from pathlib import Path

import pytest

from researchdesk.research import (
    STORAGE_KEY,
    Draft,
    FileKeyValueStore,
    Library,
    LibraryStore,
    MemoryKeyValueStore,
    OutputFormat,
    Source,
    SourceType,
    merge_sources,
)


class BrokenBackend:
    def get(self, key: str) -> str | None:
        raise OSError("disk unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("quota exceeded")


def _library(sample_sources: list[Source]) -> Library:
    return Library(
        sources=sample_sources,
        drafts=[Draft(title="Speed", content="Draft", outline="O", analysis="A", format=OutputFormat.THREAD)],
        notes=[Source(type=SourceType.NOTE, title="Note", content="remember")],
    )


def test_merge_is_idempotent_and_order_preserving(sample_sources) -> None:
    extra = Source(type=SourceType.TEXT, title="c", content="3")

    once = merge_sources(sample_sources, [extra, sample_sources[0]])
    twice = merge_sources(once, [extra, *sample_sources])

    assert [s.id for s in once] == [sample_sources[0].id, sample_sources[1].id, extra.id]
    assert twice == once


def test_save_then_load_round_trips(memory_store, sample_sources) -> None:
    library = _library(sample_sources)

    assert memory_store.save(library) is True
    assert memory_store.load() == library


def test_missing_or_corrupt_payload_loads_empty(caplog: pytest.LogCaptureFixture) -> None:
    assert LibraryStore(MemoryKeyValueStore()).load() == Library.empty()

    corrupt = LibraryStore(MemoryKeyValueStore({STORAGE_KEY: "{not json"}))
    wrong_shape = LibraryStore(MemoryKeyValueStore({STORAGE_KEY: '{"sources": 5}'}))
    with caplog.at_level(logging.WARNING):
        assert corrupt.load() == Library.empty()
        assert wrong_shape.load() == Library.empty()
    assert "unreadable" in caplog.text


def test_backend_failures_are_logged_not_raised(caplog: pytest.LogCaptureFixture, sample_sources) -> None:
    store = LibraryStore(BrokenBackend())

    with caplog.at_level(logging.WARNING):
        assert store.load() == Library.empty()
        assert store.save(_library(sample_sources)) is False
        updated = store.delete(_library(sample_sources), "sources", sample_sources[0].id)

    assert "Library save failed" in caplog.text
    assert [s.id for s in updated.sources] == [sample_sources[1].id]


def test_delete_only_touches_one_category(memory_store, sample_sources) -> None:
    library = _library(sample_sources)
    draft_id = library.drafts[0].id

    updated = memory_store.delete(library, "drafts", draft_id)

    assert updated.drafts == []
    assert updated.sources == library.sources
    assert updated.notes == library.notes
    assert memory_store.load() == updated


def test_add_sources_skips_known_items(memory_store, sample_sources) -> None:
    library, added = memory_store.add_sources(Library.empty(), sample_sources)
    assert added == 2

    again, added_again = memory_store.add_sources(library, sample_sources)
    assert added_again == 0
    assert again is library
    assert memory_store.load().sources == sample_sources


def test_unknown_category_is_rejected(memory_store) -> None:
    with pytest.raises(ValueError):
        memory_store.delete(Library.empty(), "bookmarks", "abc")


def test_file_backend_persists_under_sanitised_key(tmp_path: Path, sample_sources) -> None:
    backend = FileKeyValueStore(tmp_path / "library")
    store = LibraryStore(backend)
    library = _library(sample_sources)

    store.save(library)

    path = backend.path_for(STORAGE_KEY)
    assert path.name == "ra_library-v2.json"
    assert path.exists()
    assert list(path.parent.glob("*.tmp")) == []
    assert LibraryStore(FileKeyValueStore(tmp_path / "library")).load() == library


class RecordingBackend(MemoryKeyValueStore):
    def __init__(self) -> None:
        super().__init__()
        self.writes = 0

    def set(self, key: str, value: str) -> None:
        self.writes += 1
        super().set(key, value)


def test_deleting_unknown_id_writes_nothing(sample_sources) -> None:
    backend = RecordingBackend()
    store = LibraryStore(backend)
    library = _library(sample_sources)

    assert store.delete(library, "sources", "no-such-id") is library
    assert backend.writes == 0
