"""Session facade tying ingestion, the pipeline, refinement and the library together."""

from __future__ import annotations

import logging
from pathlib import Path

from ..errors import ValidationError
from ..llm.providers import AgentInvoker
from .library import LibraryStore
from .models import Draft, Library, OutputFormat, Source
from .orchestrator import PipelineOrchestrator, TransitionCallback
from .refinement import RefinementReply, RefinementSession
from .sources import SourceIngestor, WorkingSet
from .state import PipelineRun

__all__ = ["DEFAULT_DRAFT_TITLE", "ResearchWorkspace"]

logger = logging.getLogger(__name__)

DEFAULT_DRAFT_TITLE = "Untitled draft"


class ResearchWorkspace:
    """One user's working session.

    Holds the ephemeral working set, the latest pipeline run, the active
    refinement session and the in-memory library, which stays authoritative
    for the session even when persisting it fails.
    """

    def __init__(
        self,
        invoker: AgentInvoker,
        store: LibraryStore,
        *,
        output_dir: Path | str | None = None,
        on_transition: TransitionCallback | None = None,
    ) -> None:
        self._invoker = invoker
        self._store = store
        self._ingestor = SourceIngestor(invoker)
        self._orchestrator = PipelineOrchestrator(invoker, output_dir=output_dir, on_transition=on_transition)
        self.working_set = WorkingSet()
        self.library: Library = store.load()
        self.angle = ""
        self.output_format = OutputFormat.BLOG
        self.last_run: PipelineRun | None = None
        self.session: RefinementSession | None = None

    # Ingestion ------------------------------------------------------------------

    @property
    def sources(self) -> tuple[Source, ...]:
        return self.working_set.as_tuple()

    def add_url(self, url: str) -> Source | None:
        source = self._ingestor.from_url(url)
        if source is not None:
            self.working_set.add(source)
        return source

    def add_text(self, content: str, title: str | None = None) -> Source | None:
        source = self._ingestor.from_text(content, title)
        if source is not None:
            self.working_set.add(source)
        return source

    def add_note(self, content: str, title: str | None = None) -> Source | None:
        """Add a note to the working set and persist it to the library right away."""

        note = self._ingestor.from_note(content, title)
        if note is None:
            return None
        self.working_set.add(note)
        self.library = self._store.add_note(self.library, note)
        logger.info("Note %s added and saved", note.id)
        return note

    def remove_source(self, source_id: str) -> bool:
        return self.working_set.remove(source_id)

    def load_from_library(self, item_id: str) -> Source:
        item = self.library.find(item_id)
        if item is None:
            raise ValueError(f"No library item with id '{item_id}'.")
        if not isinstance(item, Source):
            raise ValueError("Only saved sources and notes can be loaded into the working set.")
        self.working_set.load_from_library(item)
        return item

    # Pipeline -------------------------------------------------------------------

    def run_pipeline(
        self,
        *,
        angle: str | None = None,
        output_format: OutputFormat | str | None = None,
    ) -> PipelineRun:
        if angle is not None:
            self.angle = angle
        if output_format is not None:
            self.output_format = OutputFormat(output_format)
        run = self._orchestrator.run(self.sources, angle=self.angle, output_format=self.output_format)
        self.last_run = run
        self.session = None
        return run

    def resume_pipeline(self) -> PipelineRun:
        if self.last_run is None:
            raise ValidationError("There is no pipeline run to resume.")
        run = self._orchestrator.resume(self.last_run, self.sources)
        self.last_run = run
        self.session = None
        return run

    @property
    def draft(self) -> str:
        """Current draft text: the refinement copy once a session has started."""

        if self.session is not None:
            return self.session.draft
        return self.last_run.draft if self.last_run is not None else ""

    # Refinement -----------------------------------------------------------------

    def start_refinement(self) -> RefinementSession:
        if self.last_run is None:
            raise ValidationError("Run the pipeline to produce a draft first.")
        self.session = RefinementSession.from_run(self._invoker, self.last_run)
        return self.session

    def refine(self, request: str) -> RefinementReply | None:
        if self.session is None:
            self.start_refinement()
        return self.session.send(request)

    # Library --------------------------------------------------------------------

    def save_draft(self) -> Draft | None:
        if not self.draft or self.last_run is None:
            return None
        draft = Draft(
            title=self.angle.strip() or DEFAULT_DRAFT_TITLE,
            content=self.draft,
            outline=self.last_run.outline,
            analysis=self.last_run.research_analysis,
            format=self.last_run.output_format,
        )
        self.library = self._store.add_draft(self.library, draft)
        logger.info("Draft %s saved", draft.id)
        return draft

    def save_sources(self) -> int:
        self.library, added = self._store.add_sources(self.library, self.sources)
        return added

    def delete(self, category: str, item_id: str) -> Library:
        self.library = self._store.delete(self.library, category, item_id)
        return self.library

    def reload_library(self) -> Library:
        self.library = self._store.load()
        return self.library
