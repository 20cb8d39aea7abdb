"""LangGraph-powered orchestration of the research → outline → draft pipeline.

Each stage is one agent call whose output feeds the next stage. The run is
strictly sequential. A stage that fails with a transport error leaves the run
in ``Failed`` while keeping every artefact produced before it, so the caller
can inspect the partial output or :meth:`PipelineOrchestrator.resume` from the
first missing artefact. When an output directory is configured the artefacts
are written as ``analysis.md``, ``outline.md`` and ``draft.md`` together with
``run.json``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Iterable, TypedDict

from langgraph.graph import END, START, StateGraph

from ..errors import TransportError, ValidationError
from ..llm.providers import AgentInvoker
from .models import OutputFormat, Source
from .prompts import (
    OUTLINE_AGENT,
    RESEARCH_AGENT,
    WRITING_AGENT,
    outline_message,
    research_message,
    writing_message,
)
from .state import PipelineRun, PipelineStage

__all__ = ["PipelineOrchestrator", "PipelineWorkflowState", "STAGE_FILENAMES"]

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[PipelineRun], None]

STAGE_FILENAMES = {
    PipelineStage.RESEARCH: "analysis.md",
    PipelineStage.OUTLINE: "outline.md",
    PipelineStage.DRAFT: "draft.md",
}

_NODE_NAMES = {
    PipelineStage.RESEARCH: "research",
    PipelineStage.OUTLINE: "outline",
    PipelineStage.DRAFT: "draft",
}


class PipelineWorkflowState(TypedDict, total=False):
    """State propagated through the LangGraph workflow."""

    run: PipelineRun
    sources: list[Source]
    entry: str


class PipelineOrchestrator:
    """Coordinate the three-stage LangGraph workflow for one working set."""

    def __init__(
        self,
        invoker: AgentInvoker,
        *,
        output_dir: Path | str | None = None,
        on_transition: TransitionCallback | None = None,
    ) -> None:
        self._invoker = invoker
        self._output_dir = Path(output_dir).expanduser() if output_dir is not None else None
        self._on_transition = on_transition
        self._workflow = self._build_workflow()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(
        self,
        sources: Iterable[Source],
        *,
        angle: str = "",
        output_format: OutputFormat | str = OutputFormat.BLOG,
    ) -> PipelineRun:
        """Run every stage over ``sources``; refuses an empty working set."""

        selected = list(sources)
        if not selected:
            raise ValidationError("Add at least one source first.")
        run = PipelineRun(angle=angle or "", output_format=OutputFormat(output_format))
        return self._drive(run, selected, PipelineStage.RESEARCH)

    def resume(self, previous: PipelineRun, sources: Iterable[Source] = ()) -> PipelineRun:
        """Start a fresh run that reuses ``previous`` artefacts and re-drives the rest."""

        run = PipelineRun(angle=previous.angle, output_format=previous.output_format).seeded_from(previous)
        entry = run.next_stage()
        if entry is PipelineStage.COMPLETE:
            logger.info("Run %s already has every artefact; nothing to resume", previous.run_id)
            run.finish()
            self._notify(run)
            return run
        selected = list(sources)
        if entry is PipelineStage.RESEARCH and not selected:
            raise ValidationError("Add at least one source first.")
        logger.info("Resuming run %s from %s", previous.run_id, entry.name.lower())
        return self._drive(run, selected, entry)

    # ------------------------------------------------------------------
    # LangGraph node implementations
    # ------------------------------------------------------------------
    def research(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        run = state["run"]
        self._begin(run, PipelineStage.RESEARCH)
        prompt = research_message(state["sources"], run.angle)
        run.research_analysis = self._call(PipelineStage.RESEARCH, RESEARCH_AGENT, prompt)
        self._write_stage_output(run, PipelineStage.RESEARCH, run.research_analysis)
        return {"run": run}

    def outline(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        run = state["run"]
        self._begin(run, PipelineStage.OUTLINE)
        prompt = outline_message(run.research_analysis, run.output_format, run.angle)
        run.outline = self._call(PipelineStage.OUTLINE, OUTLINE_AGENT, prompt)
        self._write_stage_output(run, PipelineStage.OUTLINE, run.outline)
        return {"run": run}

    def draft(self, state: PipelineWorkflowState) -> PipelineWorkflowState:
        run = state["run"]
        self._begin(run, PipelineStage.DRAFT)
        prompt = writing_message(run.research_analysis, run.outline, run.output_format, run.angle)
        run.draft = self._call(PipelineStage.DRAFT, WRITING_AGENT, prompt)
        self._write_stage_output(run, PipelineStage.DRAFT, run.draft)
        return {"run": run}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_workflow(self):
        graph = StateGraph(PipelineWorkflowState)
        graph.add_node("research", self.research)
        graph.add_node("outline", self.outline)
        graph.add_node("draft", self.draft)

        graph.add_conditional_edges(
            START,
            lambda state: state["entry"],
            {name: name for name in _NODE_NAMES.values()},
        )
        graph.add_edge("research", "outline")
        graph.add_edge("outline", "draft")
        graph.add_edge("draft", END)
        return graph.compile()

    def _drive(self, run: PipelineRun, sources: list[Source], entry: PipelineStage) -> PipelineRun:
        initial_state: PipelineWorkflowState = {
            "run": run,
            "sources": sources,
            "entry": _NODE_NAMES[entry],
        }
        try:
            self._workflow.invoke(
                initial_state,
                config={"configurable": {"thread_id": f"pipeline-{run.run_id}"}},
            )
        except TransportError as exc:
            run.fail(exc)
            logger.warning("Pipeline run %s %s", run.run_id, run.describe())
            self._notify(run)
            self._write_run_metadata(run)
            return run
        except Exception as exc:
            if run.in_flight:
                run.fail(exc)
                self._notify(run)
            self._write_run_metadata(run)
            raise

        run.finish()
        logger.info("Pipeline run %s complete", run.run_id)
        self._notify(run)
        self._write_run_metadata(run)
        return run

    def _begin(self, run: PipelineRun, stage: PipelineStage) -> None:
        run.begin(stage)
        logger.info("Pipeline run %s: %s stage started", run.run_id, stage.name.lower())
        self._notify(run)

    def _call(self, stage: PipelineStage, system_prompt: str, prompt: str) -> str:
        logger.debug("%s prompt is %d characters", stage.name.lower(), len(prompt))
        result = self._invoker.invoke1(system_prompt, prompt)
        if not result.strip():
            logger.warning("%s stage returned empty content", stage.name.lower())
        return result

    def _notify(self, run: PipelineRun) -> None:
        if self._on_transition is not None:
            self._on_transition(run)

    def _write_stage_output(self, run: PipelineRun, stage: PipelineStage, content: str) -> Path | None:
        if self._output_dir is None:
            return None
        path = self._output_dir / STAGE_FILENAMES[stage]
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(content.strip() + "\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write %s output to %s: %s", stage.name.lower(), path, exc)
            return None
        return path

    def _write_run_metadata(self, run: PipelineRun) -> Path | None:
        if self._output_dir is None:
            return None
        metadata = run.to_dict()
        metadata["model"] = self._invoker.name
        metadata["output_dir"] = str(self._output_dir)
        produced = {
            PipelineStage.RESEARCH: run.research_analysis,
            PipelineStage.OUTLINE: run.outline,
            PipelineStage.DRAFT: run.draft,
        }
        metadata["files"] = {
            stage.name.lower(): str(self._output_dir / STAGE_FILENAMES[stage])
            for stage, content in produced.items()
            if content
        }
        run_path = self._output_dir / "run.json"
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            run_path.write_text(json.dumps(metadata, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write run metadata to %s: %s", run_path, exc)
            return None
        return run_path
