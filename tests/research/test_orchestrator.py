from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from conftest import BackendStatusError
from researchdesk.errors import ValidationError
from researchdesk.research import (
    Complete,
    Failed,
    OutputFormat,
    PipelineOrchestrator,
    PipelineRun,
    PipelineStage,
)
from researchdesk.research.prompts import OUTLINE_AGENT, RESEARCH_AGENT, WRITING_AGENT


def test_full_run_reaches_complete_with_all_artefacts(scripted_model, sample_sources) -> None:
    model, invoker = scripted_model("ANALYSIS", "OUTLINE", "DRAFT")
    stages: list[int] = []
    orchestrator = PipelineOrchestrator(invoker, on_transition=lambda run: stages.append(run.stage))

    run = orchestrator.run(sample_sources, angle="delivery speed", output_format=OutputFormat.NEWSLETTER)

    assert run.stage == 4
    assert isinstance(run.state, Complete)
    assert (run.research_analysis, run.outline, run.draft) == ("ANALYSIS", "OUTLINE", "DRAFT")
    assert stages == [1, 2, 3, 4]
    assert [call["messages"][0].content for call in model.calls] == [RESEARCH_AGENT, OUTLINE_AGENT, WRITING_AGENT]


def test_stage_messages_chain_previous_output(scripted_model, sample_sources) -> None:
    model, invoker = scripted_model("ANALYSIS", "OUTLINE", "DRAFT")

    PipelineOrchestrator(invoker).run(sample_sources, angle="delivery speed", output_format="thread")

    research, outline, draft = (call["messages"][1].content for call in model.calls)
    assert research == (
        "--- SOURCE 1: Field notes ---\nTeams ship faster with small batches."
        "\n\n--- SOURCE 2: https://example.com/post ---\nSurvey: 62% of teams deploy daily."
        "\n\nTOPIC/ANGLE: delivery speed"
    )
    assert outline == (
        "RESEARCH ANALYSIS:\nANALYSIS\n\nOutput format requested: thread\n\nTOPIC/ANGLE: delivery speed"
    )
    assert draft == (
        "RESEARCH ANALYSIS:\nANALYSIS\n\nOUTLINE:\nOUTLINE\n\n"
        "Output format requested: thread\n\nTOPIC/ANGLE: delivery speed"
    )


def test_no_angle_means_no_annotation(scripted_model, sample_sources) -> None:
    model, invoker = scripted_model("A", "O", "D")

    PipelineOrchestrator(invoker).run(sample_sources[:1])

    assert "TOPIC/ANGLE" not in model.calls[0]["messages"][1].content
    assert model.calls[1]["messages"][1].content.endswith("Output format requested: blog")


def test_empty_working_set_is_refused_without_a_call(scripted_model) -> None:
    model, invoker = scripted_model("unused")

    with pytest.raises(ValidationError):
        PipelineOrchestrator(invoker).run([])

    assert model.calls == []


def test_outline_failure_keeps_analysis_and_resets_stage(scripted_model, sample_sources) -> None:
    model, invoker = scripted_model("ANALYSIS", BackendStatusError(503))

    run = PipelineOrchestrator(invoker).run(sample_sources)

    assert run.stage == 0
    assert run.failed
    assert isinstance(run.state, Failed)
    assert run.state.stage is PipelineStage.OUTLINE
    assert run.research_analysis == "ANALYSIS"
    assert run.outline == ""
    assert run.draft == ""
    assert "503" in str(run.error)
    assert len(model.calls) == 2


def test_resume_redrives_from_first_missing_artefact(scripted_model, sample_sources) -> None:
    model, invoker = scripted_model("ANALYSIS", BackendStatusError(503), "OUTLINE", "DRAFT")
    orchestrator = PipelineOrchestrator(invoker)
    failed = orchestrator.run(sample_sources, angle="speed")

    resumed = orchestrator.resume(failed)

    assert resumed is not failed
    assert resumed.stage == 4
    assert (resumed.research_analysis, resumed.outline, resumed.draft) == ("ANALYSIS", "OUTLINE", "DRAFT")
    assert resumed.angle == "speed"
    assert [call["messages"][0].content for call in model.calls[2:]] == [OUTLINE_AGENT, WRITING_AGENT]


def test_resume_from_research_needs_sources(scripted_model) -> None:
    _, invoker = scripted_model()

    with pytest.raises(ValidationError):
        PipelineOrchestrator(invoker).resume(PipelineRun())


def test_unexpected_errors_mark_run_failed_and_propagate(scripted_model, sample_sources) -> None:
    _, invoker = scripted_model("ANALYSIS")
    runs: list[PipelineRun] = []

    def explode(run: PipelineRun) -> None:
        runs.append(run)
        if run.stage == 2:
            raise KeyError("display crashed")

    with pytest.raises(KeyError):
        PipelineOrchestrator(invoker, on_transition=explode).run(sample_sources)

    assert runs[-1].failed
    assert runs[-1].research_analysis == "ANALYSIS"


def test_artefacts_are_written_to_output_dir(scripted_model, sample_sources, tmp_path: Path) -> None:
    _, invoker = scripted_model("ANALYSIS", "OUTLINE", "DRAFT")

    PipelineOrchestrator(invoker, output_dir=tmp_path).run(sample_sources)

    assert (tmp_path / "analysis.md").read_text(encoding="utf-8") == "ANALYSIS\n"
    assert (tmp_path / "outline.md").read_text(encoding="utf-8") == "OUTLINE\n"
    assert (tmp_path / "draft.md").read_text(encoding="utf-8") == "DRAFT\n"
    metadata = json.loads((tmp_path / "run.json").read_text(encoding="utf-8"))
    assert metadata["stage"] == 4
    assert metadata["state"] == "complete"
    assert metadata["model"] == "scripted"
    assert set(metadata["files"]) == {"research", "outline", "draft"}


def test_failed_run_metadata_records_stage(scripted_model, sample_sources, tmp_path: Path) -> None:
    _, invoker = scripted_model(BackendStatusError(401))

    run = PipelineOrchestrator(invoker, output_dir=tmp_path).run(sample_sources)

    assert run.state.stage is PipelineStage.RESEARCH
    metadata = json.loads((tmp_path / "run.json").read_text(encoding="utf-8"))
    assert metadata["stage"] == 0
    assert metadata["state"].startswith("failed at research")
    assert metadata["files"] == {}


def test_unwritable_output_dir_keeps_run_usable(
    scripted_model, sample_sources, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    _, invoker = scripted_model("ANALYSIS", "OUTLINE", "DRAFT")
    blocker = tmp_path / "out"
    blocker.write_text("not a directory", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        run = PipelineOrchestrator(invoker, output_dir=blocker).run(sample_sources)

    assert run.stage == 4
    assert isinstance(run.state, Complete)
    assert run.draft == "DRAFT"
    assert "Could not write research output" in caplog.text
    assert "Could not write run metadata" in caplog.text
