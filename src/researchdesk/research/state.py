"""Pipeline run state: explicit tagged states plus the artefacts of one run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, ClassVar, Union

from .models import OutputFormat

__all__ = [
    "PipelineStage",
    "Idle",
    "Researching",
    "Outlining",
    "Drafting",
    "Complete",
    "Failed",
    "PipelineState",
    "PipelineRun",
    "IllegalTransitionError",
]


class PipelineStage(IntEnum):
    """Integer stage markers: 0 idle, 1-3 a stage in flight, 4 complete."""

    IDLE = 0
    RESEARCH = 1
    OUTLINE = 2
    DRAFT = 3
    COMPLETE = 4


@dataclass(frozen=True, slots=True)
class Idle:
    marker: ClassVar[PipelineStage] = PipelineStage.IDLE


@dataclass(frozen=True, slots=True)
class Researching:
    marker: ClassVar[PipelineStage] = PipelineStage.RESEARCH


@dataclass(frozen=True, slots=True)
class Outlining:
    marker: ClassVar[PipelineStage] = PipelineStage.OUTLINE


@dataclass(frozen=True, slots=True)
class Drafting:
    marker: ClassVar[PipelineStage] = PipelineStage.DRAFT


@dataclass(frozen=True, slots=True)
class Complete:
    marker: ClassVar[PipelineStage] = PipelineStage.COMPLETE


@dataclass(frozen=True, slots=True)
class Failed:
    """Terminal failure; ``stage`` names the stage whose call failed."""

    stage: PipelineStage
    cause: BaseException
    marker: ClassVar[PipelineStage] = PipelineStage.IDLE


PipelineState = Union[Idle, Researching, Outlining, Drafting, Complete, Failed]

_IN_FLIGHT: dict[PipelineStage, type] = {
    PipelineStage.RESEARCH: Researching,
    PipelineStage.OUTLINE: Outlining,
    PipelineStage.DRAFT: Drafting,
}

_ALLOWED: dict[type, tuple[type, ...]] = {
    Idle: (Researching, Outlining, Drafting, Complete),
    Researching: (Outlining, Failed),
    Outlining: (Drafting, Failed),
    Drafting: (Complete, Failed),
    Complete: (),
    Failed: (),
}


class IllegalTransitionError(RuntimeError):
    """Raised when a run is moved along an edge the state machine lacks."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass(slots=True)
class PipelineRun:
    """One invocation of the pipeline. Artefacts survive a failed stage."""

    angle: str = ""
    output_format: OutputFormat = OutputFormat.BLOG
    state: PipelineState = field(default_factory=Idle)
    research_analysis: str = ""
    outline: str = ""
    draft: str = ""
    run_id: str = field(default_factory=lambda: datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f"))
    started_at: str | None = None
    finished_at: str | None = None

    @property
    def stage(self) -> int:
        return int(self.state.marker)

    @property
    def error(self) -> BaseException | None:
        return self.state.cause if isinstance(self.state, Failed) else None

    @property
    def failed(self) -> bool:
        return isinstance(self.state, Failed)

    @property
    def complete(self) -> bool:
        return isinstance(self.state, Complete)

    @property
    def in_flight(self) -> bool:
        return isinstance(self.state, (Researching, Outlining, Drafting))

    def next_stage(self) -> PipelineStage:
        """First stage whose artefact is still missing."""

        if not self.research_analysis:
            return PipelineStage.RESEARCH
        if not self.outline:
            return PipelineStage.OUTLINE
        if not self.draft:
            return PipelineStage.DRAFT
        return PipelineStage.COMPLETE

    def begin(self, stage: PipelineStage) -> None:
        if self.started_at is None:
            self.started_at = _now()
        self._move(_IN_FLIGHT[stage]())

    def finish(self) -> None:
        self._move(Complete())
        self.started_at = self.started_at or _now()
        self.finished_at = _now()

    def fail(self, cause: BaseException) -> None:
        current = self.state.marker if self.in_flight else PipelineStage.IDLE
        self._move(Failed(stage=current, cause=cause))
        self.finished_at = _now()

    def seeded_from(self, previous: "PipelineRun") -> "PipelineRun":
        """Carry a previous run's artefacts into this fresh run."""

        self.research_analysis = previous.research_analysis
        self.outline = previous.outline
        self.draft = previous.draft
        return self

    def _move(self, target: PipelineState) -> None:
        if not isinstance(target, _ALLOWED[type(self.state)]):
            raise IllegalTransitionError(
                f"Cannot move pipeline from {type(self.state).__name__} to {type(target).__name__}."
            )
        self.state = target

    def describe(self) -> str:
        if isinstance(self.state, Failed):
            return f"failed at {self.state.stage.name.lower()}: {self.state.cause}"
        return type(self.state).__name__.lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "stage": self.stage,
            "state": self.describe(),
            "angle": self.angle,
            "format": self.output_format.value,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "artefacts": {
                "analysis": bool(self.research_analysis),
                "outline": bool(self.outline),
                "draft": bool(self.draft),
            },
        }
