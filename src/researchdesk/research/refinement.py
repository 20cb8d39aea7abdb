"""Conversational refinement of a finished draft."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import ResearchDeskError, ValidationError
from ..llm.providers import AgentInvoker
from .models import ConversationTurn
from .prompts import DRAFT_PREAMBLE_ACK, EDITOR_AGENT, EDITOR_GREETING, draft_preamble
from .state import PipelineRun

__all__ = [
    "REWRITE_RATIO",
    "DraftArtifact",
    "RefinementReply",
    "RefinementSession",
]

logger = logging.getLogger(__name__)

REWRITE_RATIO = 0.5


@dataclass(slots=True)
class DraftArtifact:
    """The current draft. Whoever holds it is its only writer."""

    text: str
    revision: int = 0

    def replace(self, text: str) -> None:
        self.text = text
        self.revision += 1

    def __len__(self) -> int:
        return len(self.text)


@dataclass(frozen=True, slots=True)
class RefinementReply:
    content: str
    replaced_draft: bool
    failed: bool = False


class RefinementSession:
    """Multi-turn editing loop that keeps the current draft as shared context.

    The transcript opens with the editor greeting. Every request is sent
    together with a two-turn preamble presenting the current draft, followed
    by the whole transcript. A reply longer than
    ``rewrite_ratio`` times the current draft is taken as a full rewrite and
    replaces the draft; anything shorter is commentary.
    """

    def __init__(
        self,
        invoker: AgentInvoker,
        artifact: DraftArtifact,
        *,
        system_prompt: str = EDITOR_AGENT,
        rewrite_ratio: float = REWRITE_RATIO,
    ) -> None:
        self._invoker = invoker
        self._artifact = artifact
        self._system_prompt = system_prompt
        self._rewrite_ratio = rewrite_ratio
        self._transcript: list[ConversationTurn] = [ConversationTurn.assistant(EDITOR_GREETING)]
        self._in_flight = False

    @classmethod
    def from_run(cls, invoker: AgentInvoker, run: PipelineRun, **kwargs) -> "RefinementSession":
        if not run.draft:
            raise ValidationError("Run the pipeline to produce a draft first.")
        return cls(invoker, DraftArtifact(run.draft), **kwargs)

    @property
    def greeting(self) -> str:
        return EDITOR_GREETING

    @property
    def draft(self) -> str:
        return self._artifact.text

    @property
    def artifact(self) -> DraftArtifact:
        return self._artifact

    @property
    def transcript(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._transcript)

    @property
    def busy(self) -> bool:
        return self._in_flight

    def preamble(self) -> list[ConversationTurn]:
        return [
            ConversationTurn.user(draft_preamble(self._artifact.text)),
            ConversationTurn.assistant(DRAFT_PREAMBLE_ACK),
        ]

    def is_full_rewrite(self, response: str) -> bool:
        return len(response) > len(self._artifact) * self._rewrite_ratio

    def send(self, request: str) -> RefinementReply | None:
        """Run one editing turn; blank requests and overlapping sends are ignored."""

        message = (request or "").strip()
        if not message or self._in_flight:
            return None
        self._transcript.append(ConversationTurn.user(message))
        self._in_flight = True
        try:
            response = self._invoker.invoke(self._system_prompt, [*self.preamble(), *self._transcript])
        except ResearchDeskError as exc:
            logger.warning("Refinement turn failed: %s", exc)
            note = f"Error: {exc}"
            self._transcript.append(ConversationTurn.assistant(note))
            return RefinementReply(content=note, replaced_draft=False, failed=True)
        finally:
            self._in_flight = False

        self._transcript.append(ConversationTurn.assistant(response))
        replaced = self.is_full_rewrite(response)
        if replaced:
            self._artifact.replace(response)
            logger.info("Draft replaced by revision %d", self._artifact.revision)
        return RefinementReply(content=response, replaced_draft=replaced)
