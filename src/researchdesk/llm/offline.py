"""Deterministic chat model for offline development and demos.

The model never leaves the process. It recognises which desk agent is talking
to it from the system prompt and answers with Markdown shaped like that
agent's real output, so the whole pipeline and the refinement loop can be
exercised without credentials.
"""

from __future__ import annotations

import re
import textwrap
from typing import Any, Optional, Sequence

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.outputs import ChatGeneration, ChatResult

__all__ = ["OfflineChatModel"]

_EDIT_VERBS = (
    "rewrite", "revise", "shorten", "expand", "cut", "add", "change", "make",
    "tone", "restructure", "tighten", "edit", "remove", "replace",
)
_DRAFT_PATTERN = re.compile(r"Here is the current draft:\n\n(?P<draft>.*?)\n\n---\n", re.DOTALL)
_SOURCE_PATTERN = re.compile(r"^--- SOURCE (\d+): (.+?) ---$", re.MULTILINE)
_ANGLE_PATTERN = re.compile(r"TOPIC/ANGLE: (.+)$", re.MULTILINE)
_FORMAT_PATTERN = re.compile(r"Output format requested: (\S+)")


def _excerpt(text: str, limit: int = 240) -> str:
    cleaned = " ".join(text.strip().split())
    return cleaned[:limit] + ("…" if len(cleaned) > limit else "")


class OfflineChatModel(BaseChatModel):
    """Stage-aware canned responses keyed on the agent system prompt."""

    model: str = "offline-desk"

    @property
    def _llm_type(self) -> str:
        return "researchdesk-offline"

    @property
    def _identifying_params(self) -> dict[str, Any]:
        return {"model": self.model}

    def bind_tools(self, tools: Sequence[Any], **kwargs: Any) -> "OfflineChatModel":
        return self

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: Optional[list[str]] = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        system = next((str(m.content) for m in messages if isinstance(m, SystemMessage)), "")
        humans = [str(m.content) for m in messages if isinstance(m, HumanMessage)]
        last = humans[-1] if humans else ""

        if "web content" in system:
            content = self._fetch(last)
        elif "Research Analyst" in system:
            content = self._research(last)
        elif "Writing Strategist" in system:
            content = self._outline(last)
        elif "Senior Writer" in system:
            content = self._draft(last)
        elif "editorial assistant" in system:
            content = self._refine(humans[0] if humans else "", last)
        else:
            content = f"(offline) {_excerpt(last)}"
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=content))])

    # Canned stage output ---------------------------------------------------------

    def _fetch(self, prompt: str) -> str:
        url = prompt.rsplit(" ", 1)[-1].strip()
        return textwrap.dedent(
            f"""
            1) Title: Offline capture of {url}
            2) Summary: No network access is available offline, so this stands in for the
               article body. Treat it as a placeholder source.
            3) Key takeaways:
               - The page at {url} was requested.
               - Replace this source with pasted text for a meaningful run.
            """
        ).strip()

    def _research(self, prompt: str) -> str:
        titles = [title for _, title in _SOURCE_PATTERN.findall(prompt)]
        angle = _ANGLE_PATTERN.search(prompt)
        listed = "\n".join(f"- {title}" for title in titles) or "- (no labelled sources)"
        focus = f"\n\nAngle applied: {angle.group(1).strip()}" if angle else ""
        return textwrap.dedent(
            """
            ## Key Insights
            {listed}

            ## Patterns
            - Sources converge on a shared problem statement.

            ## Data Points
            - "{excerpt}"

            ## Contrarian Angles
            - The consensus may overstate how new the problem is.

            ## Knowledge Gaps
            - Little first-hand evidence; most claims are second-hand.
            """
        ).strip().format(listed=listed, excerpt=_excerpt(prompt, 160)) + focus

    def _outline(self, prompt: str) -> str:
        fmt = _FORMAT_PATTERN.search(prompt)
        return textwrap.dedent(
            f"""
            ## Title Options
            1. What the Sources Agree On
            2. The Quiet Consensus
            3. Reading Between the Sources

            ## Hook
            Open on the single most surprising data point.

            ## Structure
            1. Context – why this matters now.
            2. Evidence – the strongest shared findings.
            3. Tension – where the sources disagree.

            ## Conclusion
            One takeaway and a concrete next step for the reader.

            ## Metadata
            - Format: {fmt.group(1) if fmt else "blog"}
            - Word count: 900
            - Tone: thoughtful practitioner
            """
        ).strip()

    def _draft(self, prompt: str) -> str:
        headings = re.findall(r"^\d+\. (.+?) –", prompt, re.MULTILINE) or ["Context", "Evidence", "Tension"]
        sections = [
            f"## {heading}\n\n"
            f"{heading} anchors this part of the argument. The research points the same way, "
            "and the paragraph earns its place by saying so plainly."
            for heading in headings
        ]
        return "# What the Sources Agree On\n\n" + "\n\n".join(sections)

    def _refine(self, preamble: str, request: str) -> str:
        match = _DRAFT_PATTERN.search(preamble)
        draft = match.group("draft") if match else ""
        lowered = request.lower()
        if draft and any(verb in lowered for verb in _EDIT_VERBS):
            return f"{draft.rstrip()}\n\n_Revision note: {request.strip()}_"
        return "Could you say which section you want changed, and how?"
