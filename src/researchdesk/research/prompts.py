"""System prompts for the desk agents and the builders for their user messages.

The prompts are configuration: each one fixes the analytical task of a single
agent. The builders assemble the context each stage receives from the
previous stage's output.
"""

from __future__ import annotations

from typing import Iterable

from .models import OutputFormat, Source

__all__ = [
    "FETCH_AGENT",
    "RESEARCH_AGENT",
    "OUTLINE_AGENT",
    "WRITING_AGENT",
    "EDITOR_AGENT",
    "EDITOR_GREETING",
    "DRAFT_PREAMBLE_ACK",
    "FETCH_MAX_TOKENS",
    "build_corpus",
    "angle_note",
    "format_note",
    "fetch_message",
    "research_message",
    "outline_message",
    "writing_message",
    "draft_preamble",
]

FETCH_MAX_TOKENS = 3000

FETCH_AGENT = (
    "You extract and summarize web content. Given a URL, use web search to find the content and "
    "provide: 1) The article title, 2) A comprehensive summary preserving key facts, data points, "
    "arguments and quotes, 3) Key takeaways. Be thorough; this will be used as research material."
)

RESEARCH_AGENT = """You are a Research Analyst agent. Analyze the raw research material you are given (articles, notes, excerpts) and extract:
1. KEY INSIGHTS: the most important ideas, claims, and findings
2. PATTERNS: recurring themes, contradictions, or emerging trends across sources
3. DATA POINTS: specific stats, quotes, or evidence worth citing
4. CONTRARIAN ANGLES: surprising takes or underexplored perspectives
5. KNOWLEDGE GAPS: what is missing or which questions remain unanswered

Be thorough but concise. Structure the analysis with clear headers. Focus on signal over noise.
If a topic or angle is specified, bias the analysis toward it."""

OUTLINE_AGENT = """You are a Writing Strategist agent. Given a research analysis, produce a detailed content outline with:
1. TITLE OPTIONS: 3 compelling title candidates
2. HOOK: a strong opening paragraph or lede concept
3. STRUCTURE: ordered sections, each with
   - Section header
   - Key argument for the section
   - Supporting evidence to use (from the research)
   - Transition to the next section
4. CONCLUSION: the main takeaway and call to action
5. METADATA: suggested word count, tone, target audience

Make the outline actionable; a writer should be able to draft from it alone."""

WRITING_AGENT = """You are a Senior Writer agent. Given a research analysis and an outline, produce a publication-ready draft.

Guidelines:
- Write with clarity and conviction. No filler.
- Every paragraph earns its place with high insight density.
- Use concrete examples and data from the research.
- Voice: thoughtful practitioner, not generic content creator.
- Open with a hook.
- Clean transitions between sections.
- End on something that resonates, not a bland summary.

Produce the FULL draft. Do not abbreviate or skip sections."""

EDITOR_AGENT = """You are an editorial assistant helping refine a draft. The user will ask for changes: tone shifts, structural edits, expanded sections, cut fluff, added examples, and so on.

Rules:
- When asked to edit, output the FULL revised version, not only the changed parts.
- Keep the original voice unless asked to change it.
- Be opinionated and suggest improvements proactively.
- If the request is vague, ask a clarifying question."""

EDITOR_GREETING = (
    "I have your draft ready. What would you like to change? I can adjust tone, restructure "
    "sections, expand arguments, cut fluff, add examples, or rewrite specific parts."
)

DRAFT_PREAMBLE_ACK = "I have the draft. What changes would you like?"


def build_corpus(sources: Iterable[Source]) -> str:
    """Render every source under a numbered banner, separated by blank lines."""

    return "\n\n".join(
        f"--- SOURCE {index}: {source.title} ---\n{source.content}"
        for index, source in enumerate(sources, start=1)
    )


def angle_note(angle: str | None) -> str:
    cleaned = (angle or "").strip()
    return f"\n\nTOPIC/ANGLE: {cleaned}" if cleaned else ""


def format_note(output_format: OutputFormat) -> str:
    return f"Output format requested: {OutputFormat(output_format).value}"


def fetch_message(url: str) -> str:
    return f"Please fetch and summarize the content at: {url}"


def research_message(sources: Iterable[Source], angle: str | None = None) -> str:
    return build_corpus(sources) + angle_note(angle)


def outline_message(analysis: str, output_format: OutputFormat, angle: str | None = None) -> str:
    return f"RESEARCH ANALYSIS:\n{analysis}\n\n{format_note(output_format)}{angle_note(angle)}"


def writing_message(
    analysis: str,
    outline: str,
    output_format: OutputFormat,
    angle: str | None = None,
) -> str:
    return (
        f"RESEARCH ANALYSIS:\n{analysis}\n\nOUTLINE:\n{outline}\n\n"
        f"{format_note(output_format)}{angle_note(angle)}"
    )


def draft_preamble(draft: str) -> str:
    return f"Here is the current draft:\n\n{draft}\n\n---\nThe user will now ask for edits."
