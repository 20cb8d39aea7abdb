"""Command line interface for the research desk."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Sequence

from dotenv import load_dotenv

from .config import ResearchDeskConfig
from .errors import ResearchDeskError, ValidationError
from .llm.providers import build_invoker
from .research import (
    CATEGORIES,
    FileKeyValueStore,
    LibraryStore,
    OutputFormat,
    PipelineRun,
    ResearchWorkspace,
)

__all__ = ["main", "build_parser"]

QUIT_COMMANDS = {"/quit", "/exit", ":q"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="researchdesk",
        description="Turn research sources into a publication-ready draft and refine it.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run",
        help="Run research → outline → draft over the given sources.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    _register_shared_arguments(run_parser)
    run_parser.add_argument("--url", action="append", default=[], help="URL to fetch and summarise (repeatable).")
    run_parser.add_argument("--text", action="append", default=[], help="Text or Markdown file to add (repeatable).")
    run_parser.add_argument("--note", action="append", default=[], help="Note text; also saved to the library.")
    run_parser.add_argument(
        "--from-library",
        dest="from_library",
        action="append",
        default=[],
        help="Id of a saved source or note to load (repeatable).",
    )
    run_parser.add_argument("--angle", default="", help="Optional topic or angle to bias every stage.")
    run_parser.add_argument(
        "--format",
        dest="output_format",
        type=OutputFormat,
        default=OutputFormat.BLOG,
        help="Output format: blog, thread, newsletter or outline-only.",
    )
    run_parser.add_argument(
        "--output",
        default=None,
        help="Directory for analysis.md, outline.md, draft.md and run.json (env RESEARCHDESK_OUTPUT_DIR).",
    )
    run_parser.add_argument("--save-draft", dest="save_draft", action="store_true", help="Save the final draft to the library.")
    run_parser.add_argument(
        "--save-sources",
        dest="save_sources",
        action="store_true",
        help="Save the working set to the library.",
    )
    run_parser.add_argument("--refine", action="store_true", help="Start an interactive refinement loop on stdin.")

    library_parser = subparsers.add_parser(
        "library",
        help="Inspect or edit the saved library.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        allow_abbrev=False,
    )
    library_sub = library_parser.add_subparsers(dest="library_command", required=True)

    list_parser = library_sub.add_parser("list", help="List saved items.", allow_abbrev=False)
    _register_shared_arguments(list_parser)
    list_parser.add_argument("--category", choices=CATEGORIES, default=None, help="Only list one category.")

    delete_parser = library_sub.add_parser("delete", help="Delete one saved item.", allow_abbrev=False)
    _register_shared_arguments(delete_parser)
    delete_parser.add_argument("category", choices=CATEGORIES)
    delete_parser.add_argument("item_id")

    note_parser = library_sub.add_parser("note", help="Save a note to the library.", allow_abbrev=False)
    _register_shared_arguments(note_parser)
    note_parser.add_argument("content")
    note_parser.add_argument("--title", default=None)

    return parser


def _register_shared_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--provider", default=None, help="anthropic, openai or offline.")
    parser.add_argument("--model", default=None, help="Model name or identifier to target.")
    parser.add_argument("--base-url", dest="base_url", default=None, help="Optional base URL for compatible APIs.")
    parser.add_argument(
        "--api-key-env",
        dest="api_key_env",
        default=None,
        help="Environment variable containing the provider API key.",
    )
    parser.add_argument("--temperature", type=float, default=None, help="Sampling temperature.")
    parser.add_argument("--max-tokens", dest="max_tokens", type=int, default=None, help="Maximum tokens per reply.")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds.")
    parser.add_argument("--data-dir", dest="data_dir", default=None, help="Directory holding the saved library.")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Logging level (DEBUG, INFO, ...).")


def _build_config(args: argparse.Namespace) -> ResearchDeskConfig:
    config = ResearchDeskConfig()
    if args.data_dir:
        config = config.with_paths(data_path=args.data_dir)
    llm = config.llm
    if args.provider:
        llm.provider = args.provider
    if args.api_key_env:
        llm.api_key_env = args.api_key_env
    if args.log_level:
        config.log_level = args.log_level
    return config


def _build_workspace(args: argparse.Namespace, config: ResearchDeskConfig, **kwargs) -> ResearchWorkspace:
    invoker = build_invoker(
        **config.as_provider_kwargs(
            model=args.model,
            base_url=args.base_url,
            temperature=args.temperature,
            max_tokens=args.max_tokens,
            timeout=args.timeout,
        )
    )
    store = LibraryStore(FileKeyValueStore(config.data_path))
    return ResearchWorkspace(invoker, store, **kwargs)


def _report_transition(run: PipelineRun) -> None:
    print(f"[{run.stage}/4] {run.describe()}", file=sys.stderr)


def _run(args: argparse.Namespace, config: ResearchDeskConfig) -> int:
    output_dir = args.output or config.output_path
    workspace = _build_workspace(args, config, output_dir=output_dir, on_transition=_report_transition)

    for item_id in args.from_library:
        workspace.load_from_library(item_id)
    for path in args.text:
        text_path = Path(path).expanduser()
        if not text_path.exists():
            raise FileNotFoundError(f"Input file not found: {text_path}")
        workspace.add_text(text_path.read_text(encoding="utf-8"), title=text_path.name)
    for note in args.note:
        workspace.add_note(note)
    for url in args.url:
        workspace.add_url(url)

    run = workspace.run_pipeline(angle=args.angle, output_format=args.output_format)
    if run.failed:
        print(f"Error: Pipeline failed at stage {run.state.stage.name.lower()}: {run.error}", file=sys.stderr)
        return 1

    if args.save_sources:
        added = workspace.save_sources()
        print(f"Saved {added} new source(s) to the library.", file=sys.stderr)

    if args.refine:
        _refine_loop(workspace)
    else:
        print(run.draft)

    if args.save_draft:
        draft = workspace.save_draft()
        if draft is not None:
            print(f"Saved draft {draft.id}.", file=sys.stderr)
    return 0


def _refine_loop(workspace: ResearchWorkspace) -> None:
    session = workspace.start_refinement()
    print(session.greeting)
    for line in sys.stdin:
        request = line.strip()
        if request in QUIT_COMMANDS:
            break
        reply = workspace.refine(request)
        if reply is None:
            continue
        print(reply.content)
        if reply.replaced_draft:
            print(f"(draft updated, revision {session.artifact.revision})", file=sys.stderr)
    print(workspace.draft)


def _library_list(args: argparse.Namespace, config: ResearchDeskConfig) -> int:
    store = LibraryStore(FileKeyValueStore(config.data_path))
    library = store.load()
    categories = [args.category] if args.category else list(CATEGORIES)
    for category in categories:
        for item in library.category(category):
            kind = getattr(item, "type", None) or getattr(item, "format", None)
            print(f"{category}\t{item.id}\t{getattr(kind, 'value', kind)}\t{item.title}")
    return 0


def _library_delete(args: argparse.Namespace, config: ResearchDeskConfig) -> int:
    store = LibraryStore(FileKeyValueStore(config.data_path))
    library = store.load()
    if all(item.id != args.item_id for item in library.category(args.category)):
        raise ValueError(f"No {args.category} entry with id '{args.item_id}'.")
    store.delete(library, args.category, args.item_id)
    return 0


def _library_note(args: argparse.Namespace, config: ResearchDeskConfig) -> int:
    # Saving a note never reaches the model.
    config.llm.provider = args.provider or "offline"
    workspace = _build_workspace(args, config)
    note = workspace.add_note(args.content, title=args.title)
    if note is None:
        raise ValidationError("Note text is empty.")
    print(note.id)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    config = _build_config(args)
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "run":
        runner: Callable[[argparse.Namespace, ResearchDeskConfig], int] = _run
    else:
        runner = {
            "list": _library_list,
            "delete": _library_delete,
            "note": _library_note,
        }[args.library_command]

    try:
        return runner(args, config)
    except (ResearchDeskError, FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
