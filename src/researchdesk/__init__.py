"""researchdesk: turn raw research material into a publication-ready draft."""

from .config import LLMConfig, ResearchDeskConfig
from .errors import (
    FetchError,
    PersistenceError,
    ResearchDeskError,
    TransportError,
    ValidationError,
)
from .llm import AgentInvoker, OfflineChatModel, build_invoker
from .paths import DeskPathConfig, resolve_data_path, resolve_output_path
from .research import (
    Draft,
    FileKeyValueStore,
    Library,
    LibraryStore,
    MemoryKeyValueStore,
    OutputFormat,
    PipelineOrchestrator,
    PipelineRun,
    RefinementSession,
    ResearchWorkspace,
    Source,
    SourceIngestor,
)

__all__ = [
    "LLMConfig",
    "ResearchDeskConfig",
    "DeskPathConfig",
    "resolve_data_path",
    "resolve_output_path",
    "ResearchDeskError",
    "TransportError",
    "FetchError",
    "ValidationError",
    "PersistenceError",
    "AgentInvoker",
    "OfflineChatModel",
    "build_invoker",
    "Draft",
    "FileKeyValueStore",
    "Library",
    "LibraryStore",
    "MemoryKeyValueStore",
    "OutputFormat",
    "PipelineOrchestrator",
    "PipelineRun",
    "RefinementSession",
    "ResearchWorkspace",
    "Source",
    "SourceIngestor",
]
