"""Research-to-draft workflow components."""

from .library import (
    STORAGE_KEY,
    FileKeyValueStore,
    KeyValueStore,
    LibraryStore,
    MemoryKeyValueStore,
    merge_sources,
)
from .models import (
    CATEGORIES,
    ConversationTurn,
    Draft,
    Library,
    OutputFormat,
    Role,
    Source,
    SourceType,
)
from .orchestrator import PipelineOrchestrator
from .refinement import REWRITE_RATIO, DraftArtifact, RefinementReply, RefinementSession
from .sources import SourceIngestor, WorkingSet
from .state import (
    Complete,
    Drafting,
    Failed,
    Idle,
    IllegalTransitionError,
    Outlining,
    PipelineRun,
    PipelineStage,
    Researching,
)
from .workspace import ResearchWorkspace

__all__ = [
    "STORAGE_KEY",
    "CATEGORIES",
    "REWRITE_RATIO",
    "FileKeyValueStore",
    "KeyValueStore",
    "LibraryStore",
    "MemoryKeyValueStore",
    "merge_sources",
    "ConversationTurn",
    "Draft",
    "Library",
    "OutputFormat",
    "Role",
    "Source",
    "SourceType",
    "PipelineOrchestrator",
    "DraftArtifact",
    "RefinementReply",
    "RefinementSession",
    "SourceIngestor",
    "WorkingSet",
    "Complete",
    "Drafting",
    "Failed",
    "Idle",
    "IllegalTransitionError",
    "Outlining",
    "PipelineRun",
    "PipelineStage",
    "Researching",
    "ResearchWorkspace",
]
