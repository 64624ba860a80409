"""
Engine Controllers Package
Contains the workflow orchestrator and the components it owns.
"""

from .attachments import ContextAttachmentManager
from .content_cache import ContentDraftCache
from .filters import FilterState, apply_filters, available_content_types
from .generation_store import GenerationStore, compute_step_counts
from .recovery_poller import RecoveryPoller
from .stage_loader import LoadStatus, StageDataLoader, StageLoadResult
from .workflow_engine import WorkflowEngine

__all__ = [
    "ContextAttachmentManager",
    "ContentDraftCache",
    "FilterState",
    "apply_filters",
    "available_content_types",
    "GenerationStore",
    "compute_step_counts",
    "RecoveryPoller",
    "LoadStatus",
    "StageDataLoader",
    "StageLoadResult",
    "WorkflowEngine",
]
