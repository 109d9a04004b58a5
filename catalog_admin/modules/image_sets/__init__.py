"""Image sets module"""

from .engine import CommitResult, ImageSyncEngine
from .selection import CatalogSelectionState, ColorGroup
from .service import ImageSetWorkspace, WorkspaceRegistry
from .staging import ImageStagingBuffer, PendingFile, PreviewRegistry, StagingEntry
from .router import router

__all__ = [
    "CommitResult",
    "ImageSyncEngine",
    "CatalogSelectionState",
    "ColorGroup",
    "ImageSetWorkspace",
    "WorkspaceRegistry",
    "ImageStagingBuffer",
    "PendingFile",
    "PreviewRegistry",
    "StagingEntry",
    "router",
]
