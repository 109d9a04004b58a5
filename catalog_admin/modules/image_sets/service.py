"""
ImageSetService - one workspace per open image editor.

A workspace bundles the selection state, staging buffer, preview files and
sync engine of one editor. Operations on a workspace are serialized with an
asyncio lock so a commit never interleaves with a reorder or removal.
"""

import asyncio
import logging
import shutil
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from catalog_admin.core.config import Config
from catalog_admin.core.exceptions import NotFoundError
from catalog_admin.core.storage import FileUploadClient
from catalog_admin.core.store import EntityStoreClient

from .engine import CommitResult, ImageSyncEngine
from .selection import CatalogSelectionState, ColorGroup
from .staging import (
    PREVIEW_SCHEME,
    AddFilesResult,
    ImageStagingBuffer,
    PendingFile,
    PreviewRegistry,
    StagingEntry,
)

logger = logging.getLogger(__name__)


def entry_to_dict(entry: StagingEntry) -> dict:
    return {
        "local_id": entry.local_id,
        "url": entry.url,
        "pending": entry.is_pending,
        "filename": entry.pending_file.filename if entry.pending_file else None,
        "is_primary": entry.is_primary,
        "product_id": entry.product_id,
        "variation_id": entry.variation_id,
        "image_id": entry.image_id,
    }


def color_group_to_dict(group: ColorGroup) -> dict:
    return {
        "color": group.color,
        "hex_code": group.hex_code,
        "variation_ids": group.variation_ids,
        "sizes": group.sizes,
    }


class ImageSetWorkspace:
    def __init__(
        self,
        workspace_id: str,
        store: EntityStoreClient,
        uploader: FileUploadClient,
        settings: Config,
    ):
        self.id = workspace_id
        self.preview_root = Path(settings.preview_dir) / workspace_id
        self.previews = PreviewRegistry(self.preview_root)
        self.buffer = ImageStagingBuffer(
            self.previews,
            capacity=settings.max_images_per_color,
            max_file_bytes=settings.max_image_bytes,
        )
        self.selection = CatalogSelectionState(
            store, self.buffer, settings.selection_change_policy
        )
        self.engine = ImageSyncEngine(
            store, uploader, self.selection, self.buffer, settings
        )
        self.lock = asyncio.Lock()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.selection.product_id,
            "color": self.selection.color,
            "variation_ids": self.selection.color_variation_ids,
            "dirty": self.buffer.dirty,
            "entries": [entry_to_dict(entry) for entry in self.buffer],
        }

    async def select_product(self, product_id: int, force: bool = False) -> List[dict]:
        async with self.lock:
            groups = await self.selection.select_product(product_id, force=force)
        return [color_group_to_dict(group) for group in groups]

    async def color_groups(self) -> List[dict]:
        async with self.lock:
            groups = await self.selection.color_groups()
        return [color_group_to_dict(group) for group in groups]

    async def select_color(self, color: str, force: bool = False) -> dict:
        """Select a color and load its stored images into the buffer."""
        async with self.lock:
            await self.engine.select_color(color, force=force)
        return self.to_dict()

    async def add_files(self, files: List[PendingFile]) -> AddFilesResult:
        async with self.lock:
            variation_ids = self.selection.require_color_variation_ids()
            return self.buffer.add_files(
                files,
                product_id=self.selection.product_id,
                variation_id=variation_ids[0] if variation_ids else None,
            )

    async def reorder(self, from_index: int, to_index: int) -> dict:
        async with self.lock:
            self.buffer.reorder(from_index, to_index)
        return self.to_dict()

    async def remove(self, local_id: str) -> dict:
        async with self.lock:
            await self.engine.remove(local_id)
        return self.to_dict()

    async def clear(self) -> dict:
        async with self.lock:
            self.buffer.clear()
        return self.to_dict()

    async def commit(self) -> CommitResult:
        async with self.lock:
            return await self.engine.commit()

    def preview_path(self, token: str) -> Path:
        path = self.previews.path_for(token)
        if path is None:
            raise NotFoundError("Preview", f"{PREVIEW_SCHEME}{token}")
        return path

    def close(self) -> None:
        """Release every preview of this workspace."""
        self.selection.reset()
        self.previews.release_all()
        shutil.rmtree(self.preview_root, ignore_errors=True)


class WorkspaceRegistry:
    """In-memory workspaces keyed by id."""

    def __init__(
        self,
        store: EntityStoreClient,
        uploader: FileUploadClient,
        settings: Config,
    ):
        self.store = store
        self.uploader = uploader
        self.settings = settings
        self._workspaces: Dict[str, ImageSetWorkspace] = {}

    def __len__(self) -> int:
        return len(self._workspaces)

    def open(self, workspace_id: Optional[str] = None) -> ImageSetWorkspace:
        workspace_id = workspace_id or uuid.uuid4().hex
        workspace = ImageSetWorkspace(workspace_id, self.store, self.uploader, self.settings)
        self._workspaces[workspace_id] = workspace
        logger.info(f"Opened image workspace {workspace_id}")
        return workspace

    def get(self, workspace_id: str) -> ImageSetWorkspace:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            raise NotFoundError("Workspace", workspace_id)
        return workspace

    def close(self, workspace_id: str) -> None:
        workspace = self._workspaces.pop(workspace_id, None)
        if workspace is None:
            raise NotFoundError("Workspace", workspace_id)
        workspace.close()
        logger.info(f"Closed image workspace {workspace_id}")

    def close_all(self) -> None:
        for workspace_id in list(self._workspaces):
            self.close(workspace_id)
