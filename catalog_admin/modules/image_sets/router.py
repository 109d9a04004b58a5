"""
Image Sets Router - endpoints driving the per-color image editor.
"""

import mimetypes
from typing import List

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import FileResponse

from .schemas import (
    AddFilesResponse,
    ColorGroupResponse,
    CommitResponse,
    ReorderDto,
    SelectColorDto,
    SelectProductDto,
    WorkspaceResponse,
)
from .service import WorkspaceRegistry, entry_to_dict
from .staging import PendingFile

router = APIRouter(prefix="/image-sets", tags=["image-sets"])


def get_registry(request: Request) -> WorkspaceRegistry:
    return request.app.state.workspaces


@router.post("/workspaces", response_model=WorkspaceResponse)
async def open_workspace(registry: WorkspaceRegistry = Depends(get_registry)):
    """Open an editor workspace"""
    workspace = registry.open()
    return workspace.to_dict()


@router.get("/workspaces/{workspace_id}", response_model=WorkspaceResponse)
async def get_workspace(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry)
):
    return registry.get(workspace_id).to_dict()


@router.delete("/workspaces/{workspace_id}")
async def close_workspace(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry)
):
    """Close a workspace, discarding staged images and their previews"""
    registry.close(workspace_id)
    return {"message": "Workspace closed"}


@router.post("/workspaces/{workspace_id}/product", response_model=List[ColorGroupResponse])
async def select_product(
    workspace_id: str,
    dto: SelectProductDto,
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """Select a product; returns its color groups"""
    workspace = registry.get(workspace_id)
    return await workspace.select_product(dto.product_id, force=dto.force)


@router.get("/workspaces/{workspace_id}/colors", response_model=List[ColorGroupResponse])
async def get_color_groups(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry)
):
    return await registry.get(workspace_id).color_groups()


@router.post("/workspaces/{workspace_id}/color", response_model=WorkspaceResponse)
async def select_color(
    workspace_id: str,
    dto: SelectColorDto,
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """Select a color of the product and load its stored images"""
    workspace = registry.get(workspace_id)
    return await workspace.select_color(dto.color, force=dto.force)


@router.get("/workspaces/{workspace_id}/images", response_model=WorkspaceResponse)
async def get_images(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry)
):
    return registry.get(workspace_id).to_dict()


@router.post("/workspaces/{workspace_id}/images", response_model=AddFilesResponse)
async def add_images(
    workspace_id: str,
    files: List[UploadFile] = File(...),
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """
    Stage image files. Non-images and files over the size ceiling are
    rejected one by one; files beyond the image limit are reported as truncated.
    """
    workspace = registry.get(workspace_id)

    pending = []
    for upload in files:
        filename = upload.filename or "image"
        content_type = upload.content_type or mimetypes.guess_type(filename)[0] or ""
        pending.append(
            PendingFile(filename=filename, content_type=content_type, content=await upload.read())
        )

    result = await workspace.add_files(pending)
    return {
        "accepted": [entry_to_dict(entry) for entry in result.accepted],
        "rejected": [
            {"filename": filename, "reason": reason} for filename, reason in result.rejected
        ],
        "truncated": result.truncated,
    }


@router.post("/workspaces/{workspace_id}/images/reorder", response_model=WorkspaceResponse)
async def reorder_images(
    workspace_id: str,
    dto: ReorderDto,
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """Move one image; the first image is always the primary one"""
    workspace = registry.get(workspace_id)
    return await workspace.reorder(dto.from_index, dto.to_index)


@router.delete("/workspaces/{workspace_id}/images/{local_id}", response_model=WorkspaceResponse)
async def remove_image(
    workspace_id: str,
    local_id: str,
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """Remove an image. Stored images are deleted immediately."""
    workspace = registry.get(workspace_id)
    return await workspace.remove(local_id)


@router.delete("/workspaces/{workspace_id}/images", response_model=WorkspaceResponse)
async def clear_images(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry)
):
    """Discard the working set (stored images are not touched)"""
    return await registry.get(workspace_id).clear()


@router.get("/workspaces/{workspace_id}/previews/{token}")
async def get_preview(
    workspace_id: str,
    token: str,
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """Serve the local preview of a not-yet-uploaded image"""
    path = registry.get(workspace_id).preview_path(token)
    return FileResponse(path)


@router.post("/workspaces/{workspace_id}/commit", response_model=CommitResponse)
async def commit_images(
    workspace_id: str, registry: WorkspaceRegistry = Depends(get_registry)
):
    """Upload pending images and save the working set"""
    result = await registry.get(workspace_id).commit()
    return {
        "uploaded": result.uploaded,
        "inserted_rows": result.inserted_rows,
        "updated": result.updated,
        "entries": [entry_to_dict(entry) for entry in result.entries],
    }
