"""
Image set DTOs (Data Transfer Objects)
"""

from pydantic import BaseModel, Field
from typing import Optional, List


class SelectProductDto(BaseModel):
    """DTO for choosing the product whose images are edited"""

    product_id: int = Field(..., ge=1)
    force: bool = Field(False, description="Discard unsaved staged images")


class SelectColorDto(BaseModel):
    """DTO for choosing the color group whose images are edited"""

    color: str = Field(..., min_length=1, max_length=100)
    force: bool = Field(False, description="Discard unsaved staged images")


class ReorderDto(BaseModel):
    """DTO for moving one staged image to a new position"""

    from_index: int = Field(..., ge=0)
    to_index: int = Field(..., ge=0)


class ColorGroupResponse(BaseModel):
    """Variations of one product sharing a color"""

    color: str
    hex_code: Optional[str] = None
    variation_ids: List[int]
    sizes: List[str]


class StagingEntryResponse(BaseModel):
    """One image of the working set"""

    local_id: str
    url: str
    pending: bool
    filename: Optional[str] = None
    is_primary: bool
    product_id: Optional[int] = None
    variation_id: Optional[int] = None
    image_id: Optional[int] = None


class RejectedFileResponse(BaseModel):
    filename: str
    reason: str


class AddFilesResponse(BaseModel):
    """Result of staging a batch of files"""

    accepted: List[StagingEntryResponse]
    rejected: List[RejectedFileResponse]
    truncated: List[str]


class CommitResponse(BaseModel):
    """Outcome of a successful commit, with the refreshed working set"""

    uploaded: int
    inserted_rows: int
    updated: int
    entries: List[StagingEntryResponse]


class WorkspaceResponse(BaseModel):
    """Selection and staging state of one editor"""

    id: str
    product_id: Optional[int] = None
    color: Optional[str] = None
    variation_ids: List[int]
    dirty: bool
    entries: List[StagingEntryResponse]
