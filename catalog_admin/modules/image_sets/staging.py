"""
Image staging buffer: the ordered, locally held working set of images for the
current product + color, before it is committed.

Invariants kept by every mutation:
- at most ``capacity`` entries
- exactly the entry at index 0 is primary (when non-empty)
- every preview acquired for a pending file is released when its entry
  leaves the buffer
"""

import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from catalog_admin.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PREVIEW_SCHEME = "preview://"


@dataclass
class PendingFile:
    """A local file selected for upload"""

    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class PreviewHandle:
    token: str
    path: Path

    @property
    def url(self) -> str:
        return f"{PREVIEW_SCHEME}{self.token}"


class PreviewRegistry:
    """
    Local preview files for not-yet-uploaded images.

    Each acquire writes one temp file; release deletes it. ``open_count`` is the
    number of previews currently held.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self._handles: Dict[str, PreviewHandle] = {}

    @property
    def open_count(self) -> int:
        return len(self._handles)

    def acquire(self, content: bytes, filename: str) -> PreviewHandle:
        self.root.mkdir(parents=True, exist_ok=True)
        token = uuid.uuid4().hex
        ext = os.path.splitext(filename)[1].lower()
        path = self.root / f"{token}{ext}"
        path.write_bytes(content)

        handle = PreviewHandle(token=token, path=path)
        self._handles[token] = handle
        return handle

    def release(self, handle: Optional[PreviewHandle]) -> None:
        if handle is None or self._handles.pop(handle.token, None) is None:
            return
        handle.path.unlink(missing_ok=True)

    def path_for(self, token: str) -> Optional[Path]:
        handle = self._handles.get(token)
        return handle.path if handle else None

    def release_all(self) -> None:
        for handle in list(self._handles.values()):
            self.release(handle)


@dataclass
class StagingEntry:
    local_id: str
    url: str
    is_primary: bool = False
    product_id: Optional[int] = None
    variation_id: Optional[int] = None
    pending_file: Optional[PendingFile] = None
    # Row this entry was built from, and every row sharing its url
    image_id: Optional[int] = None
    sibling_image_ids: List[int] = field(default_factory=list)
    preview: Optional[PreviewHandle] = None

    @property
    def is_pending(self) -> bool:
        return self.pending_file is not None


@dataclass
class AddFilesResult:
    accepted: List[StagingEntry] = field(default_factory=list)
    # (filename, reason)
    rejected: List[Tuple[str, str]] = field(default_factory=list)
    truncated: List[str] = field(default_factory=list)


def new_local_id() -> str:
    return uuid.uuid4().hex[:12]


class ImageStagingBuffer:
    def __init__(
        self,
        previews: PreviewRegistry,
        capacity: int = 9,
        max_file_bytes: int = 5 * 1024 * 1024,
    ):
        self.previews = previews
        self.capacity = capacity
        self.max_file_bytes = max_file_bytes
        self.dirty = False
        self._entries: List[StagingEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[StagingEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> List[StagingEntry]:
        return list(self._entries)

    @property
    def remaining_capacity(self) -> int:
        return max(self.capacity - len(self._entries), 0)

    def get(self, local_id: str) -> StagingEntry:
        for entry in self._entries:
            if entry.local_id == local_id:
                return entry
        raise NotFoundError("Staged image", local_id)

    def _rederive_primary(self) -> None:
        for index, entry in enumerate(self._entries):
            entry.is_primary = index == 0

    def _validate_file(self, file: PendingFile) -> Optional[str]:
        if not (file.content_type or "").lower().startswith("image/"):
            return f"{file.filename} is not an image"
        if file.size > self.max_file_bytes:
            limit_mb = self.max_file_bytes / (1024 * 1024)
            return f"{file.filename} is larger than {limit_mb:g} MB"
        return None

    def add_files(
        self,
        files: Iterable[PendingFile],
        product_id: Optional[int] = None,
        variation_id: Optional[int] = None,
    ) -> AddFilesResult:
        """
        Stage local files.

        Files that are not images or exceed the size ceiling are rejected one by
        one; the remaining files are staged up to the remaining capacity and the
        overflow is reported as truncated.
        """
        result = AddFilesResult()
        valid: List[PendingFile] = []

        for file in files:
            reason = self._validate_file(file)
            if reason:
                result.rejected.append((file.filename, reason))
            else:
                valid.append(file)

        room = self.remaining_capacity
        for file in valid[room:]:
            result.truncated.append(file.filename)
        if result.truncated:
            logger.warning(
                f"Image limit of {self.capacity} reached, skipped {len(result.truncated)} file(s)"
            )

        for file in valid[:room]:
            preview = self.previews.acquire(file.content, file.filename)
            entry = StagingEntry(
                local_id=new_local_id(),
                url=preview.url,
                product_id=product_id,
                variation_id=variation_id,
                pending_file=file,
                preview=preview,
            )
            self._entries.append(entry)
            result.accepted.append(entry)

        if result.accepted:
            self._rederive_primary()
            self.dirty = True
        return result

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move one entry; whatever lands at index 0 becomes primary."""
        size = len(self._entries)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise ValidationError(
                f"Cannot move image {from_index} to {to_index}: {size} image(s) staged"
            )
        entry = self._entries.pop(from_index)
        self._entries.insert(to_index, entry)
        self._rederive_primary()
        self.dirty = True

    def remove(self, local_id: str) -> StagingEntry:
        """Drop an entry locally and release its preview."""
        entry = self.get(local_id)
        self._entries.remove(entry)
        self.previews.release(entry.preview)
        entry.preview = None
        self._rederive_primary()
        self.dirty = True
        return entry

    def mark_persisted(
        self, local_id: str, url: str, image_ids: List[int]
    ) -> Optional[StagingEntry]:
        """
        Turn a pending entry into a persisted one after its upload and insert
        succeeded. Returns None if the entry left the buffer meanwhile.
        """
        entry = next((e for e in self._entries if e.local_id == local_id), None)
        if entry is None:
            return None
        self.previews.release(entry.preview)
        entry.preview = None
        entry.pending_file = None
        entry.url = url
        entry.image_id = image_ids[0] if image_ids else None
        entry.sibling_image_ids = list(image_ids)
        return entry

    def replace(self, entries: Iterable[StagingEntry]) -> None:
        """Swap in a new working set (e.g. freshly fetched rows)."""
        self._release_entries()
        entries = list(entries)
        if len(entries) > self.capacity:
            logger.warning(
                f"{len(entries)} images stored, only the first {self.capacity} are editable"
            )
        self._entries = entries[: self.capacity]
        self._rederive_primary()
        self.dirty = False

    def clear(self) -> None:
        self._release_entries()
        self._entries = []
        self.dirty = False

    def _release_entries(self) -> None:
        for entry in self._entries:
            self.previews.release(entry.preview)
            entry.preview = None
