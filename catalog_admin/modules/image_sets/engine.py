"""
Image sync engine: reconciles the staging buffer with the images table.

Images belong to a color, not a size. One logical image is stored as one
row per variation id sharing the selected color ("fan-out"), with the same
url and is_primary on every copy.

Commit protocol:
    1. partition the buffer into pending uploads and persisted entries
    2. upload each pending file (groups of ``upload_concurrency`` at a time)
    3. insert one row per color variation id for every uploaded file
    4. update is_primary of persisted entries by image id
    5. re-fetch the color's images into the buffer

Each upload + insert pair is an independent unit: a failing unit does not
undo the others and nothing is retried automatically. Uploaded files whose
insert failed stay on the file host.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from catalog_admin.core.config import Config
from catalog_admin.core.exceptions import RemoteError, UploadError
from catalog_admin.core.storage import FileUploadClient, generate_upload_filename
from catalog_admin.core.store import EntityStoreClient

from .selection import CatalogSelectionState
from .staging import ImageStagingBuffer, StagingEntry, new_local_id

logger = logging.getLogger(__name__)

IMAGES_TABLE = "images"


@dataclass
class CommitResult:
    uploaded: int = 0
    inserted_rows: int = 0
    updated: int = 0
    entries: List[StagingEntry] = field(default_factory=list)


def find_fan_out_violations(
    rows: List[Dict[str, Any]], variation_ids: List[int]
) -> List[str]:
    """
    Check that every url of a color's image set is stored once per color
    variation id with the same is_primary flag everywhere, and that at most
    one url is primary.

    Returns:
        Human readable description of each violation (empty if consistent)
    """
    expected = set(variation_ids)
    by_url: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for row in rows:
        by_url.setdefault(row["url"], []).append(row)

    violations: List[str] = []
    primary_urls = []
    for url, url_rows in by_url.items():
        present = {row["variation_id"] for row in url_rows}
        missing = sorted(expected - present)
        if missing:
            violations.append(f"{url} has no row for variation(s) {missing}")
        flags = {bool(row["is_primary"]) for row in url_rows}
        if len(flags) > 1:
            violations.append(f"{url} is primary on some variations only")
        if True in flags:
            primary_urls.append(url)

    if len(primary_urls) > 1:
        violations.append(f"{len(primary_urls)} images are flagged primary")
    return violations


def collapse_image_rows(rows: List[Dict[str, Any]]) -> List[StagingEntry]:
    """
    Build one staging entry per distinct url, in row order. The first row of
    a url becomes the entry's image_id; every row id is kept as a sibling.
    """
    entries: "OrderedDict[str, StagingEntry]" = OrderedDict()
    for row in rows:
        entry = entries.get(row["url"])
        if entry is None:
            entries[row["url"]] = StagingEntry(
                local_id=new_local_id(),
                url=row["url"],
                is_primary=bool(row["is_primary"]),
                product_id=row.get("product_id"),
                variation_id=row.get("variation_id"),
                image_id=row["id"],
                sibling_image_ids=[row["id"]],
            )
        else:
            entry.sibling_image_ids.append(row["id"])
    return list(entries.values())


class ImageSyncEngine:
    def __init__(
        self,
        store: EntityStoreClient,
        uploader: FileUploadClient,
        selection: CatalogSelectionState,
        buffer: ImageStagingBuffer,
        settings: Config,
    ):
        self.store = store
        self.uploader = uploader
        self.selection = selection
        self.buffer = buffer
        self.upload_concurrency = max(settings.upload_concurrency, 1)
        self.fan_out_existing_updates = settings.fan_out_existing_updates

    async def _fetch(self, variation_ids: List[int]) -> List[Dict[str, Any]]:
        return await self.store.select(
            IMAGES_TABLE, {"variation_id": variation_ids}, ["-is_primary", "id"]
        )

    def _apply(self, rows: List[Dict[str, Any]], variation_ids: List[int]) -> List[StagingEntry]:
        for violation in find_fan_out_violations(rows, variation_ids):
            logger.warning(
                f"Inconsistent images for product {self.selection.product_id} "
                f"color {self.selection.color!r}: {violation}"
            )

        self.buffer.replace(collapse_image_rows(rows))
        return self.buffer.entries

    async def load(self) -> List[StagingEntry]:
        """
        Fetch the selected color's images and make them the working set.

        Raises:
            SelectionError: If no product/color is selected
            RemoteError: If the query fails (buffer left unchanged)
        """
        variation_ids = self.selection.require_color_variation_ids()
        rows = await self._fetch(variation_ids)
        return self._apply(rows, variation_ids)

    async def select_color(self, color: str, force: bool = False) -> List[StagingEntry]:
        """
        Switch to another color of the product and load its images. The
        images are fetched before anything local changes, so a failing query
        keeps the previous color and working set.
        """
        variation_ids = self.selection.check_color(color, force=force)
        rows = await self._fetch(variation_ids)
        self.selection.select_color(color, force=True)
        return self._apply(rows, variation_ids)

    async def remove(self, local_id: str) -> StagingEntry:
        """
        Remove a staged image. Persisted images are deleted remotely first,
        every row of the url (one per color variation) by image id; if that
        fails the buffer is left untouched.
        """
        entry = self.buffer.get(local_id)
        if not entry.is_pending and entry.image_id is not None:
            for image_id in entry.sibling_image_ids or [entry.image_id]:
                await self.store.delete(IMAGES_TABLE, image_id)
        return self.buffer.remove(local_id)

    async def _upload_and_insert(
        self,
        entry: StagingEntry,
        is_primary: bool,
        product_id: int,
        variation_ids: List[int],
    ) -> Tuple[str, List[Dict[str, Any]]]:
        pending = entry.pending_file
        url = await self.uploader.upload(
            pending.content,
            generate_upload_filename(pending.filename),
            pending.content_type,
        )
        rows = await self.store.insert(
            IMAGES_TABLE,
            [
                {
                    "url": url,
                    "is_primary": is_primary,
                    "product_id": product_id,
                    "variation_id": variation_id,
                }
                for variation_id in variation_ids
            ],
        )
        return url, rows

    @staticmethod
    def _aggregate_error(
        failures: List[Tuple[StagingEntry, Exception]], total: int
    ) -> Exception:
        unexpected = [
            exc for _, exc in failures if not isinstance(exc, (UploadError, RemoteError))
        ]
        if unexpected:
            return unexpected[0]
        if any(isinstance(exc, UploadError) for _, exc in failures):
            return UploadError(f"{len(failures)} of {total} image upload(s) failed")
        first = failures[0][1]
        message = getattr(first, "message", str(first))
        return RemoteError(f"Saving {len(failures)} of {total} uploaded image(s) failed: {message}")

    async def commit(self) -> CommitResult:
        """
        Upload pending images, write their rows for every variation of the
        color, sync the primary flag of persisted images and reload.

        Raises:
            SelectionError: If no product/color is selected
            UploadError: If any upload failed (units that succeeded stay saved)
            RemoteError: If a row insert or update failed
        """
        variation_ids = self.selection.require_color_variation_ids()
        product_id = self.selection.product_id

        entries = self.buffer.entries
        positions = {entry.local_id: index for index, entry in enumerate(entries)}
        to_upload = [entry for entry in entries if entry.is_pending]
        existing = [
            entry for entry in entries if not entry.is_pending and entry.image_id is not None
        ]

        result = CommitResult()
        failures: List[Tuple[StagingEntry, Exception]] = []

        for start in range(0, len(to_upload), self.upload_concurrency):
            group = to_upload[start : start + self.upload_concurrency]
            outcomes = await asyncio.gather(
                *(
                    self._upload_and_insert(
                        entry, positions[entry.local_id] == 0, product_id, variation_ids
                    )
                    for entry in group
                ),
                return_exceptions=True,
            )
            for entry, outcome in zip(group, outcomes):
                if isinstance(outcome, Exception):
                    logger.error(
                        f"Image {entry.pending_file.filename} was not saved: {outcome}"
                    )
                    failures.append((entry, outcome))
                    continue
                if isinstance(outcome, BaseException):
                    raise outcome
                url, rows = outcome
                self.buffer.mark_persisted(entry.local_id, url, [row["id"] for row in rows])
                result.uploaded += 1
                result.inserted_rows += len(rows)

            if failures:
                raise self._aggregate_error(failures, len(to_upload))

        for entry in existing:
            is_primary = positions[entry.local_id] == 0
            ids = (
                entry.sibling_image_ids
                if self.fan_out_existing_updates
                else [entry.image_id]
            )
            for image_id in ids:
                await self.store.update(IMAGES_TABLE, image_id, {"is_primary": is_primary})
                result.updated += 1

        result.entries = await self.load()
        logger.info(
            f"Committed images for product {product_id} color {self.selection.color!r}: "
            f"{result.uploaded} uploaded, {result.inserted_rows} rows inserted, "
            f"{result.updated} rows updated"
        )
        return result
