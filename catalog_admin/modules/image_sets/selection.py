"""
Catalog selection state: the product being edited, its variations, and the
chosen color.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from catalog_admin.core.exceptions import (
    NotFoundError,
    SelectionError,
    UnsavedChangesError,
    ValidationError,
)
from catalog_admin.core.store import EntityStoreClient

from .staging import ImageStagingBuffer

logger = logging.getLogger(__name__)

DISCARD = "discard"
CONFIRM = "confirm"


@dataclass
class ColorGroup:
    color: str
    variation_ids: List[int] = field(default_factory=list)
    sizes: List[str] = field(default_factory=list)
    hex_code: Optional[str] = None


class CatalogSelectionState:
    """
    Holds the selected product and color.

    Changing either discards the staging buffer. Under the ``confirm`` policy a
    change with unsaved staged images is refused unless forced.
    """

    def __init__(
        self,
        store: EntityStoreClient,
        buffer: ImageStagingBuffer,
        policy: str = DISCARD,
    ):
        if policy not in (DISCARD, CONFIRM):
            raise ValueError(f"Unknown selection change policy: {policy}")
        self.store = store
        self.buffer = buffer
        self.policy = policy
        self.product: Optional[Dict[str, Any]] = None
        self.variations: List[Dict[str, Any]] = []
        self.color: Optional[str] = None

    @property
    def product_id(self) -> Optional[int]:
        return self.product["id"] if self.product else None

    @property
    def colors(self) -> List[str]:
        """Distinct colors of the product's variations, in first-seen order."""
        seen: List[str] = []
        for variation in self.variations:
            color = variation.get("color")
            if color is not None and color not in seen:
                seen.append(color)
        return seen

    @property
    def color_variation_ids(self) -> List[int]:
        if self.color is None:
            return []
        return [v["id"] for v in self.variations if v.get("color") == self.color]

    def require_color_variation_ids(self) -> List[int]:
        if self.product is None or self.color is None:
            raise SelectionError()
        return self.color_variation_ids

    def _guard_unsaved(self, force: bool) -> None:
        if self.policy == CONFIRM and self.buffer.dirty and not force:
            raise UnsavedChangesError(
                "There are unsaved image changes. Commit them or switch with force=true"
            )

    def _discard_staged(self) -> None:
        if self.buffer.dirty:
            pending = sum(1 for entry in self.buffer if entry.is_pending)
            logger.info(
                f"Discarding unsaved image changes ({pending} pending upload(s)) "
                f"for product {self.product_id} color {self.color!r}"
            )
        self.buffer.clear()

    async def select_product(self, product_id: int, force: bool = False) -> List[ColorGroup]:
        """
        Fetch the product and its variations. Resets the color selection and
        the staging buffer.

        Raises:
            NotFoundError: If the product does not exist
            UnsavedChangesError: Under the confirm policy with unsaved changes
        """
        self._guard_unsaved(force)

        products = await self.store.select("products", {"id": product_id})
        if not products:
            raise NotFoundError("Product", product_id)
        variations = await self.store.select(
            "variations", {"product_id": product_id}, ["id"]
        )

        self._discard_staged()
        self.product = products[0]
        self.variations = variations
        self.color = None
        return await self.color_groups()

    async def color_groups(self) -> List[ColorGroup]:
        """Group the variations by color, with the palette swatch when known."""
        if not self.variations:
            return []

        palette = await self.store.select("colors")
        hex_by_name = {row["name"].strip().lower(): row["hex_code"] for row in palette}

        groups: Dict[str, ColorGroup] = {}
        for variation in self.variations:
            color = variation.get("color")
            if color is None:
                continue
            group = groups.get(color)
            if group is None:
                group = groups[color] = ColorGroup(
                    color=color, hex_code=hex_by_name.get(color.strip().lower())
                )
            group.variation_ids.append(variation["id"])
            if variation.get("size"):
                group.sizes.append(variation["size"])
        return list(groups.values())

    def check_color(self, color: str, force: bool = False) -> List[int]:
        """
        Validate a color switch without applying it.

        Returns:
            The color-variation-id set the color would select
        """
        if self.product is None:
            raise SelectionError("Select a product first")
        if color not in self.colors:
            raise ValidationError(
                f"Color '{color}' has no variations for product {self.product_id}"
            )
        self._guard_unsaved(force)
        return [v["id"] for v in self.variations if v.get("color") == color]

    def select_color(self, color: str, force: bool = False) -> List[int]:
        """
        Choose a color of the selected product.

        Returns:
            The color-variation-id set
        """
        variation_ids = self.check_color(color, force=force)
        self._discard_staged()
        self.color = color
        return variation_ids

    def reset(self) -> None:
        self.buffer.clear()
        self.product = None
        self.variations = []
        self.color = None
