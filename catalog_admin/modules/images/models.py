from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from catalog_admin.core.db.base import BaseModel

if TYPE_CHECKING:
    from catalog_admin.modules.variations.models import Variation


class Image(BaseModel):
    """
    Image row bound to exactly one variation.

    A color's image set is stored as one row per variation id sharing that
    color (same url and is_primary on each). The schema does not enforce that
    the copies agree.
    """

    __tablename__ = "images"

    product_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE", name="fk_images_product_id"),
        nullable=True,
        index=True,
    )

    variation_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("variations.id", ondelete="CASCADE", name="fk_images_variation_id"),
        nullable=True,
        index=True,
    )

    url: Mapped[str] = mapped_column(String(1024), nullable=False)

    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    variation: Mapped[Optional["Variation"]] = relationship(
        "Variation", back_populates="images"
    )

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, variation_id={self.variation_id}, is_primary={self.is_primary})>"
