from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from catalog_admin.core.db.base import BaseModel

if TYPE_CHECKING:
    from catalog_admin.modules.images.models import Image
    from catalog_admin.modules.products.models import Product


class Size(BaseModel):
    """Size lookup (S, M, L, ...)."""

    __tablename__ = "sizes"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class Variation(BaseModel):
    """
    A sellable (product, color, size) combination with its stock.
    Several variations share one (product_id, color) pair, one per size.
    """

    __tablename__ = "variations"

    __table_args__ = (
        Index("idx_variations_product_color", "product_id", "color"),
    )

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE", name="fk_variations_product_id"),
        nullable=False,
    )

    color: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="variations")

    images: Mapped[list["Image"]] = relationship(
        "Image", back_populates="variation", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Variation(id={self.id}, product_id={self.product_id}, color='{self.color}', size='{self.size}')>"
