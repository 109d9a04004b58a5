from decimal import Decimal
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING, Optional

from catalog_admin.core.db.base import BaseModel

if TYPE_CHECKING:
    from catalog_admin.modules.variations.models import Variation


class Product(BaseModel):
    """
    Catalog product. Read-only from the image workflow's perspective;
    colors and sizes live on its variations.
    """

    __tablename__ = "products"

    sku: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL", name="fk_products_category_id"),
        nullable=True,
    )

    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=15, scale=2), nullable=False, default=0
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Descriptive attributes shown on the storefront
    fabric: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    pattern: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    occasion: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    net_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Relationships
    variations: Mapped[list["Variation"]] = relationship(
        "Variation", back_populates="product", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, sku='{self.sku}', name='{self.name}')>"
