from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from catalog_admin.core.db.base import BaseModel


class Collection(BaseModel):
    """Curated storefront collection."""

    __tablename__ = "collections"

    collection_name: Mapped[str] = mapped_column(String(255), nullable=False)


class CollectionProduct(BaseModel):
    """Junction table between Collection and Product."""

    __tablename__ = "collection_products"

    __table_args__ = (
        Index(
            "idx_collection_products_unique", "collection_id", "product_id", unique=True
        ),
    )

    collection_id: Mapped[int] = mapped_column(
        ForeignKey(
            "collections.id", ondelete="CASCADE", name="fk_collection_products_collection_id"
        ),
        nullable=False,
    )

    product_id: Mapped[int] = mapped_column(
        ForeignKey(
            "products.id", ondelete="CASCADE", name="fk_collection_products_product_id"
        ),
        nullable=False,
    )
