"""Catalog tables

Revision ID: 0001_catalog_initial
Revises:
Create Date: 2026-10-19

Creates categories, products, colors, sizes, variations, images, collections
and collection_products.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_catalog_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_and_created_at() -> list:
    return [
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
    ]


def upgrade() -> None:
    """Create catalog tables."""
    op.create_table(
        "categories",
        *_id_and_created_at(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "colors",
        *_id_and_created_at(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("hex_code", sa.String(length=9), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "sizes",
        *_id_and_created_at(),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_table(
        "products",
        *_id_and_created_at(),
        sa.Column("sku", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("price", sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("fabric", sa.String(length=255), nullable=True),
        sa.Column("pattern", sa.String(length=255), nullable=True),
        sa.Column("occasion", sa.String(length=255), nullable=True),
        sa.Column("net_quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("sku"),
        sa.ForeignKeyConstraint(
            ["category_id"], ["categories.id"], ondelete="SET NULL", name="fk_products_category_id"
        ),
    )
    op.create_table(
        "variations",
        *_id_and_created_at(),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(length=100), nullable=True),
        sa.Column("size", sa.String(length=50), nullable=True),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE", name="fk_variations_product_id"
        ),
    )
    op.create_index("idx_variations_product_color", "variations", ["product_id", "color"], unique=False)
    op.create_table(
        "images",
        *_id_and_created_at(),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("variation_id", sa.Integer(), nullable=True),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE", name="fk_images_product_id"
        ),
        sa.ForeignKeyConstraint(
            ["variation_id"], ["variations.id"], ondelete="CASCADE", name="fk_images_variation_id"
        ),
    )
    op.create_index(op.f("ix_images_product_id"), "images", ["product_id"], unique=False)
    op.create_index(op.f("ix_images_variation_id"), "images", ["variation_id"], unique=False)
    op.create_table(
        "collections",
        *_id_and_created_at(),
        sa.Column("collection_name", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "collection_products",
        *_id_and_created_at(),
        sa.Column("collection_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["collection_id"], ["collections.id"], ondelete="CASCADE",
            name="fk_collection_products_collection_id",
        ),
        sa.ForeignKeyConstraint(
            ["product_id"], ["products.id"], ondelete="CASCADE",
            name="fk_collection_products_product_id",
        ),
    )
    op.create_index(
        "idx_collection_products_unique", "collection_products", ["collection_id", "product_id"], unique=True
    )


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_index("idx_collection_products_unique", table_name="collection_products")
    op.drop_table("collection_products")
    op.drop_table("collections")
    op.drop_index(op.f("ix_images_variation_id"), table_name="images")
    op.drop_index(op.f("ix_images_product_id"), table_name="images")
    op.drop_table("images")
    op.drop_index("idx_variations_product_color", table_name="variations")
    op.drop_table("variations")
    op.drop_table("products")
    op.drop_table("sizes")
    op.drop_table("colors")
    op.drop_table("categories")
