from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from catalog_admin.core.db.base import BaseModel


class Category(BaseModel):
    """Product category. Only referenced by products in this service."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
