from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from catalog_admin.core.db.base import BaseModel


class Color(BaseModel):
    """
    Palette entry. Variations store the color by name; the palette supplies
    the swatch shown next to each color group.
    """

    __tablename__ = "colors"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)

    hex_code: Mapped[str] = mapped_column(String(9), nullable=False)

    def __repr__(self) -> str:
        return f"<Color(id={self.id}, name='{self.name}', hex_code='{self.hex_code}')>"
