# Import all models here to ensure they're loaded together
# This prevents circular import issues with relationships

from catalog_admin.core.db.base import Base, BaseModel
from catalog_admin.modules.categories.models import Category
from catalog_admin.modules.products.models import Product
from catalog_admin.modules.colors.models import Color
from catalog_admin.modules.variations.models import Size, Variation
from catalog_admin.modules.images.models import Image
from catalog_admin.modules.collections.models import Collection, CollectionProduct

# Export for easy importing
__all__ = [
    "Base",
    "BaseModel",
    "Category",
    "Product",
    "Color",
    "Size",
    "Variation",
    "Image",
    "Collection",
    "CollectionProduct",
]
