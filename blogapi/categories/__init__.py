"""Post categories.

Note: Router is not exported here to avoid circular imports.
"""

from .models import CATEGORY_TABLES_CQL, Category
from .service import CategoryError, CategoryExistsError, CategoryService


__all__ = [
    "CATEGORY_TABLES_CQL",
    "Category",
    "CategoryError",
    "CategoryExistsError",
    "CategoryService",
]
