"""Category service layer."""

from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import Category


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


class CategoryError(Exception):
    """Base category error."""

    def __init__(self, message: str, code: str = "category_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CategoryExistsError(CategoryError):
    """A category with this name already exists."""

    def __init__(self, message: str = "Category name must be unique"):
        super().__init__(message, "category_exists")


class CategoryService:
    """Create and look up categories."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._list_categories = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.categories"
        )
        self._get_category_by_name = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.categories WHERE name = ?"
        )
        self._get_categories_by_ids = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.categories WHERE id IN ?"
        )
        self._insert_category = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.categories (id, name, created_at)
            VALUES (?, ?, ?)
        """)

    async def list_categories(self) -> list[Category]:
        """All categories, ordered by name."""
        rows = await self.session.aexecute(self._list_categories)
        categories = [Category.from_row(row) for row in rows]
        return sorted(categories, key=lambda c: c.name.lower())

    async def get_category_by_name(self, name: str) -> Category | None:
        rows = await self.session.aexecute(self._get_category_by_name, [name.strip()])
        row = rows.one()
        return Category.from_row(row) if row else None

    async def get_categories_by_ids(
        self, category_ids: Iterable[UUID]
    ) -> dict[UUID, Category]:
        """Batch lookup keyed by id; dangling ids are simply absent."""
        ids = list(dict.fromkeys(category_ids))
        if not ids:
            return {}
        rows = await self.session.aexecute(self._get_categories_by_ids, [ids])
        return {row.id: Category.from_row(row) for row in rows}

    async def create_category(self, name: str) -> Category:
        """Create a category.

        Raises:
            CategoryExistsError: If the name is already taken
        """
        if await self.get_category_by_name(name):
            raise CategoryExistsError

        category = Category(name=name)
        await self.session.aexecute(
            self._insert_category,
            [category.id, category.name, category.created_at],
        )
        logger.info(
            "category_created", category_id=str(category.id), name=category.name
        )
        return category
