"""Post listing pipeline: filter, order and paginate resolved posts.

Cassandra offers no case-insensitive multi-column OR search, so listing loads
the candidate rows and applies a single authoritative predicate in memory
once authors and categories have been resolved.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from blogapi.auth.models import User
from blogapi.categories.models import Category

from .models import Post


T = TypeVar("T")


@dataclass
class ResolvedPost:
    """A post together with its author and category (None when dangling)."""

    post: Post
    author: User | None
    category: Category | None


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    pages: int


def matches_search(item: ResolvedPost, search: str) -> bool:
    """Case-insensitive substring match on title, category name or author username."""
    needle = search.lower()
    if needle in item.post.title.lower():
        return True
    if item.category and needle in item.category.name.lower():
        return True
    return bool(item.author and needle in item.author.username.lower())


def matches_category(item: ResolvedPost, category: str) -> bool:
    """Category name contains the text, or the category id equals it exactly."""
    if item.category is None:
        return False
    return category.lower() in item.category.name.lower() or str(
        item.category.id
    ) == category


def paginate(items: Sequence[T], page: int, limit: int) -> Page[T]:
    """Slice one page; a page past the end is empty but keeps ``total``."""
    total = len(items)
    start = (page - 1) * limit
    return Page(
        items=list(items[start : start + limit]),
        total=total,
        page=page,
        pages=math.ceil(total / limit),
    )


def filter_posts(
    items: list[ResolvedPost],
    search: str | None = None,
    category: str | None = None,
) -> list[ResolvedPost]:
    """Apply the active filters and order most recent first."""
    if search:
        items = [i for i in items if matches_search(i, search)]
    if category:
        items = [i for i in items if matches_category(i, category)]
    return sorted(items, key=lambda i: i.post.created_at, reverse=True)
