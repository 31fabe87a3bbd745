"""Library entity models: books, genres, series and wishlist items."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from pyshelf.models._base import Entity

Priority = Literal["high", "medium", "low"]


class Book(Entity):
    """A book in the user's library."""

    title: str = ""
    author: str = ""
    isbn: str | None = None
    cover_image_url: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    physical_format: str | None = None
    page_count: int | None = None
    rating: int | None = None
    notes: str | None = None
    genres: list[str] = Field(default_factory=list)
    series_id: str | None = None
    series_position: float | None = None
    reads: list[dict[str, Any]] = Field(default_factory=list)


class Genre(Entity):
    """A user-defined genre; ``book_count`` is a denormalized counter."""

    name: str = ""
    normalized_name: str | None = None
    color: str | None = None
    book_count: int = 0


class Series(Entity):
    """A named book series grouping books by ``series_position``."""

    name: str = ""
    description: str | None = None
    total_books: int | None = None
    book_count: int = 0


class WishlistItem(Entity):
    """A book the user wants but does not own yet."""

    title: str = ""
    author: str = ""
    isbn: str | None = None
    cover_image_url: str | None = None
    covers: dict[str, str] | None = None
    publisher: str | None = None
    published_date: str | None = None
    page_count: int | None = None
    priority: Priority | None = None
    notes: str | None = None
    added_from: str = "manual"
