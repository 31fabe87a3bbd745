"""Pydantic models for pyshelf entities and requests."""

from pyshelf.models._base import Entity, ShelfBaseModel, ShelfTimestamp, parse_timestamp_ms
from pyshelf.models.duplicates import DuplicateMatch, MatchKind
from pyshelf.models.entities import Book, Genre, Priority, Series, WishlistItem
from pyshelf.models.requests import FieldFilter, FilterOp, OrderDirection, Page, PageRequest, QueryOptions

__all__ = [
    "Book",
    "DuplicateMatch",
    "Entity",
    "FieldFilter",
    "FilterOp",
    "Genre",
    "MatchKind",
    "OrderDirection",
    "Page",
    "PageRequest",
    "Priority",
    "QueryOptions",
    "Series",
    "ShelfBaseModel",
    "ShelfTimestamp",
    "WishlistItem",
    "parse_timestamp_ms",
]
