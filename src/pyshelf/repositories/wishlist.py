"""Wishlist repository: duplicate-guarded adds and moving items to the library."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from pyshelf._constants import DUPLICATE_CHECK_LIMIT, WISHLIST_COLLECTION
from pyshelf.duplicates import DuplicateDetector
from pyshelf.events import EventBus, ShelfEvent
from pyshelf.exceptions import DuplicateFoundError, EntityNotFoundError
from pyshelf.models.duplicates import DuplicateMatch
from pyshelf.models.entities import Book, WishlistItem
from pyshelf.normalize import clean_isbn, is_isbn
from pyshelf.repositories.base import Repository, RepositoryEvents
from pyshelf.repositories.facade import RepositoryFacade
from pyshelf.store.base import RemoteStore

if TYPE_CHECKING:
    from pyshelf.repositories.book import BookRepository

_logger = logging.getLogger(__name__)

# Fields a user may edit on an existing wishlist item.
_EDITABLE_FIELDS = ("priority", "notes", "coverImageUrl")


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class WishlistRepository(RepositoryFacade[WishlistItem]):
    def __init__(
        self,
        store: RemoteStore,
        *,
        event_bus: EventBus | None = None,
        duplicate_check_limit: int = DUPLICATE_CHECK_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(
            Repository(
                store,
                WISHLIST_COLLECTION,
                WishlistItem,
                event_bus=event_bus,
                events=RepositoryEvents(
                    created=ShelfEvent.WISHLIST_UPDATED,
                    updated=ShelfEvent.WISHLIST_UPDATED,
                    deleted=ShelfEvent.WISHLIST_UPDATED,
                ),
                clock=clock,
            )
        )
        self._detector = DuplicateDetector(self.base, limit=duplicate_check_limit)

    async def check_duplicate(
        self,
        user_id: str,
        isbn: str | None,
        title: str,
        author: str,
    ) -> DuplicateMatch:
        return await self._detector.check_for_duplicate(user_id, isbn, title, author)

    async def add_item(self, user_id: str, data: Mapping[str, Any]) -> WishlistItem:
        """Add an item; raises :class:`DuplicateFoundError` if it is already wished for."""
        title = _text_or_none(data.get("title"))
        author = _text_or_none(data.get("author"))
        if title is None or author is None:
            raise ValueError("wishlist items need a title and an author")

        isbn = _text_or_none(data.get("isbn"))
        if is_isbn(isbn):
            isbn = clean_isbn(isbn)
        match = await self.check_duplicate(user_id, isbn, title, author)
        if match.is_duplicate:
            existing = match.matched_entity.get("title") if match.matched_entity is not None else title
            raise DuplicateFoundError(f'"{existing}" is already in your wishlist', match=match)

        return await self.base.add(
            user_id,
            {
                "title": title,
                "author": author,
                "isbn": isbn,
                "coverImageUrl": data.get("coverImageUrl") or None,
                "covers": data.get("covers") or None,
                "publisher": _text_or_none(data.get("publisher")),
                "publishedDate": _text_or_none(data.get("publishedDate")),
                "pageCount": data.get("pageCount") or None,
                "priority": data.get("priority") or None,
                "notes": _text_or_none(data.get("notes")),
                "addedFrom": data.get("addedFrom") or "manual",
            },
        )

    async def update_item(self, user_id: str, item_id: str, updates: Mapping[str, Any]) -> None:
        """Update the user-editable fields; anything else in *updates* is ignored."""
        fields = {key: updates[key] for key in _EDITABLE_FIELDS if key in updates}
        if not fields:
            _logger.debug("No editable wishlist fields in update for %s", item_id)
            return
        await self.base.update(user_id, item_id, fields)

    async def move_to_library(self, user_id: str, item_id: str, books: BookRepository) -> Book:
        """Create a book from a wishlist item, then delete the item.

        The two writes are not transactional; if the delete fails the book
        already exists and the error propagates.
        """
        item = await self.base.get_by_id(user_id, item_id)
        if item is None:
            raise EntityNotFoundError(
                "Wishlist item not found",
                collection=self.collection,
                entity_id=item_id,
            )

        book = await books.add(
            user_id,
            {
                "title": item.title,
                "author": item.author,
                "isbn": item.isbn or "",
                "coverImageUrl": item.cover_image_url or "",
                "covers": item.covers,
                "publisher": item.publisher or "",
                "publishedDate": item.published_date or "",
                "physicalFormat": "",
                "pageCount": item.page_count,
                "rating": None,
                "notes": item.notes or "",
                "genres": [],
                "seriesId": None,
                "seriesPosition": None,
                "reads": [],
                "deletedAt": None,
            },
        )
        await self.base.remove(user_id, item_id)
        return book

    @staticmethod
    def create_lookup(items: Iterable[WishlistItem]) -> dict[str, WishlistItem]:
        """Map ISBN to item for items that carry one."""
        return {item.isbn: item for item in items if item.isbn}
