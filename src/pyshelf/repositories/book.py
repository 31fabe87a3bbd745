"""Book repository: ISBN, series and genre lookups plus soft delete."""

from __future__ import annotations

import time
from collections.abc import Callable

from pyshelf._constants import BOOKS_COLLECTION
from pyshelf.events import EventBus, ShelfEvent
from pyshelf.exceptions import SeriesPositionTakenError
from pyshelf.models.entities import Book
from pyshelf.models.requests import FieldFilter
from pyshelf.normalize import clean_isbn
from pyshelf.repositories.base import Repository, RepositoryEvents
from pyshelf.repositories.facade import SoftDeleteFacade
from pyshelf.store.base import RemoteStore


class BookRepository(SoftDeleteFacade[Book]):
    def __init__(
        self,
        store: RemoteStore,
        *,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        base = Repository(
            store,
            BOOKS_COLLECTION,
            Book,
            event_bus=event_bus,
            events=RepositoryEvents(
                created=ShelfEvent.BOOK_SAVED,
                updated=ShelfEvent.BOOK_SAVED,
                deleted=ShelfEvent.BOOK_DELETED,
            ),
            clock=clock,
        )
        super().__init__(base, deleted_event=ShelfEvent.BOOK_DELETED, restored_event=ShelfEvent.BOOK_RESTORED)

    async def get_by_isbn(self, user_id: str, isbn: str) -> Book | None:
        books = await self.base.query_by_field(user_id, "isbn", "==", clean_isbn(isbn), limit=1)
        return books[0] if books else None

    async def get_by_series_id(self, user_id: str, series_id: str) -> list[Book]:
        return await self.base.query_by_field(user_id, "seriesId", "==", series_id)

    async def get_by_genre_id(self, user_id: str, genre_id: str) -> list[Book]:
        return await self.base.query_by_field(user_id, "genres", "array-contains", genre_id)

    async def get_recent(self, user_id: str, count: int = 10) -> list[Book]:
        return await self.base.get_with_options(
            user_id,
            order_by_field="createdAt",
            order_direction="desc",
            limit_count=count,
        )

    async def is_series_position_taken(
        self,
        user_id: str,
        series_id: str,
        position: float,
        exclude_book_id: str | None = None,
    ) -> bool:
        """Whether an active book other than *exclude_book_id* holds *position*.

        Best-effort: the check and any following write are not atomic.
        """
        holders = await self.base.query(
            user_id,
            FieldFilter(field="seriesId", op="==", value=series_id),
            FieldFilter(field="seriesPosition", op="==", value=position),
        )
        return any(book.id != exclude_book_id and not book.is_deleted for book in holders)

    async def assign_series_position(
        self,
        user_id: str,
        book_id: str,
        series_id: str | None,
        position: float | None,
    ) -> None:
        """Link a book to a series, refusing an explicit position already held."""
        if series_id is not None and position is not None:
            if await self.is_series_position_taken(user_id, series_id, position, exclude_book_id=book_id):
                raise SeriesPositionTakenError(
                    f"Position {position:g} is already taken in series {series_id}",
                    series_id=series_id,
                    position=position,
                )
        await self.base.update(
            user_id,
            book_id,
            {"seriesId": series_id, "seriesPosition": position if series_id is not None else None},
        )
