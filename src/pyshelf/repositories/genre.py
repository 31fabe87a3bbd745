"""Genre repository: normalized-name lookups and book counters."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import Any

from pyshelf._constants import GENRES_COLLECTION
from pyshelf.events import EventBus, ShelfEvent
from pyshelf.exceptions import DuplicateFoundError
from pyshelf.models.entities import Genre
from pyshelf.normalize import normalize_genre_name
from pyshelf.repositories.base import Repository, RepositoryEvents
from pyshelf.repositories.facade import RepositoryFacade
from pyshelf.store.base import RemoteStore


class GenreRepository(RepositoryFacade[Genre]):
    def __init__(
        self,
        store: RemoteStore,
        *,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(
            Repository(
                store,
                GENRES_COLLECTION,
                Genre,
                event_bus=event_bus,
                events=RepositoryEvents(
                    created=ShelfEvent.GENRE_CREATED,
                    updated=ShelfEvent.GENRE_UPDATED,
                    deleted=ShelfEvent.GENRE_DELETED,
                ),
                clock=clock,
            )
        )

    async def get_by_normalized_name(self, user_id: str, name: str) -> Genre | None:
        genres = await self.base.query_by_field(
            user_id, "normalizedName", "==", normalize_genre_name(name), limit=1
        )
        return genres[0] if genres else None

    async def get_all_sorted(self, user_id: str) -> list[Genre]:
        return await self.base.get_with_options(user_id, order_by_field="name", order_direction="asc")

    async def name_exists(self, user_id: str, name: str, exclude_id: str | None = None) -> bool:
        existing = await self.get_by_normalized_name(user_id, name)
        if existing is None:
            return False
        return existing.id != exclude_id

    async def get_by_ids(self, user_id: str, genre_ids: Iterable[str]) -> list[Genre]:
        wanted = set(genre_ids)
        if not wanted:
            return []
        return [genre for genre in await self.base.get_all(user_id) if genre.id in wanted]

    async def create_genre(self, user_id: str, name: str, **fields: Any) -> Genre:
        """Create a genre, refusing a name that normalizes to an existing one."""
        display_name = name.strip()
        if not display_name:
            raise ValueError("genre name must be non-empty")
        existing = await self.get_by_normalized_name(user_id, display_name)
        if existing is not None:
            raise DuplicateFoundError(f'Genre "{existing.name}" already exists')
        return await self.base.add(
            user_id,
            {**fields, "name": display_name, "normalizedName": normalize_genre_name(display_name), "bookCount": 0},
        )

    async def increment_book_count(self, user_id: str, genre_id: str, increment: int = 1) -> int | None:
        return await self._increment_counter(user_id, genre_id, "bookCount", increment)

    async def update_genre_counts(
        self,
        user_id: str,
        added: Iterable[str] = (),
        removed: Iterable[str] = (),
    ) -> None:
        """Apply +1 for each genre in *added* and -1 for each in *removed*."""
        for genre_id in added:
            await self.increment_book_count(user_id, genre_id, 1)
        for genre_id in removed:
            await self.increment_book_count(user_id, genre_id, -1)
