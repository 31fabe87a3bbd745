"""Series repository: name lookups, soft delete and book counters."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable

from pyshelf._constants import SERIES_COLLECTION
from pyshelf.events import EventBus, ShelfEvent
from pyshelf.models.entities import Series
from pyshelf.normalize import normalize_text
from pyshelf.repositories.base import Repository, RepositoryEvents
from pyshelf.repositories.facade import SoftDeleteFacade
from pyshelf.store.base import RemoteStore


class SeriesRepository(SoftDeleteFacade[Series]):
    def __init__(
        self,
        store: RemoteStore,
        *,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        base = Repository(
            store,
            SERIES_COLLECTION,
            Series,
            event_bus=event_bus,
            events=RepositoryEvents(
                created=ShelfEvent.SERIES_CREATED,
                updated=ShelfEvent.SERIES_UPDATED,
                deleted=ShelfEvent.SERIES_DELETED,
            ),
            clock=clock,
        )
        super().__init__(base, deleted_event=ShelfEvent.SERIES_DELETED, restored_event=ShelfEvent.SERIES_UPDATED)

    async def find_by_name(self, user_id: str, name: str) -> Series | None:
        # The store cannot match case-insensitively, so scan the cached collection.
        wanted = normalize_text(name)
        for series in await self.base.get_all(user_id):
            if normalize_text(series.name) == wanted:
                return series
        return None

    async def get_all_sorted(self, user_id: str) -> list[Series]:
        return await self.base.get_with_options(user_id, order_by_field="name", order_direction="asc")

    async def name_exists(self, user_id: str, name: str, exclude_id: str | None = None) -> bool:
        existing = await self.find_by_name(user_id, name)
        if existing is None:
            return False
        return existing.id != exclude_id

    async def get_by_ids(self, user_id: str, series_ids: Iterable[str]) -> list[Series]:
        wanted = set(series_ids)
        if not wanted:
            return []
        return [series for series in await self.base.get_all(user_id) if series.id in wanted]

    async def increment_book_count(self, user_id: str, series_id: str, increment: int = 1) -> int | None:
        return await self._increment_counter(user_id, series_id, "bookCount", increment)
