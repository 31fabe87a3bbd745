"""Event-driven cache invalidation across repositories."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from pyshelf.events import EventBus, ShelfEvent, Unsubscribe

_logger = logging.getLogger(__name__)


class _Clearable(Protocol):
    def clear_cache(self, user_id: str | None = None) -> None:
        ...


def _payload_user(payload: Any) -> str | None:
    if isinstance(payload, Mapping):
        user_id = payload.get("user_id")
        return str(user_id) if user_id else None
    return None


class CacheInvalidator:
    """Clear repository caches when the bus reports changes.

    Repositories already invalidate their own cache on writes; this covers
    writes reported by other components (and sign-out) that bypass them.
    Payloads carrying ``user_id`` clear only that user's entry.
    """

    def __init__(
        self,
        event_bus: EventBus,
        *,
        books: _Clearable,
        genres: _Clearable,
        series: _Clearable,
        wishlist: _Clearable | None = None,
    ) -> None:
        self._bus = event_bus
        self._books = books
        self._genres = genres
        self._series = series
        self._wishlist = wishlist
        self._unsubscribers: list[Unsubscribe] = []

    @property
    def installed(self) -> bool:
        return bool(self._unsubscribers)

    def _routes(self) -> Iterable[tuple[str, Callable[[Any], None]]]:
        for event in (ShelfEvent.BOOK_SAVED, ShelfEvent.BOOK_DELETED, ShelfEvent.BOOK_RESTORED):
            yield event, self._clear_books
        for event in (
            ShelfEvent.GENRE_CREATED,
            ShelfEvent.GENRE_UPDATED,
            ShelfEvent.GENRE_DELETED,
            ShelfEvent.GENRES_CHANGED,
        ):
            yield event, self._clear_genres
        for event in (ShelfEvent.SERIES_CREATED, ShelfEvent.SERIES_UPDATED, ShelfEvent.SERIES_DELETED):
            yield event, self._clear_series
        if self._wishlist is not None:
            yield ShelfEvent.WISHLIST_UPDATED, self._clear_wishlist
        for event in (ShelfEvent.USER_LOGGED_OUT, ShelfEvent.AUTH_STATE_CHANGED):
            yield event, self._clear_everything

    def install(self) -> None:
        if self._unsubscribers:
            return
        for event, handler in self._routes():
            self._unsubscribers.append(self._bus.on(event, handler))
        _logger.debug("Cache invalidation installed (%d listeners)", len(self._unsubscribers))

    def uninstall(self) -> None:
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()

    def clear_all_caches(self, user_id: str | None = None) -> None:
        for repo in (self._books, self._genres, self._series, self._wishlist):
            if repo is not None:
                repo.clear_cache(user_id)

    def _clear_books(self, payload: Any) -> None:
        self._books.clear_cache(_payload_user(payload))

    def _clear_genres(self, payload: Any) -> None:
        self._genres.clear_cache(_payload_user(payload))

    def _clear_series(self, payload: Any) -> None:
        self._series.clear_cache(_payload_user(payload))

    def _clear_wishlist(self, payload: Any) -> None:
        if self._wishlist is not None:
            self._wishlist.clear_cache(_payload_user(payload))

    def _clear_everything(self, payload: Any) -> None:
        self.clear_all_caches(_payload_user(payload))
