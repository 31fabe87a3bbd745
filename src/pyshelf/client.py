"""High-level async client for a personal book library."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, MutableMapping
from typing import Any, TypeVar

import aiohttp

from pyshelf.config import ShelfConfig
from pyshelf.duplicates import DuplicateDetector
from pyshelf.events import EventBus, ShelfEvent
from pyshelf.exceptions import ShelfError
from pyshelf.invalidation import CacheInvalidator
from pyshelf.models.duplicates import DuplicateMatch
from pyshelf.models.entities import Book
from pyshelf.repositories.bin import BinService
from pyshelf.repositories.book import BookRepository
from pyshelf.repositories.genre import GenreRepository
from pyshelf.repositories.series import SeriesRepository
from pyshelf.repositories.wishlist import WishlistRepository
from pyshelf.settings import JsonFileStorage, SyncSettingsStore
from pyshelf.store.base import RemoteStore
from pyshelf.store.http import HttpRemoteStore
from pyshelf.visibility import RefreshCallback, VisibilityRefreshCoordinator, VisibilitySignal

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class ShelfClient:
    """Async client owning the store, the event bus and every repository.

    Usage::

        async with ShelfClient(config) as client:
            books = await client.books.get_all(user_id)
    """

    def __init__(
        self,
        config: ShelfConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        store: RemoteStore | None = None,
        event_bus: EventBus | None = None,
        settings_storage: MutableMapping[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._injected_store = store
        self._clock = clock
        self._bus = event_bus if event_bus is not None else EventBus()
        if settings_storage is None:
            settings_storage = JsonFileStorage(config.settings_path) if config.settings_path else {}
        self._sync_settings = SyncSettingsStore(settings_storage)

        self._store: RemoteStore | None = None
        self._books: BookRepository | None = None
        self._genres: GenreRepository | None = None
        self._series: SeriesRepository | None = None
        self._wishlist: WishlistRepository | None = None
        self._bin: BinService | None = None
        self._book_duplicates: DuplicateDetector[Book] | None = None
        self._invalidator: CacheInvalidator | None = None
        self._coordinators: list[VisibilityRefreshCoordinator] = []

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ShelfClient:
        if self._injected_store is not None:
            store = self._injected_store
        else:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            store = HttpRemoteStore(self._config, self._http_session)
        self._build(store)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for coordinator in self._coordinators:
            coordinator.stop()
        self._coordinators.clear()
        if self._invalidator is not None:
            self._invalidator.uninstall()
            self._invalidator = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._store = None
        self._books = self._genres = self._series = self._wishlist = None
        self._bin = None
        self._book_duplicates = None

    def _build(self, store: RemoteStore) -> None:
        config = self._config
        self._store = store
        self._books = BookRepository(store, event_bus=self._bus, clock=self._clock)
        self._genres = GenreRepository(store, event_bus=self._bus, clock=self._clock)
        self._series = SeriesRepository(store, event_bus=self._bus, clock=self._clock)
        self._wishlist = WishlistRepository(
            store,
            event_bus=self._bus,
            duplicate_check_limit=config.duplicate_check_limit,
            clock=self._clock,
        )
        self._bin = BinService(
            self._books,
            self._genres,
            self._series,
            retention_days=config.bin_retention_days,
            clock=self._clock,
        )
        self._book_duplicates = DuplicateDetector(self._books.base, limit=config.duplicate_check_limit)
        self._invalidator = CacheInvalidator(
            self._bus,
            books=self._books,
            genres=self._genres,
            series=self._series,
            wishlist=self._wishlist,
        )
        if config.auto_invalidate:
            self._invalidator.install()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require(value: T | None) -> T:
        if value is None:
            raise ShelfError("Client not initialized. Use 'async with ShelfClient(...) as client:'")
        return value

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def config(self) -> ShelfConfig:
        return self._config

    @property
    def events(self) -> EventBus:
        return self._bus

    @property
    def sync_settings(self) -> SyncSettingsStore:
        return self._sync_settings

    @property
    def store(self) -> RemoteStore:
        return self._require(self._store)

    @property
    def books(self) -> BookRepository:
        return self._require(self._books)

    @property
    def genres(self) -> GenreRepository:
        return self._require(self._genres)

    @property
    def series(self) -> SeriesRepository:
        return self._require(self._series)

    @property
    def wishlist(self) -> WishlistRepository:
        return self._require(self._wishlist)

    @property
    def bin(self) -> BinService:
        return self._require(self._bin)

    @property
    def invalidator(self) -> CacheInvalidator:
        return self._require(self._invalidator)

    # ------------------------------------------------------------------
    # Library operations
    # ------------------------------------------------------------------

    async def check_for_duplicate(
        self,
        user_id: str,
        isbn: str | None,
        title: str | None,
        author: str | None,
    ) -> DuplicateMatch:
        """Check whether a book is already in the user's library."""
        detector = self._require(self._book_duplicates)
        return await detector.check_for_duplicate(user_id, isbn, title, author)

    async def refresh_library(self, user_id: str) -> None:
        """Re-fetch every collection for *user_id*, bypassing the caches."""
        self._bus.emit(ShelfEvent.SYNC_STARTED, {"user_id": user_id})
        try:
            await asyncio.gather(
                self.books.get_all(user_id, force_refresh=True),
                self.genres.get_all(user_id, force_refresh=True),
                self.series.get_all(user_id, force_refresh=True),
                self.wishlist.get_all(user_id, force_refresh=True),
            )
        except ShelfError as exc:
            _logger.debug("Library refresh for %s failed: %s", user_id, exc)
            self._bus.emit(ShelfEvent.SYNC_FAILED, {"user_id": user_id, "error": str(exc)})
            raise
        self._bus.emit(ShelfEvent.BOOKS_REFRESHED, {"user_id": user_id})
        self._bus.emit(ShelfEvent.SYNC_COMPLETED, {"user_id": user_id})

    def clear_all_caches(self, user_id: str | None = None) -> None:
        self.invalidator.clear_all_caches(user_id)

    def watch_visibility(
        self,
        signal: VisibilitySignal,
        user_id: str,
        *,
        refresh: RefreshCallback | None = None,
    ) -> Callable[[], None]:
        """Refresh *user_id*'s library when *signal* reports a return after a long absence.

        Uses :meth:`refresh_library` unless *refresh* is given. Settings are
        read from :attr:`sync_settings` on every transition. Returns the
        deregistration handle; coordinators are also stopped on client exit.
        """

        def refresh_user() -> Any:
            return self.refresh_library(user_id)

        coordinator = VisibilityRefreshCoordinator(
            signal,
            refresh if refresh is not None else refresh_user,
            self._sync_settings.load,
            clock=self._clock,
        )
        self._coordinators.append(coordinator)
        return coordinator.start()
