"""Bin (soft-deleted books) workflows spanning books, genres and series.

Soft-deleting a book removes it from its genres' and series' counters;
restoring re-adds it, repairing references to genres or a series that have
disappeared in the meantime.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from pyshelf._constants import BIN_RETENTION_DAYS, _DAY_MS, days_to_ms
from pyshelf.models.entities import Book
from pyshelf.repositories.book import BookRepository
from pyshelf.repositories.genre import GenreRepository
from pyshelf.repositories.series import SeriesRepository

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RestoreResult:
    warnings: list[str] = field(default_factory=list)
    series_restored: bool = False


class BinService:
    def __init__(
        self,
        books: BookRepository,
        genres: GenreRepository,
        series: SeriesRepository,
        *,
        retention_days: int = BIN_RETENTION_DAYS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._books = books
        self._genres = genres
        self._series = series
        self._retention_days = retention_days
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def soft_delete_book(self, user_id: str, book: Book) -> None:
        await self._books.soft_delete(user_id, book.id)
        if book.genres:
            await self._genres.update_genre_counts(user_id, added=(), removed=book.genres)
        if book.series_id:
            await self._series.increment_book_count(user_id, book.series_id, -1)

    async def restore_book(self, user_id: str, book: Book) -> RestoreResult:
        warnings: list[str] = []
        extra: dict[str, Any] = {}

        series_exists = True
        series_restored = False
        if book.series_id:
            active = await self._series.get_active(user_id, force_refresh=True)
            series_exists = any(s.id == book.series_id for s in active)
            if not series_exists:
                series = await self._series.get_by_id(user_id, book.series_id)
                if series is not None and series.is_deleted:
                    await self._series.restore(user_id, book.series_id)
                    series_exists = True
                    series_restored = True
                elif series is None:
                    extra["seriesId"] = None
                    extra["seriesPosition"] = None
                    warnings.append("Series no longer exists")

        valid_genres = list(book.genres)
        if valid_genres:
            existing = {genre.id for genre in await self._genres.get_all(user_id, force_refresh=True)}
            kept = [genre_id for genre_id in valid_genres if genre_id in existing]
            removed = len(valid_genres) - len(kept)
            if removed:
                extra["genres"] = kept
                plural = "s" if removed > 1 else ""
                verb = "exists" if removed == 1 else "exist"
                warnings.append(f"{removed} genre{plural} no longer {verb}")
            valid_genres = kept

        await self._books.restore(user_id, book.id, extra=extra)

        if valid_genres:
            await self._genres.update_genre_counts(user_id, added=valid_genres, removed=())
        if book.series_id and series_exists:
            await self._series.increment_book_count(user_id, book.series_id, 1)

        if warnings:
            _logger.info("Restored book %s with warnings: %s", book.id, "; ".join(warnings))
        return RestoreResult(warnings=warnings, series_restored=series_restored)

    async def permanently_delete(self, user_id: str, book_id: str) -> None:
        await self._books.remove(user_id, book_id)

    async def empty_bin(self, user_id: str, binned_books: Sequence[Book]) -> int:
        for book in binned_books:
            await self._books.remove(user_id, book.id)
        return len(binned_books)

    async def purge_expired(self, user_id: str, binned_books: Sequence[Book] | None = None) -> int:
        """Permanently delete books binned longer than the retention period."""
        if binned_books is None:
            binned_books = await self._books.get_deleted(user_id)
        now = self._now_ms()
        retention_ms = days_to_ms(self._retention_days)
        expired = [
            book for book in binned_books if book.deleted_at is not None and now - book.deleted_at > retention_ms
        ]
        return await self.empty_bin(user_id, expired)

    def days_remaining(self, deleted_at: int | None) -> int:
        """Whole days left before a binned book becomes eligible for purge."""
        if not deleted_at:
            return self._retention_days
        elapsed_days = (self._now_ms() - deleted_at) // _DAY_MS
        return max(0, self._retention_days - int(elapsed_days))
