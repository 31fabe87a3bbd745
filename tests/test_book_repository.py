from __future__ import annotations

import pytest

from conftest import FakeRemoteStore, Recorder
from pyshelf.events import EventBus, ShelfEvent
from pyshelf.exceptions import SeriesPositionTakenError
from pyshelf.repositories import BookRepository


@pytest.fixture
def seeded(store: FakeRemoteStore) -> FakeRemoteStore:
    store.seed(
        "u1",
        "books",
        {"id": "b1", "title": "Dune", "isbn": "9780441013593", "seriesId": "s1", "seriesPosition": 1, "genres": ["g1"]},
        {"id": "b2", "title": "Dune Messiah", "seriesId": "s1", "seriesPosition": 2, "genres": ["g1", "g2"]},
        {"id": "b3", "title": "Old Copy", "seriesId": "s1", "seriesPosition": 3, "deletedAt": 1_600_000_000_000},
        {"id": "b4", "title": "Emma", "genres": ["g2"], "createdAt": 5},
    )
    return store


@pytest.mark.asyncio
async def test_lookup_helpers(seeded: FakeRemoteStore, books: BookRepository) -> None:
    by_isbn = await books.get_by_isbn("u1", "978-0-441-01359-3")
    assert by_isbn is not None and by_isbn.id == "b1"
    assert await books.get_by_isbn("u1", "0000000000") is None

    assert {b.id for b in await books.get_by_series_id("u1", "s1")} == {"b1", "b2", "b3"}
    assert {b.id for b in await books.get_by_genre_id("u1", "g2")} == {"b2", "b4"}

    recent = await books.get_recent("u1", count=1)
    assert [b.id for b in recent] == ["b4"]


@pytest.mark.asyncio
async def test_active_and_deleted_views(seeded: FakeRemoteStore, books: BookRepository) -> None:
    active = await books.get_active("u1")
    deleted = await books.get_deleted("u1")

    assert {b.id for b in active} == {"b1", "b2", "b4"}
    assert [b.id for b in deleted] == ["b3"]
    assert seeded.calls["query"] == 1


@pytest.mark.asyncio
async def test_series_position_taken(seeded: FakeRemoteStore, books: BookRepository) -> None:
    assert await books.is_series_position_taken("u1", "s1", 2)
    assert not await books.is_series_position_taken("u1", "s1", 2, exclude_book_id="b2")
    assert not await books.is_series_position_taken("u1", "s1", 4)
    # Soft-deleted holders do not block a position.
    assert not await books.is_series_position_taken("u1", "s1", 3)


@pytest.mark.asyncio
async def test_assign_series_position_refuses_taken_slot(seeded: FakeRemoteStore, books: BookRepository) -> None:
    with pytest.raises(SeriesPositionTakenError) as exc_info:
        await books.assign_series_position("u1", "b4", "s1", 2)

    assert exc_info.value.position == 2
    assert seeded.bucket("u1", "books")["b4"].get("seriesId") is None


@pytest.mark.asyncio
async def test_assign_series_position_writes_link(seeded: FakeRemoteStore, books: BookRepository) -> None:
    await books.assign_series_position("u1", "b4", "s1", 4)
    stored = seeded.bucket("u1", "books")["b4"]
    assert (stored["seriesId"], stored["seriesPosition"]) == ("s1", 4)

    await books.assign_series_position("u1", "b4", None, 7)
    stored = seeded.bucket("u1", "books")["b4"]
    assert (stored["seriesId"], stored["seriesPosition"]) == (None, None)


@pytest.mark.asyncio
async def test_soft_delete_and_restore_emit_book_events(
    seeded: FakeRemoteStore, books: BookRepository, bus: EventBus
) -> None:
    recorder = Recorder(bus, ShelfEvent.BOOK_SAVED, ShelfEvent.BOOK_DELETED, ShelfEvent.BOOK_RESTORED)

    await books.soft_delete("u1", "b1")
    assert seeded.bucket("u1", "books")["b1"]["deletedAt"] is not None

    await books.restore("u1", "b1")
    assert seeded.bucket("u1", "books")["b1"]["deletedAt"] is None

    assert recorder.names() == [ShelfEvent.BOOK_DELETED, ShelfEvent.BOOK_RESTORED]
    assert recorder.seen[0][1]["soft"] is True
