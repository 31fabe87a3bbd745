from __future__ import annotations

import asyncio
import copy
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest

from pyshelf.events import EventBus
from pyshelf.exceptions import RemoteUnavailableError
from pyshelf.models.requests import FieldFilter
from pyshelf.repositories import BinService, BookRepository, GenreRepository, SeriesRepository, WishlistRepository

Record = dict[str, Any]


def _matches(doc: Mapping[str, Any], flt: FieldFilter) -> bool:
    actual = doc.get(flt.field)
    value = flt.value
    if flt.op == "==":
        return actual == value
    if flt.op == "!=":
        return actual != value
    if flt.op == "array-contains":
        return isinstance(actual, list) and value in actual
    if flt.op == "array-contains-any":
        return isinstance(actual, list) and any(v in actual for v in value)
    if flt.op == "in":
        return actual in value
    if flt.op == "not-in":
        return actual not in value
    if actual is None:
        return False
    if flt.op == "<":
        return actual < value
    if flt.op == "<=":
        return actual <= value
    if flt.op == ">":
        return actual > value
    return actual >= value


@dataclass
class FakeRemoteStore:
    """In-memory document store with call counters and failure/latency hooks."""

    docs: dict[tuple[str, str], dict[str, Record]] = field(default_factory=dict)
    calls: Counter[str] = field(default_factory=Counter)
    queries: list[dict[str, Any]] = field(default_factory=list)
    fail: bool = False
    gate: asyncio.Event | None = None
    next_id: int = 0

    def seed(self, user_id: str, collection: str, *records: Record) -> None:
        bucket = self.docs.setdefault((user_id, collection), {})
        for record in records:
            bucket[record["id"]] = copy.deepcopy(record)

    def bucket(self, user_id: str, collection: str) -> dict[str, Record]:
        return self.docs.setdefault((user_id, collection), {})

    async def _enter(self, op: str, collection: str) -> None:
        self.calls[op] += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RemoteUnavailableError("store offline", collection=collection)

    async def get(self, user_id: str, collection: str, doc_id: str) -> Record | None:
        await self._enter("get", collection)
        record = self.bucket(user_id, collection).get(doc_id)
        return copy.deepcopy(record) if record is not None else None

    async def query(
        self,
        user_id: str,
        collection: str,
        *,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        direction: str = "asc",
        limit: int | None = None,
        start_after: str | None = None,
    ) -> list[Record]:
        self.queries.append(
            {
                "collection": collection,
                "filters": list(filters),
                "order_by": order_by,
                "direction": direction,
                "limit": limit,
                "start_after": start_after,
            }
        )
        await self._enter("query", collection)
        records = [r for r in self.bucket(user_id, collection).values() if all(_matches(r, f) for f in filters)]
        if order_by:
            # Documents lacking the ordered field are excluded, as in indexed stores.
            records = [r for r in records if r.get(order_by) is not None]
            records.sort(
                key=lambda r: r[order_by],
                reverse=direction == "desc",
            )
        if start_after is not None:
            ids = [r["id"] for r in records]
            records = records[ids.index(start_after) + 1 :] if start_after in ids else []
        if limit is not None:
            records = records[:limit]
        return copy.deepcopy(records)

    async def insert(self, user_id: str, collection: str, data: Mapping[str, Any]) -> str:
        await self._enter("insert", collection)
        self.next_id += 1
        doc_id = f"{collection}-{self.next_id}"
        self.bucket(user_id, collection)[doc_id] = {**copy.deepcopy(dict(data)), "id": doc_id}
        return doc_id

    async def update(self, user_id: str, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self._enter("update", collection)
        bucket = self.bucket(user_id, collection)
        if doc_id not in bucket:
            raise RemoteUnavailableError(f"no document {doc_id}", collection=collection)
        bucket[doc_id].update(copy.deepcopy(dict(fields)))

    async def delete(self, user_id: str, collection: str, doc_id: str) -> None:
        await self._enter("delete", collection)
        self.bucket(user_id, collection).pop(doc_id, None)

    async def count(self, user_id: str, collection: str) -> int:
        await self._enter("count", collection)
        return len(self.bucket(user_id, collection))


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    """Collects every payload emitted for the events it is subscribed to."""

    def __init__(self, bus: EventBus, *events: str) -> None:
        self.seen: list[tuple[str, Any]] = []
        for event in events:
            bus.on(event, lambda payload, _event=event: self.seen.append((_event, payload)))

    def names(self) -> list[str]:
        return [name for name, _ in self.seen]


@pytest.fixture
def store() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def books(store: FakeRemoteStore, bus: EventBus, clock: FakeClock) -> BookRepository:
    return BookRepository(store, event_bus=bus, clock=clock)


@pytest.fixture
def genres(store: FakeRemoteStore, bus: EventBus, clock: FakeClock) -> GenreRepository:
    return GenreRepository(store, event_bus=bus, clock=clock)


@pytest.fixture
def series(store: FakeRemoteStore, bus: EventBus, clock: FakeClock) -> SeriesRepository:
    return SeriesRepository(store, event_bus=bus, clock=clock)


@pytest.fixture
def wishlist(store: FakeRemoteStore, bus: EventBus, clock: FakeClock) -> WishlistRepository:
    return WishlistRepository(store, event_bus=bus, clock=clock)


@pytest.fixture
def bin_service(
    books: BookRepository,
    genres: GenreRepository,
    series: SeriesRepository,
    clock: FakeClock,
) -> BinService:
    return BinService(books, genres, series, clock=clock)
