"""Generic cache-plus-query repository over one remote store collection.

Concurrency model: everything runs on the event loop thread. The only
interleaving points are awaits on the remote store, so no locks are needed,
but concurrent :meth:`Repository.get_all` calls for the same user must
coalesce onto a single in-flight fetch.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from pyshelf._cache import CollectionCache
from pyshelf.events import EventBus
from pyshelf.exceptions import InvalidRecordError, RemoteUnavailableError, ShelfError
from pyshelf.models._base import Entity
from pyshelf.models.requests import FieldFilter, FilterOp, Page, PageRequest, QueryOptions
from pyshelf.store.base import Record, RemoteStore

_logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)
R = TypeVar("R")


@dataclass(frozen=True)
class RepositoryEvents:
    """Event names emitted after each kind of mutation (``None`` = silent)."""

    created: str | None = None
    updated: str | None = None
    deleted: str | None = None


class Repository(Generic[E]):
    """Cache-and-query facade over a single collection.

    The collection name is fixed per instance; every operation is scoped by
    the ``user_id`` passed in. Every mutation invalidates the whole-collection
    cache for that user before returning (no optimistic patching).
    """

    def __init__(
        self,
        store: RemoteStore,
        collection: str,
        model: type[E],
        *,
        event_bus: EventBus | None = None,
        events: RepositoryEvents | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._collection = collection
        self._model = model
        self._bus = event_bus
        self._events = events or RepositoryEvents()
        self._clock = clock
        self._cache: CollectionCache[E] = CollectionCache(collection)
        self._in_flight: dict[str, asyncio.Task[tuple[E, ...]]] = {}

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def model(self) -> type[E]:
        return self._model

    @property
    def event_bus(self) -> EventBus | None:
        return self._bus

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call(self, operation: str, fn: Callable[[], Awaitable[R]]) -> R:
        """Run a store operation, mapping collaborator failures to RemoteUnavailableError."""
        try:
            return await fn()
        except ShelfError:
            raise
        except Exception as exc:
            raise RemoteUnavailableError(
                f"{operation} on {self._collection} failed: {exc}",
                collection=self._collection,
            ) from exc

    def _to_entity(self, record: Record) -> E:
        doc_id = str(record["id"])
        try:
            return self._model.from_record(doc_id, {k: v for k, v in record.items() if k != "id"})
        except ValidationError as exc:
            raise InvalidRecordError(
                f"{self._collection}/{doc_id} is not a valid {self._model.__name__}: {exc}",
                collection=self._collection,
                entity_id=doc_id,
            ) from exc

    def _to_entities(self, records: list[Record]) -> list[E]:
        """Convert query results, skipping documents that cannot be read."""
        entities: list[E] = []
        for record in records:
            try:
                entities.append(self._to_entity(record))
            except InvalidRecordError as exc:
                _logger.warning("Skipping unreadable document: %s", exc)
        return entities

    def _emit(self, event: str | None, payload: dict[str, Any]) -> None:
        if self._bus is None or event is None:
            return
        self._bus.emit(event, payload)

    def _invalidate(self, user_id: str) -> None:
        self._cache.invalidate(user_id)
        # A fetch started before the mutation must not serve later callers.
        self._in_flight.pop(user_id, None)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_all(self, user_id: str, force_refresh: bool = False) -> list[E]:
        """Return every entity in the collection for *user_id*.

        Served from cache unless *force_refresh* is set. Otherwise joins the
        in-flight fetch for this user or starts one. On failure the previous
        cache entry (if any) is left intact.
        """
        if not force_refresh:
            entry = self._cache.get(user_id)
            if entry is not None:
                return list(entry.items)

        task = self._in_flight.get(user_id)
        if task is None or task.done():
            task = asyncio.ensure_future(self._fetch_all(user_id, self._cache.generation(user_id)))
            self._in_flight[user_id] = task
            task.add_done_callback(functools.partial(self._settle, user_id))
        else:
            _logger.debug("Joining in-flight fetch for %s/%s", user_id, self._collection)

        items = await asyncio.shield(task)
        return list(items)

    async def _fetch_all(self, user_id: str, generation: int) -> tuple[E, ...]:
        _logger.debug("Fetching %s/%s from remote store", user_id, self._collection)

        async def _fetch() -> tuple[E, ...]:
            records = await self._store.query(user_id, self._collection)
            return tuple(self._to_entities(records))

        items = await self._call("get_all", _fetch)
        stored = self._cache.store(user_id, items, fetched_at=self._clock(), generation=generation)
        if not stored:
            _logger.debug("Discarding fetch of %s/%s invalidated while in flight", user_id, self._collection)
        return items

    def _settle(self, user_id: str, task: asyncio.Task[tuple[E, ...]]) -> None:
        if self._in_flight.get(user_id) is task:
            del self._in_flight[user_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.debug("Fetch of %s/%s failed: %s", user_id, self._collection, exc)

    async def get_by_id(self, user_id: str, doc_id: str) -> E | None:
        """Return one entity, scanning the cache when it is populated."""
        entry = self._cache.get(user_id)
        if entry is not None:
            return next((item for item in entry.items if item.id == doc_id), None)

        async def _fetch() -> E | None:
            record = await self._store.get(user_id, self._collection, doc_id)
            return self._to_entity(record) if record is not None else None

        return await self._call("get_by_id", _fetch)

    async def query(
        self,
        user_id: str,
        *filters: FieldFilter,
        order_by: str | None = None,
        direction: str = "asc",
        limit: int | None = None,
        start_after: str | None = None,
    ) -> list[E]:
        """Run a direct filtered query. Never consults or populates the cache."""
        options = QueryOptions(order_by_field=order_by, order_direction=direction, limit_count=limit)

        async def _fetch() -> list[E]:
            records = await self._store.query(
                user_id,
                self._collection,
                filters=filters,
                order_by=options.order_by_field,
                direction=options.order_direction,
                limit=options.limit_count,
                start_after=start_after,
            )
            return self._to_entities(records)

        return await self._call("query", _fetch)

    async def query_by_field(
        self,
        user_id: str,
        field: str,
        op: FilterOp,
        value: Any,
        *,
        limit: int | None = None,
    ) -> list[E]:
        return await self.query(user_id, FieldFilter(field=field, op=op, value=value), limit=limit)

    async def get_with_options(
        self,
        user_id: str,
        options: QueryOptions | None = None,
        **kwargs: Any,
    ) -> list[E]:
        """Fresh ordered and/or limited query, bypassing the collection cache."""
        if options is None:
            options = QueryOptions(**kwargs)
        return await self.query(
            user_id,
            order_by=options.order_by_field,
            direction=options.order_direction,
            limit=options.limit_count,
        )

    async def get_paginated(
        self,
        user_id: str,
        request: PageRequest | None = None,
        **kwargs: Any,
    ) -> Page[E]:
        """Cursor pagination; pass the previous page's ``last_id`` as ``after``."""
        if request is None:
            request = PageRequest(**kwargs)
        items = await self.query(
            user_id,
            order_by=request.order_by_field,
            direction=request.order_direction,
            limit=request.limit_count,
            start_after=request.after,
        )
        return Page(
            items=items,
            last_id=items[-1].id if items else None,
            has_more=len(items) == request.limit_count,
        )

    async def get_count(self, user_id: str) -> int:
        entry = self._cache.get(user_id)
        if entry is not None:
            return len(entry.items)
        return await self._call("get_count", lambda: self._store.count(user_id, self._collection))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, user_id: str, data: Mapping[str, Any]) -> E:
        """Insert a new entity and return it with its store-assigned id."""
        now = self.now_ms()
        document = {key: value for key, value in data.items() if key != "id"}
        document["createdAt"] = now
        document["updatedAt"] = now
        # Validate before writing so a bad payload never reaches the store.
        draft = self._model.model_validate({**document, "id": ""})

        doc_id = await self._call("add", lambda: self._store.insert(user_id, self._collection, document))
        self._invalidate(user_id)

        entity = draft.model_copy(update={"id": doc_id})
        self._emit(
            self._events.created,
            {"collection": self._collection, "user_id": user_id, "id": doc_id, "entity": entity},
        )
        return entity

    async def update(
        self,
        user_id: str,
        doc_id: str,
        fields: Mapping[str, Any],
        *,
        notify: bool = True,
    ) -> None:
        """Shallow-merge *fields* into the stored entity; ``None`` clears a field."""
        payload = {key: value for key, value in fields.items() if key != "id"}
        payload["updatedAt"] = self.now_ms()

        await self._call("update", lambda: self._store.update(user_id, self._collection, doc_id, payload))
        self._invalidate(user_id)

        if notify:
            self._emit(
                self._events.updated,
                {"collection": self._collection, "user_id": user_id, "id": doc_id, "fields": payload},
            )

    async def remove(self, user_id: str, doc_id: str) -> None:
        """Physically delete an entity."""
        await self._call("remove", lambda: self._store.delete(user_id, self._collection, doc_id))
        self._invalidate(user_id)
        self._emit(
            self._events.deleted,
            {"collection": self._collection, "user_id": user_id, "id": doc_id, "soft": False},
        )

    # ------------------------------------------------------------------
    # Cache control
    # ------------------------------------------------------------------

    def clear_cache(self, user_id: str | None = None) -> None:
        """Drop the cache and in-flight marker for *user_id* (or every user)."""
        if user_id is None:
            self._cache.invalidate_all()
            self._in_flight.clear()
            return
        self._invalidate(user_id)

    def is_cached(self, user_id: str) -> bool:
        return self._cache.get(user_id) is not None
