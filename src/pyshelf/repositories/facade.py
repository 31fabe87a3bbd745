"""Composition helpers shared by the specialized repositories.

A specialization wraps a :class:`Repository` (``.base``) rather than
subclassing it, so the cache/coalescing logic stays independent of any one
entity's fields.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Generic, TypeVar

from pyshelf.models._base import Entity
from pyshelf.models.requests import Page, PageRequest, QueryOptions
from pyshelf.repositories.base import Repository

_logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class RepositoryFacade(Generic[E]):
    """Delegates the generic contract to a wrapped base repository."""

    def __init__(self, base: Repository[E]) -> None:
        self.base = base

    @property
    def collection(self) -> str:
        return self.base.collection

    async def get_all(self, user_id: str, force_refresh: bool = False) -> list[E]:
        return await self.base.get_all(user_id, force_refresh)

    async def get_by_id(self, user_id: str, doc_id: str) -> E | None:
        return await self.base.get_by_id(user_id, doc_id)

    async def get_with_options(self, user_id: str, options: QueryOptions | None = None, **kwargs: Any) -> list[E]:
        return await self.base.get_with_options(user_id, options, **kwargs)

    async def get_paginated(self, user_id: str, request: PageRequest | None = None, **kwargs: Any) -> Page[E]:
        return await self.base.get_paginated(user_id, request, **kwargs)

    async def get_count(self, user_id: str) -> int:
        return await self.base.get_count(user_id)

    async def add(self, user_id: str, data: Mapping[str, Any]) -> E:
        return await self.base.add(user_id, data)

    async def update(self, user_id: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self.base.update(user_id, doc_id, fields)

    async def remove(self, user_id: str, doc_id: str) -> None:
        await self.base.remove(user_id, doc_id)

    def clear_cache(self, user_id: str | None = None) -> None:
        self.base.clear_cache(user_id)

    async def _increment_counter(self, user_id: str, doc_id: str, field: str, delta: int) -> int | None:
        """Clamped read-modify-write of a numeric counter field.

        Not atomic: concurrent increments on the same entity can lose updates.
        Returns the written value, or ``None`` when the entity is missing.
        """
        entity = await self.base.get_by_id(user_id, doc_id)
        if entity is None:
            _logger.debug("Counter %s on missing %s/%s ignored", field, self.collection, doc_id)
            return None
        current = entity.get(field) or 0
        new_value = max(0, int(current) + delta)
        await self.base.update(user_id, doc_id, {field: new_value})
        return new_value


class SoftDeleteFacade(RepositoryFacade[E]):
    """Adds ``deletedAt``-based soft delete on top of :class:`RepositoryFacade`."""

    def __init__(
        self,
        base: Repository[E],
        *,
        deleted_event: str | None = None,
        restored_event: str | None = None,
    ) -> None:
        super().__init__(base)
        self._deleted_event = deleted_event
        self._restored_event = restored_event

    def _emit(self, event: str | None, payload: dict[str, Any]) -> None:
        bus = self.base.event_bus
        if bus is not None and event is not None:
            bus.emit(event, payload)

    async def get_active(self, user_id: str, force_refresh: bool = False) -> list[E]:
        return [item for item in await self.base.get_all(user_id, force_refresh) if not item.is_deleted]

    async def get_deleted(self, user_id: str, force_refresh: bool = False) -> list[E]:
        return [item for item in await self.base.get_all(user_id, force_refresh) if item.is_deleted]

    async def soft_delete(self, user_id: str, doc_id: str) -> None:
        await self.base.update(user_id, doc_id, {"deletedAt": self.base.now_ms()}, notify=False)
        self._emit(
            self._deleted_event,
            {"collection": self.collection, "user_id": user_id, "id": doc_id, "soft": True},
        )

    async def restore(self, user_id: str, doc_id: str, extra: Mapping[str, Any] | None = None) -> None:
        """Clear ``deletedAt``; *extra* fields are written in the same update."""
        fields: dict[str, Any] = dict(extra or {})
        fields["deletedAt"] = None
        await self.base.update(user_id, doc_id, fields, notify=False)
        self._emit(
            self._restored_event,
            {"collection": self.collection, "user_id": user_id, "id": doc_id},
        )
