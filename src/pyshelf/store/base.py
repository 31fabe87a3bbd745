"""Remote document store boundary.

The store is an external collaborator: a per-user, per-collection document
database. Repositories only depend on this structural interface, which makes
it easy to pass test doubles while keeping :class:`HttpRemoteStore` concrete.
Every failure must surface as :class:`pyshelf.exceptions.RemoteUnavailableError`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from pyshelf.models.requests import FieldFilter, OrderDirection

Record = dict[str, Any]
"""A raw document: ``{"id": ..., **fields}``."""


class RemoteStore(Protocol):
    """Structural interface of the remote document store."""

    async def get(self, user_id: str, collection: str, doc_id: str) -> Record | None:
        ...

    async def query(
        self,
        user_id: str,
        collection: str,
        *,
        filters: Sequence[FieldFilter] = (),
        order_by: str | None = None,
        direction: OrderDirection = "asc",
        limit: int | None = None,
        start_after: str | None = None,
    ) -> list[Record]:
        ...

    async def insert(self, user_id: str, collection: str, data: Mapping[str, Any]) -> str:
        ...

    async def update(self, user_id: str, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        ...

    async def delete(self, user_id: str, collection: str, doc_id: str) -> None:
        ...

    async def count(self, user_id: str, collection: str) -> int:
        ...
