"""JSON-over-HTTP implementation of :class:`pyshelf.store.base.RemoteStore`."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import quote

import aiohttp

from pyshelf._constants import USER_AGENT
from pyshelf._redact import redact_for_log, redact_headers
from pyshelf.config import ShelfConfig
from pyshelf.exceptions import RemoteUnavailableError
from pyshelf.models.requests import FieldFilter, OrderDirection
from pyshelf.store.base import Record

_logger = logging.getLogger(__name__)


class HttpRemoteStore:
    """Remote store client speaking a small REST dialect.

    Resources live under ``{base_url}/users/{uid}/{collection}``:

    * ``GET    …/{collection}/{id}``  point read (404 means absent)
    * ``POST   …/{collection}:query`` filtered/ordered/limited query
    * ``GET    …/{collection}:count`` document count
    * ``POST   …/{collection}``       insert, replies ``{"id": ...}``
    * ``PATCH  …/{collection}/{id}``  shallow merge update
    * ``DELETE …/{collection}/{id}``  delete
    """

    def __init__(self, config: ShelfConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _collection_url(self, user_id: str, collection: str) -> str:
        base = self._config.base_url.rstrip("/")
        return f"{base}/users/{quote(user_id, safe='')}/{quote(collection, safe='')}"

    def _doc_url(self, user_id: str, collection: str, doc_id: str) -> str:
        return f"{self._collection_url(user_id, collection)}/{quote(doc_id, safe='')}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json; charset=UTF-8",
            "user-agent": USER_AGENT,
        }
        if self._config.api_token:
            headers["authorization"] = f"Bearer {self._config.api_token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        collection: str,
        payload: Mapping[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        body = json.dumps(payload, separators=(",", ":")) if payload is not None else None
        headers = self._headers()
        _logger.debug(
            "%s %s headers=%s payload=%s",
            method,
            url,
            redact_headers(headers),
            redact_for_log(payload),
        )

        try:
            async with self._http.request(
                method,
                url,
                data=body,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if allow_not_found and resp.status == 404:
                    return None
                if not 200 <= resp.status < 300:
                    raise RemoteUnavailableError(
                        f"HTTP {resp.status} from {method} {collection}: {text[:200]}",
                        status_code=resp.status,
                        collection=collection,
                    )
        except RemoteUnavailableError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise RemoteUnavailableError(
                f"{method} {collection} failed: {exc!r}",
                collection=collection,
            ) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise RemoteUnavailableError(
                f"Invalid JSON from {method} {collection}: {text[:200]}",
                collection=collection,
            ) from exc

    @staticmethod
    def _as_record(value: Any, *, collection: str) -> Record:
        if not isinstance(value, dict) or not isinstance(value.get("id"), str):
            raise RemoteUnavailableError(
                f"Malformed document from {collection}: {str(value)[:200]}",
                collection=collection,
            )
        return value

    async def get(self, user_id: str, collection: str, doc_id: str) -> Record | None:
        data = await self._request(
            "GET",
            self._doc_url(user_id, collection, doc_id),
            collection=collection,
            allow_not_found=True,
        )
        if data is None:
            return None
        return self._as_record(data, collection=collection)

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
        payload: dict[str, Any] = {"filters": [f.to_wire() for f in filters]}
        if order_by:
            payload["orderBy"] = {"field": order_by, "direction": direction}
        if limit is not None:
            payload["limit"] = limit
        if start_after is not None:
            payload["startAfter"] = start_after

        data = await self._request(
            "POST",
            f"{self._collection_url(user_id, collection)}:query",
            collection=collection,
            payload=payload,
        )
        documents = data.get("documents") if isinstance(data, dict) else data
        if not isinstance(documents, list):
            raise RemoteUnavailableError(
                f"Query on {collection} returned no document list",
                collection=collection,
            )
        return [self._as_record(item, collection=collection) for item in documents]

    async def insert(self, user_id: str, collection: str, data: Mapping[str, Any]) -> str:
        reply = await self._request(
            "POST",
            self._collection_url(user_id, collection),
            collection=collection,
            payload=dict(data),
        )
        doc_id = reply.get("id") if isinstance(reply, dict) else None
        if not isinstance(doc_id, str) or not doc_id:
            raise RemoteUnavailableError(f"Insert into {collection} returned no id", collection=collection)
        return doc_id

    async def update(self, user_id: str, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self._request(
            "PATCH",
            self._doc_url(user_id, collection, doc_id),
            collection=collection,
            payload=dict(fields),
        )

    async def delete(self, user_id: str, collection: str, doc_id: str) -> None:
        await self._request("DELETE", self._doc_url(user_id, collection, doc_id), collection=collection)

    async def count(self, user_id: str, collection: str) -> int:
        reply = await self._request(
            "GET",
            f"{self._collection_url(user_id, collection)}:count",
            collection=collection,
        )
        value = reply.get("count") if isinstance(reply, dict) else reply
        if isinstance(value, bool) or not isinstance(value, int):
            raise RemoteUnavailableError(f"Count on {collection} returned {value!r}", collection=collection)
        return value
