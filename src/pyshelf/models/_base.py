"""Base model for documents held in the remote store.

Every entity model inherits from :class:`Entity` which provides:

* ``alias_generator=to_camel`` so camelCase store keys map
  automatically to snake_case fields.
* ``extra="allow"`` so fields the library does not know about survive
  a read and are available through :meth:`Entity.get`.
* Timestamp coercion to epoch milliseconds for ``createdAt``,
  ``updatedAt`` and ``deletedAt``.
* A ``model_validator(mode="before")`` that drops ``null`` for fields
  with a non-``None`` default, so legacy documents still load.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Annotated, Any, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp_ms(value: Any) -> int | None:
    """Coerce a store timestamp to epoch milliseconds.

    Accepts epoch seconds or milliseconds, :class:`datetime` instances and
    ISO-8601 strings. Returns ``None`` for ``None``/empty values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("timestamp must not be a boolean")
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return int(value.timestamp() * 1000)
    if isinstance(value, str):
        stripped = value.strip()
        try:
            value = float(stripped)
        except ValueError:
            parsed = datetime.fromisoformat(stripped.replace("Z", "+00:00"))
            return parse_timestamp_ms(parsed)
    ts = float(value)
    if ts < _MS_THRESHOLD:
        ts *= 1000
    return int(ts)


ShelfTimestamp = Annotated[int | None, BeforeValidator(parse_timestamp_ms)]
"""Annotated type that coerces store timestamps to epoch milliseconds."""


class ShelfBaseModel(BaseModel):
    """Frozen camelCase model shared by entities and request payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class Entity(ShelfBaseModel):
    """A uniquely identified document in one collection.

    ``id`` is assigned by the store on creation. A non-null ``deleted_at``
    marks a soft-deleted entity.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    created_at: ShelfTimestamp = None
    updated_at: ShelfTimestamp = None
    deleted_at: ShelfTimestamp = None

    @model_validator(mode="before")
    @classmethod
    def _drop_null_defaults(cls, values: Any) -> Any:
        """Drop ``null`` for fields whose default is not ``None``.

        Legacy documents may store ``null`` for lists, counters or titles;
        the field default applies instead of failing validation.
        """
        if not isinstance(values, dict):
            return values
        defaulted: set[str] = set()
        for name, info in cls.model_fields.items():
            if info.is_required() or (info.default_factory is None and info.default is None):
                continue
            defaulted.add(name)
            if info.alias:
                defaulted.add(info.alias)
        return {key: value for key, value in values.items() if value is not None or key not in defaulted}

    @classmethod
    def from_record(cls, doc_id: str, data: Mapping[str, Any]) -> Self:
        """Build an entity from a raw store record and its id."""
        return cls.model_validate({**data, "id": doc_id})

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def get(self, key: str, default: Any = None) -> Any:
        """Read a field by store (camelCase) or attribute name."""
        fields = type(self).model_fields
        if key in fields:
            return getattr(self, key)
        for name, info in fields.items():
            if info.alias == key:
                return getattr(self, name)
        extra = self.model_extra or {}
        return extra.get(key, default)

    def to_record(self) -> dict[str, Any]:
        """Dump back to the store's camelCase shape (without ``id``)."""
        return self.model_dump(by_alias=True, exclude={"id"})
