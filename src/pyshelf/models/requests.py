"""Request models for repository queries.

These are validated at the library boundary so that repositories and store
implementations can rely on well-formed filters and options.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

FilterOp = Literal[
    "==",
    "!=",
    "<",
    "<=",
    ">",
    ">=",
    "array-contains",
    "array-contains-any",
    "in",
    "not-in",
]
OrderDirection = Literal["asc", "desc"]

T = TypeVar("T")


class FieldFilter(BaseModel):
    """A single ``field <op> value`` predicate."""

    model_config = ConfigDict(frozen=True)

    field: str
    op: FilterOp = "=="
    value: Any = None

    @field_validator("field")
    @classmethod
    def _non_empty_field(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("filter field must be non-empty")
        return name

    def to_wire(self) -> dict[str, Any]:
        return {"field": self.field, "op": self.op, "value": self.value}


class QueryOptions(BaseModel):
    """Ordering and limit for :meth:`Repository.get_with_options`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    order_by_field: str | None = None
    order_direction: OrderDirection = "asc"
    limit_count: PositiveInt | None = None


class PageRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    order_by_field: str = "createdAt"
    order_direction: OrderDirection = "desc"
    limit_count: PositiveInt = Field(default=20)
    after: str | None = Field(default=None, description="Id of the last entity of the previous page")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a cursor-paginated query."""

    items: list[T] = field(default_factory=list)
    last_id: str | None = None
    has_more: bool = False
