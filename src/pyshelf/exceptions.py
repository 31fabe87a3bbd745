"""Custom exception hierarchy for pyshelf."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyshelf.models.duplicates import DuplicateMatch


class ShelfError(Exception):
    """Base exception for all pyshelf errors."""


class ShelfConfigError(ShelfError):
    """Invalid or missing configuration."""


class RemoteUnavailableError(ShelfError):
    """A remote store call failed (network, quota, permission, bad payload).

    Repository operations propagate this to the caller unchanged and leave
    any existing cache untouched.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        collection: str = "",
    ) -> None:
        self.status_code = status_code
        self.collection = collection
        super().__init__(message)


class InvalidRecordError(ShelfError):
    """A stored document could not be read as its entity model.

    The store call itself succeeded; the document's content is at fault.
    """

    def __init__(self, message: str, *, collection: str = "", entity_id: str = "") -> None:
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(message)


class EntityNotFoundError(ShelfError):
    """The referenced entity does not exist in its collection."""

    def __init__(self, message: str, *, collection: str = "", entity_id: str = "") -> None:
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(message)


class DuplicateFoundError(ShelfError):
    """A write was refused because a matching entity already exists.

    Raised by callers of :class:`pyshelf.duplicates.DuplicateDetector`,
    never by the detector itself.
    """

    def __init__(self, message: str, *, match: DuplicateMatch | None = None) -> None:
        self.match = match
        super().__init__(message)


class SeriesPositionTakenError(ShelfError):
    """Another active book already occupies the requested series position."""

    def __init__(self, message: str, *, series_id: str = "", position: float | None = None) -> None:
        self.series_id = series_id
        self.position = position
        super().__init__(message)
