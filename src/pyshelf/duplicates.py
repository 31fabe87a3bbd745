"""Cost-bounded duplicate detection.

Two tiers:

1. When a natural key (ISBN) is supplied, it is cleaned of prefixes and
   separators and looked up with an indexed equality query limited to one
   result. A hit is a ``natural-key`` match.
2. Otherwise, or on a miss, at most ``limit`` entities are fetched and
   compared on the normalized title *and* author. The first joint match is a
   ``normalized-identity`` match.

The cap bounds remote read cost on large libraries: duplicates outside the
scanned window are not detected. The detector only reports; raising
:class:`pyshelf.exceptions.DuplicateFoundError` is the caller's decision.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Generic, TypeVar

from pyshelf._constants import DUPLICATE_CHECK_LIMIT
from pyshelf.models._base import Entity
from pyshelf.models.duplicates import DuplicateMatch, MatchKind
from pyshelf.normalize import clean_isbn, normalize_text

if TYPE_CHECKING:
    from pyshelf.repositories.base import Repository

_logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


def _as_text(value: object) -> str | None:
    return None if value is None else str(value)


class DuplicateDetector(Generic[E]):
    def __init__(
        self,
        repository: Repository[E],
        *,
        key_field: str = "isbn",
        text_fields: tuple[str, str] = ("title", "author"),
        limit: int = DUPLICATE_CHECK_LIMIT,
        key_cleaner: Callable[[str], str] = clean_isbn,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._repository = repository
        self._key_field = key_field
        self._title_field, self._author_field = text_fields
        self._limit = limit
        self._clean_key = key_cleaner

    @property
    def limit(self) -> int:
        return self._limit

    async def check_for_duplicate(
        self,
        user_id: str,
        natural_key: str | None,
        title: str | None,
        author: str | None,
    ) -> DuplicateMatch:
        key = self._clean_key(natural_key) if natural_key else ""
        if key:
            hits = await self._repository.query_by_field(user_id, self._key_field, "==", key, limit=1)
            if hits:
                return DuplicateMatch(is_duplicate=True, match_kind=MatchKind.NATURAL_KEY, matched_entity=hits[0])

        wanted_title = normalize_text(title)
        wanted_author = normalize_text(author)
        if not wanted_title and not wanted_author:
            return DuplicateMatch.none()

        candidates = await self._repository.query(user_id, limit=self._limit)
        for candidate in candidates[: self._limit]:
            if (
                normalize_text(_as_text(candidate.get(self._title_field))) == wanted_title
                and normalize_text(_as_text(candidate.get(self._author_field))) == wanted_author
            ):
                return DuplicateMatch(
                    is_duplicate=True,
                    match_kind=MatchKind.NORMALIZED_IDENTITY,
                    matched_entity=candidate,
                )

        _logger.debug(
            "No duplicate in %s for user %s (scanned %d of cap %d)",
            self._repository.collection,
            user_id,
            len(candidates),
            self._limit,
        )
        return DuplicateMatch.none()
