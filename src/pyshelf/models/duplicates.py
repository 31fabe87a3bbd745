"""Result model for duplicate checks."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from pyshelf.models._base import Entity


class MatchKind(StrEnum):
    NATURAL_KEY = "natural-key"
    NORMALIZED_IDENTITY = "normalized-identity"
    NONE = "none"


class DuplicateMatch(BaseModel):
    """Outcome of :meth:`pyshelf.duplicates.DuplicateDetector.check_for_duplicate`."""

    model_config = ConfigDict(frozen=True)

    is_duplicate: bool
    match_kind: MatchKind = MatchKind.NONE
    matched_entity: Entity | None = None

    @classmethod
    def none(cls) -> DuplicateMatch:
        return cls(is_duplicate=False, match_kind=MatchKind.NONE, matched_entity=None)
