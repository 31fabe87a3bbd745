"""Per-collection, per-user entity cache used by :class:`Repository`."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Result of the most recent successful full fetch for one user."""

    items: tuple[T, ...]
    fetched_at: float


@dataclass
class _UserSlot(Generic[T]):
    entry: CacheEntry[T] | None = None
    # Bumped on every invalidation; a fetch started under an older
    # generation must not repopulate the slot.
    generation: int = 0


@dataclass
class CollectionCache(Generic[T]):
    """Cache entries for a single collection, keyed by user id."""

    collection: str
    _slots: dict[str, _UserSlot[T]] = field(default_factory=dict)

    def _slot(self, user_id: str) -> _UserSlot[T]:
        slot = self._slots.get(user_id)
        if slot is None:
            slot = _UserSlot()
            self._slots[user_id] = slot
        return slot

    def get(self, user_id: str) -> CacheEntry[T] | None:
        slot = self._slots.get(user_id)
        return slot.entry if slot is not None else None

    def generation(self, user_id: str) -> int:
        return self._slot(user_id).generation

    def store(self, user_id: str, items: Iterable[T], *, fetched_at: float, generation: int) -> bool:
        """Replace the entry atomically unless it was invalidated since *generation*."""
        slot = self._slot(user_id)
        if slot.generation != generation:
            return False
        slot.entry = CacheEntry(items=tuple(items), fetched_at=fetched_at)
        return True

    def invalidate(self, user_id: str) -> None:
        slot = self._slot(user_id)
        slot.entry = None
        slot.generation += 1

    def invalidate_all(self) -> None:
        for slot in self._slots.values():
            slot.entry = None
            slot.generation += 1

    def users(self) -> list[str]:
        return [user_id for user_id, slot in self._slots.items() if slot.entry is not None]
