"""In-process publish/subscribe bus.

Repositories emit on the bus after every mutation; caches, views and other
consumers subscribe without holding references to the writer. One bus is
normally shared by a :class:`pyshelf.client.ShelfClient`, but isolated
instances can be created freely (tests do).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

_logger = logging.getLogger(__name__)

EventCallback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class ShelfEvent(StrEnum):
    """Well-known event names. The bus itself accepts any string."""

    BOOK_SAVED = "book:saved"
    BOOK_DELETED = "book:deleted"
    BOOK_RESTORED = "book:restored"
    BOOKS_REFRESHED = "books:refreshed"

    GENRE_CREATED = "genre:created"
    GENRE_UPDATED = "genre:updated"
    GENRE_DELETED = "genre:deleted"
    GENRES_CHANGED = "genres:changed"

    SERIES_CREATED = "series:created"
    SERIES_UPDATED = "series:updated"
    SERIES_DELETED = "series:deleted"
    SERIES_SELECTION_CHANGED = "series:selectionChanged"

    WISHLIST_UPDATED = "wishlist:updated"

    FORM_DIRTY = "form:dirty"
    FORM_CLEAN = "form:clean"
    FORM_SUBMITTED = "form:submitted"

    MODAL_OPENED = "modal:opened"
    MODAL_CLOSED = "modal:closed"
    TOAST_SHOWN = "toast:shown"

    AUTH_STATE_CHANGED = "auth:stateChanged"
    USER_LOGGED_IN = "auth:loggedIn"
    USER_LOGGED_OUT = "auth:loggedOut"

    SYNC_STARTED = "sync:started"
    SYNC_COMPLETED = "sync:completed"
    SYNC_FAILED = "sync:failed"


@dataclass(slots=True, eq=False)
class _Listener:
    callback: EventCallback
    once: bool = False
    fired: bool = False


class EventBus:
    """Synchronous publish/subscribe registry.

    Usage::

        bus = EventBus()
        unsubscribe = bus.on(ShelfEvent.BOOK_SAVED, lambda payload: ...)
        bus.emit(ShelfEvent.BOOK_SAVED, {"id": "abc"})
        unsubscribe()
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[_Listener]] = {}

    def _register(self, event: str, callback: EventCallback, *, once: bool) -> Unsubscribe:
        entry = _Listener(callback=callback, once=once)
        self._listeners.setdefault(event, []).append(entry)

        def unsubscribe() -> None:
            self._remove_entry(event, entry)

        return unsubscribe

    def _remove_entry(self, event: str, entry: _Listener) -> None:
        listeners = self._listeners.get(event)
        if listeners is None:
            return
        for index, candidate in enumerate(listeners):
            if candidate is entry:
                del listeners[index]
                break
        if not listeners:
            del self._listeners[event]

    def on(self, event: str, callback: EventCallback) -> Unsubscribe:
        """Subscribe *callback* to *event*; returns an idempotent unsubscribe."""
        return self._register(event, callback, once=False)

    def once(self, event: str, callback: EventCallback) -> Unsubscribe:
        """Subscribe for a single delivery; removed before it is invoked."""
        return self._register(event, callback, once=True)

    def off(self, event: str, callback: EventCallback) -> None:
        """Remove the earliest registration of *callback* for *event*, if any."""
        for entry in self._listeners.get(event, ()):
            if entry.callback == callback:
                self._remove_entry(event, entry)
                return

    def emit(self, event: str, payload: Any = None) -> None:
        """Invoke every listener registered for *event* at call time.

        Listeners run synchronously in registration order against a snapshot,
        so (un)subscribing during dispatch only affects later emits. A
        listener that raises is logged and skipped.
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return

        for entry in list(listeners):
            if entry.once:
                if entry.fired:
                    continue
                entry.fired = True
                self._remove_entry(event, entry)
            try:
                entry.callback(payload)
            except Exception:
                _logger.error("Error in event handler for %r", str(event), exc_info=True)

    def has_listeners(self, event: str) -> bool:
        return self.listener_count(event) > 0

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def clear(self, event: str | None = None) -> None:
        """Remove all listeners for *event*, or for every event."""
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def event_names(self) -> list[str]:
        return [str(name) for name in self._listeners]
