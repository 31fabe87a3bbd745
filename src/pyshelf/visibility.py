"""Visibility-driven refresh coordination.

A :class:`VisibilityRefreshCoordinator` listens to a host visibility signal
and, when the page becomes visible again, asks :func:`pyshelf.policy.should_refresh`
whether to invoke its refresh callback. Coordinators hold their own state,
so several can run side by side.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import Any, Protocol

from pyshelf.policy import should_refresh
from pyshelf.settings import SyncSettings, SyncSettingsStore

_logger = logging.getLogger(__name__)

VisibilityListener = Callable[[], None]
RefreshCallback = Callable[[], Awaitable[Any] | None]
SettingsProvider = Callable[[], SyncSettings]


class VisibilitySignal(Protocol):
    """Host "is the page hidden" flag plus change notification.

    The coordinator treats it as level-triggered: on every notification it
    re-reads :attr:`is_hidden` instead of trusting the event itself.
    """

    @property
    def is_hidden(self) -> bool:
        ...

    def add_listener(self, callback: VisibilityListener) -> None:
        ...

    def remove_listener(self, callback: VisibilityListener) -> None:
        ...


class ManualVisibilitySignal:
    """In-process signal for hosts that push visibility changes explicitly."""

    def __init__(self, hidden: bool = False) -> None:
        self._hidden = hidden
        self._listeners: list[VisibilityListener] = []

    @property
    def is_hidden(self) -> bool:
        return self._hidden

    def set_hidden(self, hidden: bool) -> None:
        self._hidden = hidden
        for listener in list(self._listeners):
            listener()

    def add_listener(self, callback: VisibilityListener) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: VisibilityListener) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass


@dataclass
class VisibilityState:
    is_hidden: bool = False
    hidden_since: float | None = None
    last_refresh_at: float = 0.0


class VisibilityRefreshCoordinator:
    """Fire a refresh callback when the page returns from a long enough absence.

    Parameters
    ----------
    signal : VisibilitySignal
        Host visibility flag and change notifications.
    refresh : callable
        Invoked with no arguments; may return an awaitable, which is scheduled
        on the running loop and not awaited by the coordinator.
    settings : callable returning SyncSettings
        Read on every transition so that settings changes apply immediately.
    clock : callable
        Seconds since the epoch; injectable for tests.
    """

    def __init__(
        self,
        signal: VisibilitySignal,
        refresh: RefreshCallback,
        settings: SettingsProvider = SyncSettingsStore.defaults,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signal = signal
        self._refresh = refresh
        self._settings = settings
        self._clock = clock
        self._state = VisibilityState()
        self._active = False
        self._pending: set[asyncio.Future[Any]] = set()

    @property
    def state(self) -> VisibilityState:
        return replace(self._state)

    @property
    def last_refresh_at(self) -> float:
        return self._state.last_refresh_at

    @property
    def is_active(self) -> bool:
        return self._active

    def mark_refreshed(self, at: float | None = None) -> None:
        """Record a refresh done elsewhere (e.g. a manual reload) for the cooldown."""
        self._state.last_refresh_at = self._clock() if at is None else at

    def start(self) -> Callable[[], None]:
        """Register with the signal; returns the deregistration handle."""
        if not self._active:
            if self._signal.is_hidden:
                self._state.is_hidden = True
                self._state.hidden_since = self._clock()
            self._signal.add_listener(self.handle_visibility_change)
            self._active = True
        return self.stop

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        self._signal.remove_listener(self.handle_visibility_change)

    def handle_visibility_change(self) -> None:
        if not self._active:
            return

        now = self._clock()
        state = self._state
        if self._signal.is_hidden:
            if not state.is_hidden:
                state.is_hidden = True
                state.hidden_since = now
            return

        if not state.is_hidden:
            return
        hidden_since = state.hidden_since if state.hidden_since is not None else now
        state.is_hidden = False
        state.hidden_since = None

        hidden_duration = now - hidden_since
        since_last_refresh = now - state.last_refresh_at
        if not should_refresh(
            hidden_duration=hidden_duration,
            since_last_refresh=since_last_refresh,
            settings=self._settings(),
        ):
            _logger.debug(
                "Skipping auto-refresh (hidden %.1fs, %.1fs since last refresh)",
                hidden_duration,
                since_last_refresh,
            )
            return

        # Stamp before invoking so a slow callback cannot be re-triggered.
        state.last_refresh_at = now
        _logger.debug("Auto-refresh after %.1fs hidden", hidden_duration)
        self._invoke_refresh()

    def _invoke_refresh(self) -> None:
        try:
            result = self._refresh()
        except Exception:
            _logger.error("Auto-refresh failed", exc_info=True)
            return

        if not inspect.isawaitable(result):
            return
        try:
            future = asyncio.ensure_future(result, loop=asyncio.get_running_loop())
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            _logger.error("Auto-refresh returned an awaitable but no event loop is running")
            return
        self._pending.add(future)
        future.add_done_callback(self._on_refresh_done)

    def _on_refresh_done(self, future: asyncio.Future[Any]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            _logger.error("Auto-refresh failed", exc_info=exc)


def setup_visibility_refresh(
    signal: VisibilitySignal,
    refresh: RefreshCallback,
    settings: SettingsProvider | SyncSettingsStore | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> Callable[[], None]:
    """Create and start a coordinator; returns its deregistration handle."""
    if settings is None:
        provider: SettingsProvider = SyncSettingsStore.defaults
    elif isinstance(settings, SyncSettingsStore):
        provider = settings.load
    else:
        provider = settings
    coordinator = VisibilityRefreshCoordinator(signal, refresh, provider, clock=clock)
    return coordinator.start()
