from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import FakeClock
from pyshelf.settings import SyncSettings, SyncSettingsStore
from pyshelf.visibility import (
    ManualVisibilitySignal,
    VisibilityRefreshCoordinator,
    setup_visibility_refresh,
)


class _Refresh:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def _coordinator(
    clock: FakeClock,
    refresh: _Refresh,
    settings: SyncSettings | None = None,
) -> tuple[ManualVisibilitySignal, VisibilityRefreshCoordinator]:
    signal = ManualVisibilitySignal()
    current = settings or SyncSettings()
    coordinator = VisibilityRefreshCoordinator(signal, refresh, lambda: current, clock=clock)
    coordinator.start()
    return signal, coordinator


def _hide_for(signal: ManualVisibilitySignal, clock: FakeClock, seconds: float) -> None:
    signal.set_hidden(True)
    clock.advance(seconds)
    signal.set_hidden(False)


def test_short_absence_does_not_refresh(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal, coordinator = _coordinator(clock, refresh)

    _hide_for(signal, clock, 10)

    assert refresh.calls == 0
    assert coordinator.last_refresh_at == 0


def test_long_absence_refreshes_once(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal, coordinator = _coordinator(clock, refresh)

    _hide_for(signal, clock, 40)

    assert refresh.calls == 1
    assert coordinator.last_refresh_at == clock.now
    assert not coordinator.state.is_hidden
    assert coordinator.state.hidden_since is None


def test_cooldown_suppresses_second_refresh(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal, _ = _coordinator(clock, refresh)

    _hide_for(signal, clock, 40)
    clock.advance(60)
    _hide_for(signal, clock, 40)
    assert refresh.calls == 1

    clock.advance(300)
    _hide_for(signal, clock, 40)
    assert refresh.calls == 2


def test_disabled_auto_refresh_never_fires(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal, coordinator = _coordinator(clock, refresh, SyncSettings(auto_refresh_enabled=False))

    _hide_for(signal, clock, 4000)

    assert refresh.calls == 0
    assert coordinator.last_refresh_at == 0


def test_repeated_hidden_notifications_keep_first_timestamp(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal, coordinator = _coordinator(clock, refresh)

    signal.set_hidden(True)
    started = clock.now
    clock.advance(20)
    signal.set_hidden(True)

    assert coordinator.state.hidden_since == started
    clock.advance(15)
    signal.set_hidden(False)
    assert refresh.calls == 1


def test_visible_without_prior_hidden_is_ignored(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal, _ = _coordinator(clock, refresh)

    clock.advance(1000)
    signal.set_hidden(False)

    assert refresh.calls == 0


def test_settings_are_read_at_evaluation_time(clock: FakeClock) -> None:
    refresh = _Refresh()
    storage: dict[str, str] = {}
    settings = SyncSettingsStore(storage)
    signal = ManualVisibilitySignal()
    setup_visibility_refresh(signal, refresh, settings, clock=clock)

    signal.set_hidden(True)
    clock.advance(10)
    settings.save(hidden_threshold=5)
    signal.set_hidden(False)

    assert refresh.calls == 1


def test_manual_refresh_counts_towards_cooldown(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal, coordinator = _coordinator(clock, refresh)

    coordinator.mark_refreshed()
    _hide_for(signal, clock, 40)

    assert refresh.calls == 0


def test_deregistration_stops_reacting(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal = ManualVisibilitySignal()
    stop = setup_visibility_refresh(signal, refresh, clock=clock)

    stop()
    stop()
    _hide_for(signal, clock, 40)

    assert refresh.calls == 0


def test_coordinators_keep_independent_state(clock: FakeClock) -> None:
    first, second = _Refresh(), _Refresh()
    signal_a, coordinator_a = _coordinator(clock, first)
    signal_b, _ = _coordinator(clock, second)

    _hide_for(signal_a, clock, 40)
    _hide_for(signal_b, clock, 40)

    assert (first.calls, second.calls) == (1, 1)
    assert coordinator_a.last_refresh_at != 0


def test_start_while_already_hidden_tracks_absence(clock: FakeClock) -> None:
    refresh = _Refresh()
    signal = ManualVisibilitySignal(hidden=True)
    coordinator = VisibilityRefreshCoordinator(signal, refresh, clock=clock)
    coordinator.start()

    clock.advance(40)
    signal.set_hidden(False)

    assert refresh.calls == 1


def test_failing_refresh_is_logged_and_keeps_timestamp(
    clock: FakeClock, caplog: pytest.LogCaptureFixture
) -> None:
    def broken() -> None:
        raise RuntimeError("offline")

    signal = ManualVisibilitySignal()
    coordinator = VisibilityRefreshCoordinator(signal, broken, clock=clock)
    coordinator.start()

    with caplog.at_level(logging.ERROR, logger="pyshelf.visibility"):
        _hide_for(signal, clock, 40)

    assert coordinator.last_refresh_at == clock.now
    assert any("Auto-refresh failed" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_async_refresh_is_scheduled_on_running_loop(clock: FakeClock, caplog: pytest.LogCaptureFixture) -> None:
    done = asyncio.Event()

    async def refresh() -> None:
        done.set()

    async def failing() -> None:
        raise RuntimeError("offline")

    signal = ManualVisibilitySignal()
    setup_visibility_refresh(signal, refresh, clock=clock)
    failing_signal = ManualVisibilitySignal()
    setup_visibility_refresh(failing_signal, failing, clock=clock)

    with caplog.at_level(logging.ERROR, logger="pyshelf.visibility"):
        _hide_for(signal, clock, 40)
        _hide_for(failing_signal, clock, 40)
        await asyncio.wait_for(done.wait(), timeout=1)
        for _ in range(5):
            await asyncio.sleep(0)

    assert any("Auto-refresh failed" in record.getMessage() for record in caplog.records)
