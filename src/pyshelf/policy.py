"""Auto-refresh decision policy.

Pure functions only; timing state lives in :mod:`pyshelf.visibility`.
"""

from __future__ import annotations

from pyshelf.settings import SyncSettings


def should_refresh(
    *,
    hidden_duration: float,
    since_last_refresh: float,
    settings: SyncSettings,
) -> bool:
    """Decide whether returning to a visible page should trigger a refresh.

    Policy:
    - Never when auto-refresh is disabled.
    - Otherwise only if the page was hidden for at least ``hidden_threshold``
      seconds *and* at least ``cooldown_period`` seconds passed since the
      previous refresh.
    """
    if not settings.auto_refresh_enabled:
        return False
    return hidden_duration >= settings.hidden_threshold and since_last_refresh >= settings.cooldown_period
