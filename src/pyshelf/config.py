"""Client configuration for pyshelf."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pyshelf._constants import BIN_RETENTION_DAYS, DUPLICATE_CHECK_LIMIT
from pyshelf.exceptions import ShelfConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, cast: type[Any]) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return cast(raw)
    except ValueError as exc:
        raise ShelfConfigError(f"{key} must be a number, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class ShelfConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Root URL of the per-user document store REST API.
    api_token : str or None
        Bearer token sent with every store request. Obtaining it is the
        caller's concern (authentication is handled elsewhere).
    request_timeout : float
        Total timeout in seconds for a single store request.
    duplicate_check_limit : int
        Maximum number of entities scanned by a title/author duplicate check.
    bin_retention_days : int
        Days a soft-deleted book is kept before ``purge_expired`` removes it.
    settings_path : str or None
        JSON file used to persist sync settings. ``None`` keeps them in memory.
    auto_invalidate : bool
        Wire event-bus driven cache invalidation on client start.
    """

    base_url: str = "http://127.0.0.1:8080/v1"
    api_token: str | None = None
    request_timeout: float = 15.0
    duplicate_check_limit: int = DUPLICATE_CHECK_LIMIT
    bin_retention_days: int = BIN_RETENTION_DAYS
    settings_path: str | None = None
    auto_invalidate: bool = True

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ShelfConfigError("base_url must be non-empty")
        if self.request_timeout <= 0:
            raise ShelfConfigError("request_timeout must be positive")
        if self.duplicate_check_limit < 1:
            raise ShelfConfigError("duplicate_check_limit must be at least 1")
        if self.bin_retention_days < 0:
            raise ShelfConfigError("bin_retention_days must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> ShelfConfig:
        """Create configuration from ``SHELF_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "SHELF_BASE_URL": "base_url",
            "SHELF_API_TOKEN": "api_token",
            "SHELF_SETTINGS_PATH": "settings_path",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMBER_MAP: dict[str, tuple[str, type[Any]]] = {
            "SHELF_REQUEST_TIMEOUT": ("request_timeout", float),
            "SHELF_DUPLICATE_CHECK_LIMIT": ("duplicate_check_limit", int),
            "SHELF_BIN_RETENTION_DAYS": ("bin_retention_days", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMBER_MAP.items():
            if field_name in overrides:
                continue
            value = _env_number(env, env_key, cast)
            if value is not None:
                config_kwargs[field_name] = value

        if "auto_invalidate" not in overrides:
            config_kwargs["auto_invalidate"] = _env_bool(env.get("SHELF_AUTO_INVALIDATE"), True)

        config_kwargs.update(overrides)
        return cls(**config_kwargs)
