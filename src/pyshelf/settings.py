"""Persisted auto-refresh preferences.

Settings live as one JSON document under a single key of a string
key-value collaborator (any ``MutableMapping[str, str]``). Reads merge the
stored values over the defaults; unreadable data falls back to defaults.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from collections.abc import Iterator, MutableMapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pyshelf._constants import DEFAULT_COOLDOWN_PERIOD_S, DEFAULT_HIDDEN_THRESHOLD_S, SYNC_SETTINGS_KEY

_logger = logging.getLogger(__name__)


class SyncSettings(BaseModel):
    """Auto-refresh policy.

    Parameters
    ----------
    auto_refresh_enabled : bool
        Refresh data when the page becomes visible again.
    hidden_threshold : float
        Minimum seconds hidden before a refresh is considered.
    cooldown_period : float
        Minimum seconds between two automatic refreshes.
    suggestions_first : bool
        Show external suggestions before the user's own items in pickers.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    auto_refresh_enabled: bool = True
    hidden_threshold: float = Field(default=DEFAULT_HIDDEN_THRESHOLD_S, ge=0)
    cooldown_period: float = Field(default=DEFAULT_COOLDOWN_PERIOD_S, ge=0)
    suggestions_first: bool = False


class SyncSettingsStore:
    """Load/save :class:`SyncSettings` through a key-value storage."""

    def __init__(self, storage: MutableMapping[str, str], *, key: str = SYNC_SETTINGS_KEY) -> None:
        self._storage = storage
        self._key = key

    @staticmethod
    def defaults() -> SyncSettings:
        return SyncSettings()

    def load(self) -> SyncSettings:
        try:
            raw = self._storage.get(self._key)
            if raw is None:
                return SyncSettings()
            stored = json.loads(raw)
            if not isinstance(stored, dict):
                raise ValueError(f"expected a JSON object, got {type(stored).__name__}")
            return SyncSettings.model_validate(stored)
        except (OSError, ValueError) as exc:
            _logger.warning("Ignoring unreadable sync settings: %s", exc)
            return SyncSettings()

    def save(self, **changes: Any) -> SyncSettings:
        """Merge *changes* (snake_case names) into the stored settings."""
        current = self.load().model_dump()
        updated = SyncSettings.model_validate({**current, **changes})
        self._storage[self._key] = updated.model_dump_json(by_alias=True)
        return updated

    def reset(self) -> None:
        with contextlib.suppress(KeyError):
            del self._storage[self._key]


class JsonFileStorage(MutableMapping[str, str]):
    """A string key-value mapping persisted as one JSON object on disk."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        data = json.loads(text) if text.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"{self._path} does not hold a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=f".{self._path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def __getitem__(self, key: str) -> str:
        return self._read()[key]

    def _read_for_write(self) -> tuple[dict[str, str], bool]:
        """Current contents, or an empty mapping (flagged) when unreadable."""
        try:
            return self._read(), False
        except ValueError as exc:
            _logger.warning("Overwriting unreadable settings file %s: %s", self._path, exc)
            return {}, True

    def __setitem__(self, key: str, value: str) -> None:
        data, _ = self._read_for_write()
        data[key] = value
        self._write(data)

    def __delitem__(self, key: str) -> None:
        data, unreadable = self._read_for_write()
        if unreadable:
            self._write(data)
            return
        del data[key]
        self._write(data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._read())

    def __len__(self) -> int:
        return len(self._read())
