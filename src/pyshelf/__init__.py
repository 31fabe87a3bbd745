"""pyshelf - Async Python client for a personal book library backed by a remote document store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyshelf")
except PackageNotFoundError:
    __version__ = "0+local"
from pyshelf.client import ShelfClient
from pyshelf.config import ShelfConfig
from pyshelf.duplicates import DuplicateDetector
from pyshelf.events import EventBus, ShelfEvent
from pyshelf.exceptions import (
    DuplicateFoundError,
    EntityNotFoundError,
    InvalidRecordError,
    RemoteUnavailableError,
    SeriesPositionTakenError,
    ShelfConfigError,
    ShelfError,
)
from pyshelf.invalidation import CacheInvalidator
from pyshelf.models import (
    Book,
    DuplicateMatch,
    Entity,
    FieldFilter,
    Genre,
    MatchKind,
    Page,
    PageRequest,
    QueryOptions,
    Series,
    WishlistItem,
)
from pyshelf.repositories import (
    BinService,
    BookRepository,
    GenreRepository,
    Repository,
    SeriesRepository,
    WishlistRepository,
)
from pyshelf.settings import JsonFileStorage, SyncSettings, SyncSettingsStore
from pyshelf.store import HttpRemoteStore, RemoteStore
from pyshelf.visibility import (
    ManualVisibilitySignal,
    VisibilityRefreshCoordinator,
    VisibilitySignal,
    setup_visibility_refresh,
)

__all__ = [
    "__version__",
    "BinService",
    "Book",
    "BookRepository",
    "CacheInvalidator",
    "DuplicateDetector",
    "DuplicateFoundError",
    "DuplicateMatch",
    "Entity",
    "EntityNotFoundError",
    "EventBus",
    "FieldFilter",
    "Genre",
    "GenreRepository",
    "HttpRemoteStore",
    "InvalidRecordError",
    "JsonFileStorage",
    "ManualVisibilitySignal",
    "MatchKind",
    "Page",
    "PageRequest",
    "QueryOptions",
    "RemoteStore",
    "RemoteUnavailableError",
    "Repository",
    "Series",
    "SeriesPositionTakenError",
    "SeriesRepository",
    "ShelfClient",
    "ShelfConfig",
    "ShelfConfigError",
    "ShelfError",
    "ShelfEvent",
    "SyncSettings",
    "SyncSettingsStore",
    "VisibilityRefreshCoordinator",
    "VisibilitySignal",
    "WishlistItem",
    "WishlistRepository",
    "setup_visibility_refresh",
]
