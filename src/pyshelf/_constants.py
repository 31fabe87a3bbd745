"""Internal constants shared across the library."""

USER_AGENT = "pyshelf/1 (+aiohttp)"

# Well-known collection names under /users/{uid}/.
BOOKS_COLLECTION = "books"
GENRES_COLLECTION = "genres"
SERIES_COLLECTION = "series"
WISHLIST_COLLECTION = "wishlist"

# Max entities scanned for a title/author duplicate (bounds remote read cost).
DUPLICATE_CHECK_LIMIT = 200

# Days a soft-deleted book stays in the bin before it may be purged.
BIN_RETENTION_DAYS = 30

_DAY_MS = 24 * 60 * 60 * 1000

SYNC_SETTINGS_KEY = "pyshelf_sync_settings"
DEFAULT_HIDDEN_THRESHOLD_S = 30.0
DEFAULT_COOLDOWN_PERIOD_S = 300.0


def days_to_ms(days: float) -> int:
    """Convert a whole/partial day count to milliseconds."""
    return int(days * _DAY_MS)
