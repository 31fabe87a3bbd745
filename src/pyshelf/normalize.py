"""Text normalization used for name lookups and duplicate detection."""

from __future__ import annotations

import re
import unicodedata

_APOSTROPHES = re.compile(r"['‘’`´]")
_NON_WORD = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")
_ISBN_PREFIX = re.compile(r"^isbn[-:\s]*(10|13)?[-:\s]*", re.IGNORECASE)
_ISBN_SEPARATORS = re.compile(r"[-\s]")
_ISBN_10 = re.compile(r"^\d{9}[\dX]$")
_ISBN_13 = re.compile(r"^\d{13}$")


def normalize_text(text: str | None) -> str:
    """Fold *text* for equality comparison.

    Case-folds, strips diacritics, drops apostrophes, turns remaining
    punctuation into spaces and collapses whitespace, so that
    ``"J.R.R. Tolkien"`` and ``"j r r tolkien"`` compare equal.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _APOSTROPHES.sub("", stripped)
    stripped = _NON_WORD.sub(" ", stripped)
    return _WHITESPACE.sub(" ", stripped).strip()


def normalize_genre_name(name: str | None) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    if not name:
        return ""
    return _WHITESPACE.sub(" ", name.lower().strip())


def clean_isbn(value: str | None) -> str:
    """Strip an ``ISBN[-10|-13]:`` prefix, dashes and spaces."""
    if not value:
        return ""
    return _ISBN_SEPARATORS.sub("", _ISBN_PREFIX.sub("", value.strip())).upper()



def is_isbn(value: str | None) -> bool:
    """Return ``True`` when *value* looks like an ISBN-10 or ISBN-13."""
    cleaned = clean_isbn(value)
    return bool(_ISBN_10.match(cleaned) or _ISBN_13.match(cleaned))
