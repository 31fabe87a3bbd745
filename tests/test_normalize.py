from __future__ import annotations

import pytest

from pyshelf.normalize import clean_isbn, is_isbn, normalize_genre_name, normalize_text


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("  The   Hobbit ", "the hobbit"),
        ("J.R.R. Tolkien", "j r r tolkien"),
        ("Émile Zola", "emile zola"),
        ("Ender’s Game", "enders game"),
        ("snake_case-title!", "snake case title"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_text(raw: str | None, expected: str) -> None:
    assert normalize_text(raw) == expected


def test_normalize_genre_name_keeps_punctuation() -> None:
    assert normalize_genre_name("  Sci-Fi   &  Fantasy ") == "sci-fi & fantasy"
    assert normalize_genre_name(None) == ""


def test_clean_isbn_strips_prefix_and_separators() -> None:
    assert clean_isbn("ISBN-13: 978-0-441-01359-3") == "9780441013593"
    assert clean_isbn("isbn 0-8044-2957-x") == "080442957X"


def test_is_isbn() -> None:
    assert is_isbn("978-0-441-01359-3")
    assert is_isbn("0-8044-2957-X")
    assert not is_isbn("12345")
    assert not is_isbn(None)
