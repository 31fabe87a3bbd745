from __future__ import annotations

import pytest

from conftest import FakeClock, FakeRemoteStore
from pyshelf.duplicates import DuplicateDetector
from pyshelf.models import Book, MatchKind
from pyshelf.repositories import Repository


@pytest.fixture
def detector(store: FakeRemoteStore, clock: FakeClock) -> DuplicateDetector[Book]:
    return DuplicateDetector(Repository(store, "books", Book, clock=clock))


@pytest.mark.asyncio
async def test_natural_key_match_uses_single_indexed_query(
    store: FakeRemoteStore, detector: DuplicateDetector[Book]
) -> None:
    store.seed("u1", "books", {"id": "b1", "title": "Dune", "author": "Frank Herbert", "isbn": "9780441013593"})

    match = await detector.check_for_duplicate("u1", " 9780441013593 ", "Something else", "Someone")

    assert match.is_duplicate
    assert match.match_kind == MatchKind.NATURAL_KEY
    assert match.matched_entity is not None and match.matched_entity.id == "b1"
    assert len(store.queries) == 1
    assert store.queries[0]["limit"] == 1
    assert store.queries[0]["filters"][0].field == "isbn"


@pytest.mark.asyncio
async def test_normalized_title_and_author_match(store: FakeRemoteStore, detector: DuplicateDetector[Book]) -> None:
    store.seed(
        "u1",
        "books",
        {"id": "b1", "title": "The Hobbit", "author": "J.R.R. Tolkien"},
        {"id": "b2", "title": "L'Assommoir", "author": "Émile Zola"},
    )

    hobbit = await detector.check_for_duplicate("u1", None, "  the   HOBBIT ", "J R R Tolkien")
    zola = await detector.check_for_duplicate("u1", "", "lassommoir", "emile zola")

    assert hobbit.match_kind == MatchKind.NORMALIZED_IDENTITY
    assert hobbit.matched_entity is not None and hobbit.matched_entity.id == "b1"
    assert zola.is_duplicate and zola.matched_entity is not None and zola.matched_entity.id == "b2"


@pytest.mark.asyncio
async def test_natural_key_miss_falls_back_to_text_scan(
    store: FakeRemoteStore, detector: DuplicateDetector[Book]
) -> None:
    store.seed("u1", "books", {"id": "b1", "title": "Dune", "author": "Frank Herbert", "isbn": "111"})

    match = await detector.check_for_duplicate("u1", "222", "Dune", "Frank Herbert")

    assert match.match_kind == MatchKind.NORMALIZED_IDENTITY
    assert len(store.queries) == 2


@pytest.mark.asyncio
async def test_title_match_with_different_author_is_not_a_duplicate(
    store: FakeRemoteStore, detector: DuplicateDetector[Book]
) -> None:
    store.seed("u1", "books", {"id": "b1", "title": "Emma", "author": "Jane Austen"})

    match = await detector.check_for_duplicate("u1", None, "Emma", "Someone Else")

    assert not match.is_duplicate
    assert match.match_kind == MatchKind.NONE
    assert match.matched_entity is None


@pytest.mark.asyncio
async def test_scan_is_bounded_by_limit(store: FakeRemoteStore, detector: DuplicateDetector[Book]) -> None:
    store.seed("u1", "books", *({"id": f"b{i:03d}", "title": f"Filler {i}", "author": "Anon"} for i in range(250)))
    store.seed("u1", "books", {"id": "late", "title": "Needle", "author": "Haystack"})

    match = await detector.check_for_duplicate("u1", None, "Needle", "Haystack")

    assert not match.is_duplicate
    assert store.queries[-1]["limit"] == 200


@pytest.mark.asyncio
async def test_empty_input_skips_the_store(store: FakeRemoteStore, detector: DuplicateDetector[Book]) -> None:
    match = await detector.check_for_duplicate("u1", "  ", "", None)

    assert match.match_kind == MatchKind.NONE
    assert store.queries == []


@pytest.mark.asyncio
async def test_duplicate_check_never_touches_the_cache(
    store: FakeRemoteStore, clock: FakeClock
) -> None:
    repo = Repository(store, "books", Book, clock=clock)
    detector = DuplicateDetector(repo, limit=5)
    store.seed("u1", "books", {"id": "b1", "title": "Dune", "author": "Frank Herbert"})

    await detector.check_for_duplicate("u1", None, "Dune", "Frank Herbert")

    assert not repo.is_cached("u1")
    assert store.queries[-1]["limit"] == 5


def test_limit_must_be_positive(store: FakeRemoteStore, clock: FakeClock) -> None:
    with pytest.raises(ValueError):
        DuplicateDetector(Repository(store, "books", Book, clock=clock), limit=0)


@pytest.mark.asyncio
async def test_natural_key_is_cleaned_before_lookup(store: FakeRemoteStore, detector: DuplicateDetector[Book]) -> None:
    store.seed("u1", "books", {"id": "b1", "title": "Dune", "author": "Frank Herbert", "isbn": "9780441013593"})

    match = await detector.check_for_duplicate("u1", "ISBN-13: 978-0-441-01359-3", "Other", "Someone")

    assert match.match_kind == MatchKind.NATURAL_KEY
    assert store.queries[0]["filters"][0].value == "9780441013593"
