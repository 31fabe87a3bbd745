"""Repositories over the user's library collections."""

from pyshelf.repositories.base import Repository, RepositoryEvents
from pyshelf.repositories.bin import BinService, RestoreResult
from pyshelf.repositories.book import BookRepository
from pyshelf.repositories.facade import RepositoryFacade, SoftDeleteFacade
from pyshelf.repositories.genre import GenreRepository
from pyshelf.repositories.series import SeriesRepository
from pyshelf.repositories.wishlist import WishlistRepository

__all__ = [
    "BinService",
    "BookRepository",
    "GenreRepository",
    "Repository",
    "RepositoryEvents",
    "RepositoryFacade",
    "RestoreResult",
    "SeriesRepository",
    "SoftDeleteFacade",
    "WishlistRepository",
]
