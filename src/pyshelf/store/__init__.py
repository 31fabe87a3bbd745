"""Remote store boundary and its HTTP implementation."""

from pyshelf.store.base import Record, RemoteStore
from pyshelf.store.http import HttpRemoteStore

__all__ = ["HttpRemoteStore", "Record", "RemoteStore"]
