"""Storage package: object store protocol and implementations."""

from .base import ObjectStore
from .factory import make_object_store, make_store_pair
from .fs import FilesystemObjectStore

__all__ = ["ObjectStore", "FilesystemObjectStore", "make_object_store", "make_store_pair"]
