"""Adapters - I/O implementations of ports."""

from .memory_store import MemoryStore
from .json_store import JsonFileStore
from .http_store import HttpStore

__all__ = [
    "MemoryStore",
    "JsonFileStore",
    "HttpStore",
]
