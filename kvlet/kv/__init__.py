"""Byte-level key-value backends."""

from .base import KVStore
from .memory import Memory

__all__ = ["KVStore", "Memory"]
