"""Persistent store: one diskcache directory per namespace."""

from typing import Iterable, Mapping, cast

from .base import KVStore, check_bytes


class Disk(KVStore):
    """Store backed by a ``diskcache.Cache`` (SQLite index plus value files).

    Eviction is turned off so that no record is ever dropped, whatever
    the cache size.
    """

    def __init__(self, directory: str) -> None:
        from diskcache import Cache

        self.directory = directory
        self.cache = Cache(directory, eviction_policy="none")

    def get(self, key: str) -> bytes | None:
        return cast(bytes | None, self.cache.get(key))

    def add(self, key: str, value: bytes) -> bool:
        check_bytes(key, value)
        return self.cache.add(key, value)

    def set(self, key: str, value: bytes) -> None:
        check_bytes(key, value)
        self.cache.set(key, value)

    def set_many(self, values: Mapping[str, bytes]) -> None:
        for key, value in values.items():
            check_bytes(key, value)
        with self.cache.transact():
            for key, value in values.items():
                self.cache.set(key, value)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(
            str(key) for key in self.cache.iterkeys() if str(key).startswith(prefix)
        )

    def items(self) -> Iterable[tuple[str, bytes]]:
        for key in self.keys():
            value = self.cache.get(key)
            if value is not None:
                yield key, cast(bytes, value)

    def __contains__(self, key: str) -> bool:
        return key in self.cache

    def __len__(self) -> int:
        return len(self.cache)

    def remove(self, key: str) -> None:
        self.cache.delete(key)

    def clear(self) -> None:
        self.cache.clear()

    def close(self) -> None:
        self.cache.close()
