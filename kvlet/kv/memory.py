"""Dict-backed store for tests and throwaway repositories."""

from typing import Iterable, Mapping

from .base import KVStore, check_bytes


class Memory(KVStore):
    """Keeps everything in a dict for the life of the object."""

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def add(self, key: str, value: bytes) -> bool:
        check_bytes(key, value)
        if key in self.data:
            return False
        self.data[key] = value
        return True

    def set(self, key: str, value: bytes) -> None:
        check_bytes(key, value)
        self.data[key] = value

    def set_many(self, values: Mapping[str, bytes]) -> None:
        for key, value in values.items():
            check_bytes(key, value)
        self.data.update(values)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self.data if key.startswith(prefix))

    def items(self) -> Iterable[tuple[str, bytes]]:
        # Snapshot, so callers may write while iterating.
        return list(self.data.items())

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def __len__(self) -> int:
        return len(self.data)

    def remove(self, key: str) -> None:
        self.data.pop(key, None)

    def clear(self) -> None:
        self.data.clear()
