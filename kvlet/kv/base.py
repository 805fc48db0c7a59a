"""Backend interface shared by every repository namespace."""

from abc import ABC, abstractmethod
from typing import Iterable, Mapping


def check_bytes(key: str, value: object) -> None:
    if not isinstance(value, bytes):
        raise TypeError(f"Expected bytes for {key!r}, got {type(value).__name__}")


class KVStore(ABC):
    """String keys, bytes values.

    Object namespaces (blobs, trees, commits) are write-once and go
    through ``add``. Mutable state (branch pointers, the staging record,
    staged blobs) goes through ``set`` and ``set_many``.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Stored bytes for ``key``, or None."""

    @abstractmethod
    def add(self, key: str, value: bytes) -> bool:
        """Store ``value`` only if ``key`` is absent.

        Returns:
            True if the value was written, False if ``key`` already existed
            (the stored value is left as is).
        """

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def set_many(self, values: Mapping[str, bytes]) -> None:
        """Replace several keys at once; all or nothing where supported."""

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """Keys starting with ``prefix``, sorted."""

    @abstractmethod
    def items(self) -> Iterable[tuple[str, bytes]]:
        ...

    @abstractmethod
    def __contains__(self, key: str) -> bool:
        ...

    @abstractmethod
    def __len__(self) -> int:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; a missing key is ignored."""

    @abstractmethod
    def clear(self) -> None:
        ...

    def close(self) -> None:
        """Release file handles. Nothing to do for most backends."""
