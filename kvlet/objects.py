"""Content-addressed object store.

Three namespaces, each a ``KVStore``:

- ``blobs``: raw file content, keyed by its SHA-1.
- ``trees``: encoded filename -> blob manifests, keyed by commit id.
- ``commits``: encoded commit records, keyed by commit id.

Records are immutable: writing an existing key is a no-op.
"""

from typing import Iterable, Mapping

from loguru import logger

from .codec import content_hash
from .errors import NotFoundError
from .kv.base import KVStore
from .kv.memory import Memory

BLOBS = "blobs"
TREES = "trees"
COMMITS = "commits"
NAMESPACES = (BLOBS, TREES, COMMITS)


class ObjectStore:
    """Immutable, content-addressed storage over one KV store per namespace."""

    def __init__(self, backends: Mapping[str, KVStore] | None = None) -> None:
        backends = dict(backends or {})
        unknown = set(backends) - set(NAMESPACES)
        if unknown:
            raise ValueError(f"Unknown namespaces: {sorted(unknown)}")
        self._backends: dict[str, KVStore] = {
            ns: backends[ns] if ns in backends else Memory() for ns in NAMESPACES
        }

    def _backend(self, namespace: str) -> KVStore:
        try:
            return self._backends[namespace]
        except KeyError:
            raise ValueError(f"Unknown namespace: {namespace!r}") from None

    def put(self, data: bytes, namespace: str = BLOBS, *, key: str | None = None) -> str:
        """Store ``data`` and return its id.

        The id is the content hash of ``data`` unless ``key`` is given
        (trees and commits are stored under their commit id). Storing
        under an existing id leaves the stored copy untouched.
        """
        store = self._backend(namespace)
        obj_id = key if key is not None else content_hash(data)
        if store.add(obj_id, data):
            logger.debug("stored {} {} ({} bytes)", namespace, obj_id, len(data))
        return obj_id

    def get(self, namespace: str, obj_id: str) -> bytes:
        data = self._backend(namespace).get(obj_id)
        if data is None:
            raise NotFoundError(f"No {namespace} record {obj_id}.")
        return data

    def exists(self, namespace: str, obj_id: str) -> bool:
        return obj_id in self._backend(namespace)

    def list_ids(self, namespace: str, prefix: str = "") -> list[str]:
        """Ids in ``namespace`` starting with ``prefix``, in lexicographic order."""
        return self._backend(namespace).keys(prefix)

    def items(self, namespace: str) -> Iterable[tuple[str, bytes]]:
        return self._backend(namespace).items()

    def close(self) -> None:
        for backend in self._backends.values():
            backend.close()


def copy_objects(
    source: ObjectStore,
    dest: ObjectStore,
    namespaces: Iterable[str] = NAMESPACES,
) -> int:
    """Copy every record missing from ``dest``. Returns the number copied."""
    copied = 0
    for namespace in namespaces:
        for obj_id, data in source.items(namespace):
            if not dest.exists(namespace, obj_id):
                dest.put(data, namespace, key=obj_id)
                copied += 1
    logger.debug("copied {} records", copied)
    return copied
