"""Staging area: pending additions and removals between commits."""

import pickle
from typing import Mapping

from loguru import logger

from .codec import content_hash
from .errors import NotFoundError, StateViolationError, StorageError
from .kv.base import KVStore
from .kv.memory import Memory
from .objects import BLOBS, ObjectStore
from .worktree import WorkingTree


class StagingArea:
    """Pending changes relative to the head commit.

    ``additions`` maps filename -> blob hash of the staged content, whose
    bytes are kept in a staging-scoped blob store until commit.
    ``removals`` holds filenames staged for removal. A filename is never
    in both.
    """

    def __init__(
        self,
        blobs: KVStore | None = None,
        additions: Mapping[str, str] | None = None,
        removals: set[str] | None = None,
    ) -> None:
        self.blobs = blobs if blobs is not None else Memory()
        self.additions: dict[str, str] = dict(additions or {})
        self.removals: set[str] = set(removals or ())

    # -- Staging --

    def stage_add(
        self, filename: str, worktree: WorkingTree, head_tree: Mapping[str, str]
    ) -> None:
        """Stage the working copy of ``filename`` for addition.

        A file whose content matches the head commit is unstaged
        instead, which cancels any pending change to it.
        """
        if not worktree.exists(filename):
            raise NotFoundError("File does not exist.")
        data = worktree.read(filename)
        blob_hash = content_hash(data)
        self.removals.discard(filename)
        if head_tree.get(filename) == blob_hash:
            self.unstage_add(filename)
            logger.debug("{} matches head, nothing staged", filename)
            return
        previous = self.additions.get(filename)
        self.additions[filename] = blob_hash
        if previous is not None and previous != blob_hash:
            self._drop_blob(previous)
        self.blobs.set(blob_hash, data)
        logger.debug("staged {} as {}", filename, blob_hash)

    def stage_remove(
        self, filename: str, worktree: WorkingTree, head_tree: Mapping[str, str]
    ) -> None:
        """Unstage a pending addition and/or stage a tracked file for removal.

        Tracked files are also deleted from the working tree.
        """
        changed = False
        if filename in self.additions:
            self.unstage_add(filename)
            changed = True
        if filename in head_tree:
            worktree.delete(filename)
            self.removals.add(filename)
            changed = True
            logger.debug("staged removal of {}", filename)
        if not changed:
            raise StateViolationError("No reason to remove the file.")

    def unstage_add(self, filename: str) -> None:
        blob_hash = self.additions.pop(filename, None)
        if blob_hash is not None:
            self._drop_blob(blob_hash)

    def _drop_blob(self, blob_hash: str) -> None:
        # Another staged file may share the same content.
        if blob_hash not in self.additions.values():
            self.blobs.remove(blob_hash)

    # -- Lifecycle --

    def is_empty(self) -> bool:
        return not self.additions and not self.removals

    def clear(self) -> None:
        self.additions.clear()
        self.removals.clear()
        self.blobs.clear()
        logger.debug("staging area cleared")

    def apply(self, tree: Mapping[str, str], objects: ObjectStore) -> dict[str, str]:
        """Build the next commit's tree from ``tree`` plus staged changes.

        Staged blobs are copied into the object store.
        """
        new_tree = {name: blob for name, blob in tree.items() if name not in self.removals}
        for filename, blob_hash in self.additions.items():
            data = self.blobs.get(blob_hash)
            if data is None:
                raise StorageError(f"Missing staged blob {blob_hash} for {filename}.")
            objects.put(data, BLOBS)
            new_tree[filename] = blob_hash
        return new_tree

    # -- Persistence --

    def to_record(self) -> bytes:
        return pickle.dumps(
            {"additions": self.additions, "removals": sorted(self.removals)}
        )

    @classmethod
    def from_record(cls, raw: bytes | None, blobs: KVStore) -> "StagingArea":
        if raw is None:
            return cls(blobs)
        record = pickle.loads(raw)
        return cls(blobs, record["additions"], set(record["removals"]))
