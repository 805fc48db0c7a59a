"""Commit graph: immutable commit nodes, history, and split points."""

from dataclasses import dataclass
from typing import Iterator, Mapping

from loguru import logger

from . import codec
from .errors import NotFoundError, StorageError, ValidationError
from .objects import COMMITS, TREES, ObjectStore


@dataclass(frozen=True)
class Commit:
    """An immutable commit node.

    ``parent`` is None only for the root commit; ``second_parent`` is
    set only on merge commits.
    """

    id: str
    message: str
    timestamp: str
    parent: str | None = None
    second_parent: str | None = None

    @property
    def parents(self) -> tuple[str, ...]:
        return tuple(p for p in (self.parent, self.second_parent) if p is not None)

    @property
    def is_merge(self) -> bool:
        return self.second_parent is not None


class CommitGraph:
    """Creates and traverses commits stored in an ``ObjectStore``."""

    def __init__(
        self, objects: ObjectStore, *, clock: codec.Clock = codec.timestamp
    ) -> None:
        self.objects = objects
        self._clock = clock

    # -- Creation --

    def create_initial(self) -> Commit:
        """Write the root commit: empty tree, epoch timestamp, no parents."""
        record = codec.encode_commit(codec.ROOT_MESSAGE, codec.EPOCH_TIMESTAMP, None)
        commit_id = codec.root_commit_id(record)
        self.objects.put(codec.encode_tree({}), TREES, key=commit_id)
        self.objects.put(record, COMMITS, key=commit_id)
        logger.debug("created root commit {}", commit_id)
        return Commit(commit_id, codec.ROOT_MESSAGE, codec.EPOCH_TIMESTAMP)

    def create_commit(
        self,
        message: str,
        parent_id: str,
        tree: Mapping[str, str],
        timestamp: str | None = None,
    ) -> Commit:
        return self._create(message, parent_id, None, tree, timestamp)

    def create_merge_commit(
        self,
        message: str,
        parent_id: str,
        second_parent_id: str,
        tree: Mapping[str, str],
        timestamp: str | None = None,
    ) -> Commit:
        return self._create(message, parent_id, second_parent_id, tree, timestamp)

    def _create(
        self,
        message: str,
        parent_id: str,
        second_parent_id: str | None,
        tree: Mapping[str, str],
        timestamp: str | None,
    ) -> Commit:
        if not message:
            raise ValidationError("Please enter a commit message.")
        if timestamp is None:
            timestamp = self._clock()
        commit_id = codec.commit_id(tree, message, timestamp, parent_id)
        self.objects.put(codec.encode_tree(tree), TREES, key=commit_id)
        self.objects.put(
            codec.encode_commit(message, timestamp, parent_id, second_parent_id),
            COMMITS,
            key=commit_id,
        )
        logger.debug(
            "created commit {} (parents: {}, {} files)",
            commit_id,
            ", ".join(p for p in (parent_id, second_parent_id) if p),
            len(tree),
        )
        return Commit(commit_id, message, timestamp, parent_id, second_parent_id)

    # -- Lookup --

    def get(self, commit_id: str) -> Commit:
        """Load a commit by full id.

        A missing record means a reference points outside the store,
        which is reported as repository damage.
        """
        try:
            raw = self.objects.get(COMMITS, commit_id)
        except NotFoundError:
            raise StorageError(f"Missing commit record {commit_id}.") from None
        record = codec.decode_commit(raw)
        return Commit(
            commit_id,
            record["message"],
            record["timestamp"],
            record["parent"],
            record["second_parent"],
        )

    def tree(self, commit_id: str) -> dict[str, str]:
        """The filename -> blob hash manifest of a commit."""
        try:
            raw = self.objects.get(TREES, commit_id)
        except NotFoundError:
            raise StorageError(f"Missing tree record {commit_id}.") from None
        return codec.decode_tree(raw)

    def exists(self, commit_id: str) -> bool:
        return self.objects.exists(COMMITS, commit_id)

    def list_ids(self) -> list[str]:
        return self.objects.list_ids(COMMITS)

    def resolve_short(self, prefix: str) -> Commit:
        """Return the first stored commit (in id order) starting with ``prefix``.

        Ambiguous prefixes are not detected.
        """
        matches = self.objects.list_ids(COMMITS, prefix)
        if matches:
            return self.get(matches[0])
        raise NotFoundError("No commit with that id exists.")

    def find(self, message: str) -> list[str]:
        """Ids of all commits whose message equals ``message``."""
        return [cid for cid in self.list_ids() if self.get(cid).message == message]

    # -- History --

    def history(self, commit_id: str) -> Iterator[Commit]:
        """Yield commits from ``commit_id`` back to the root, first parents only."""
        current: str | None = commit_id
        while current is not None:
            commit = self.get(current)
            yield commit
            current = commit.parent

    def ancestor_distances(self, commit_id: str) -> dict[str, int]:
        """Map every ancestor of ``commit_id`` (itself included) to a distance.

        The start commit is at distance 1 and each edge adds 1. Commits
        are visited depth-first, parent before second parent, and a
        commit reached along several paths keeps the distance of its
        last visit (not the minimum). Dict order is first-visit order.
        """
        distances: dict[str, int] = {}
        stack: list[tuple[str, int]] = [(commit_id, 1)]
        while stack:
            current, distance = stack.pop()
            distances[current] = distance
            commit = self.get(current)
            if commit.second_parent is not None:
                stack.append((commit.second_parent, distance + 1))
            if commit.parent is not None:
                stack.append((commit.parent, distance + 1))
        return distances

    def lowest_common_ancestor(self, a_id: str, b_id: str) -> Commit:
        """The split point of two commits.

        Among ancestors of ``a_id`` that are also ancestors of ``b_id``,
        picks the one with the smallest distance from ``a_id``; ties go
        to the earliest in traversal order.
        """
        a_distances = self.ancestor_distances(a_id)
        b_distances = self.ancestor_distances(b_id)
        best: str | None = None
        best_distance = 0
        for candidate, distance in a_distances.items():
            if candidate not in b_distances:
                continue
            if best is None or distance < best_distance:
                best, best_distance = candidate, distance
        if best is None:
            raise StorageError(f"Commits {a_id} and {b_id} share no ancestor.")
        return self.get(best)
