"""Remotes: other repositories on the same filesystem.

Transport is a direct copy of object records between the two
repositories' stores.
"""

from __future__ import annotations

import pickle
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from .commits import Commit, CommitGraph
from .errors import NotFoundError, StateViolationError
from .objects import BLOBS, COMMITS, TREES, ObjectStore, copy_objects

if TYPE_CHECKING:
    from .merge import MergeResult
    from .repo import Repository


class Remotes:
    """Remote name -> repository location."""

    def __init__(self, locations: dict[str, str] | None = None) -> None:
        self.locations: dict[str, str] = dict(locations or {})

    def add(self, name: str, location: str) -> None:
        if name in self.locations:
            raise StateViolationError("A remote with that name already exists.")
        self.locations[name] = location
        logger.debug("added remote {} at {}", name, location)

    def remove(self, name: str) -> None:
        if name not in self.locations:
            raise NotFoundError("A remote with that name does not exist.")
        del self.locations[name]

    def location(self, name: str) -> str:
        try:
            return self.locations[name]
        except KeyError:
            raise NotFoundError("A remote with that name does not exist.") from None

    def to_record(self) -> bytes:
        return pickle.dumps(self.locations)

    @classmethod
    def from_record(cls, raw: bytes | None) -> Remotes:
        return cls(pickle.loads(raw) if raw is not None else None)


def open_remote(location: str) -> Repository:
    """Open the repository at ``location`` (its root or its metadata dir)."""
    from .repo import REPO_DIR, open_disk_repository

    path = Path(location)
    repo_dir = path if path.name == REPO_DIR else path / REPO_DIR
    if not repo_dir.is_dir():
        raise StateViolationError("Remote directory not found.")
    return open_disk_repository(repo_dir.parent)


def trace_path(graph: CommitGraph, head_id: str, target_id: str) -> list[Commit] | None:
    """Commits on a path from ``head_id`` back to (excluding) ``target_id``.

    Depth-first over parent, then second parent. Returns None when
    ``target_id`` is not an ancestor of ``head_id``.
    """
    stack: list[tuple[str, list[Commit]]] = [(head_id, [])]
    visited: set[str] = set()
    while stack:
        current, path = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        commit = graph.get(current)
        path = path + [commit]
        if target_id in commit.parents:
            return path
        for parent in reversed(commit.parents):
            stack.append((parent, path))
    return None


def missing_commits(graph: CommitGraph, head_id: str, dest: ObjectStore) -> list[Commit]:
    """Commits reachable from ``head_id`` that ``dest`` does not have."""
    result: list[Commit] = []
    stack = [head_id]
    seen: set[str] = set()
    while stack:
        current = stack.pop()
        if current in seen or dest.exists(COMMITS, current):
            continue
        seen.add(current)
        commit = graph.get(current)
        result.append(commit)
        stack.extend(reversed(commit.parents))
    return result


def copy_commits(commits: list[Commit], source: ObjectStore, dest: ObjectStore) -> None:
    """Copy commit records, their trees, and the blobs those trees use."""
    graph = CommitGraph(source)
    for commit in commits:
        for blob_hash in graph.tree(commit.id).values():
            dest.put(source.get(BLOBS, blob_hash), BLOBS, key=blob_hash)
        dest.put(source.get(TREES, commit.id), TREES, key=commit.id)
        dest.put(source.get(COMMITS, commit.id), COMMITS, key=commit.id)


def push(local: Repository, remote_name: str, branch: str) -> None:
    """Append the local head's commits to ``branch`` of a remote."""
    remote = open_remote(local.remotes.location(remote_name))
    try:
        head_id = local.refs.active_head
        remote_head = remote.refs.branches.get(branch)
        if remote_head is not None and remote_head != head_id:
            if trace_path(local.graph, head_id, remote_head) is None:
                raise StateViolationError(
                    "Please pull down remote changes before pushing."
                )
        commits = missing_commits(local.graph, head_id, remote.objects)
        copy_commits(commits, local.objects, remote.objects)
        remote.refs.new_branch(branch, head_id)
        remote.save()
        logger.info(
            "pushed {} commits to {}/{} ({})", len(commits), remote_name, branch, head_id
        )
    finally:
        remote.close()


def fetch(local: Repository, remote_name: str, branch: str) -> str:
    """Copy a remote's records and track its branch as ``<remote>/<branch>``.

    Returns the local tracking branch name.
    """
    remote = open_remote(local.remotes.location(remote_name))
    try:
        if not remote.refs.exists(branch):
            raise NotFoundError("That remote does not have that branch.")
        copy_objects(remote.objects, local.objects)
        tracking = f"{remote_name}/{branch}"
        local.refs.new_branch(tracking, remote.refs.branch_head(branch))
        logger.info("fetched {}", tracking)
        return tracking
    finally:
        remote.close()


def pull(local: Repository, remote_name: str, branch: str) -> MergeResult:
    tracking = fetch(local, remote_name, branch)
    return local.merge(tracking)
