"""Repository context and factory.

A ``Repository`` bundles the stores and the loaded branch, staging and
remote state for one working directory. State is read once when the
repository is opened and written back by ``save()``.
"""

import os
from pathlib import Path
from typing import Literal, Mapping

from loguru import logger

from . import codec, info, remote
from .checkout import Materializer
from .commits import Commit, CommitGraph
from .errors import StateViolationError, UsageError, ValidationError
from .kv.base import KVStore
from .kv.memory import Memory
from .merge import MergeEngine, MergeResult
from .objects import NAMESPACES, ObjectStore
from .refs import RefStore
from .remote import Remotes
from .staging import StagingArea
from .worktree import WorkingTree

REPO_DIR = ".kvlet"
STAGED_BLOBS = "staged-blobs"
META = "meta"
BACKEND_NAMESPACES = (*NAMESPACES, STAGED_BLOBS, META)

ACTIVE_BRANCH_KEY = "active_branch"
BRANCHES_KEY = "branches"
STAGING_KEY = "staging"
REMOTES_KEY = "remotes"


class Repository:
    """One working directory and its version history."""

    def __init__(
        self,
        root: str | os.PathLike,
        backends: Mapping[str, KVStore] | None = None,
        *,
        clock: codec.Clock = codec.timestamp,
    ) -> None:
        backends = dict(backends or {})
        self._backends: dict[str, KVStore] = {
            ns: backends[ns] if ns in backends else Memory()
            for ns in BACKEND_NAMESPACES
        }
        self.root = Path(root)
        self.meta = self._backends[META]
        self.objects = ObjectStore({ns: self._backends[ns] for ns in NAMESPACES})
        self.graph = CommitGraph(self.objects, clock=clock)
        self.worktree = WorkingTree(self.root)
        self._refs: RefStore | None = None
        self.staging = StagingArea(self._backends[STAGED_BLOBS])
        self.remotes = Remotes()
        if self.initialized:
            self.load()

    @property
    def initialized(self) -> bool:
        return BRANCHES_KEY in self.meta

    @property
    def refs(self) -> RefStore:
        if self._refs is None:
            raise UsageError("Not in an initialized Kvlet directory.")
        return self._refs

    @property
    def head(self) -> Commit:
        return self.graph.get(self.refs.active_head)

    def head_tree(self) -> dict[str, str]:
        return self.graph.tree(self.refs.active_head)

    @property
    def materializer(self) -> Materializer:
        return Materializer(self.graph, self.refs, self.staging, self.worktree)

    @property
    def merge_engine(self) -> MergeEngine:
        return MergeEngine(
            self.graph, self.refs, self.staging, self.worktree, self.materializer
        )

    # -- Persistence --

    def load(self) -> None:
        branches = self.meta.get(BRANCHES_KEY)
        active = self.meta.get(ACTIVE_BRANCH_KEY)
        if branches is None or active is None:
            raise UsageError("Not in an initialized Kvlet directory.")
        self._refs = RefStore.from_records(branches, active)
        self.staging = StagingArea.from_record(
            self.meta.get(STAGING_KEY), self._backends[STAGED_BLOBS]
        )
        self.remotes = Remotes.from_record(self.meta.get(REMOTES_KEY))

    def save(self) -> None:
        self.meta.set_many(
            {
                **self.refs.to_records(),
                STAGING_KEY: self.staging.to_record(),
                REMOTES_KEY: self.remotes.to_record(),
            }
        )
        logger.debug("saved repository state for {}", self.root)

    def close(self) -> None:
        for backend in self._backends.values():
            backend.close()

    # -- Commands --

    def init(self) -> Commit:
        if self.initialized:
            raise UsageError(
                "A Kvlet version-control system already exists in the current directory."
            )
        root = self.graph.create_initial()
        self._refs = RefStore.init(root.id)
        self.staging.clear()
        self.remotes = Remotes()
        self.save()
        logger.info("initialized repository at {}", self.root)
        return root

    def add(self, filename: str) -> None:
        self.staging.stage_add(filename, self.worktree, self.head_tree())

    def rm(self, filename: str) -> None:
        self.staging.stage_remove(filename, self.worktree, self.head_tree())

    def commit(self, message: str) -> Commit:
        if not message:
            raise ValidationError("Please enter a commit message.")
        if self.staging.is_empty():
            raise StateViolationError("No changes added to the commit.")
        head = self.refs.active_head
        tree = self.staging.apply(self.graph.tree(head), self.objects)
        commit = self.graph.create_commit(message, head, tree)
        self.refs.set_active_head(commit.id)
        self.staging.clear()
        return commit

    def log(self) -> str:
        return info.log(self.graph, self.refs.active_head)

    def global_log(self) -> str:
        return info.global_log(self.graph)

    def find(self, message: str) -> str:
        return info.find(self.graph, message)

    def status(self) -> str:
        return info.status(self.refs, self.staging, self.worktree, self.head_tree())

    def checkout_branch(self, name: str) -> None:
        self.materializer.checkout_branch(name)

    def checkout_file(self, filename: str, commit: str | None = None) -> None:
        self.materializer.checkout_file(filename, commit)

    def branch(self, name: str) -> None:
        self.refs.new_branch(name)

    def rm_branch(self, name: str) -> None:
        self.refs.del_branch(name)

    def reset(self, commit: str) -> Commit:
        return self.materializer.reset(commit)

    def merge(self, branch: str) -> MergeResult:
        return self.merge_engine.merge(branch)

    def add_remote(self, name: str, location: str) -> None:
        self.remotes.add(name, location)

    def rm_remote(self, name: str) -> None:
        self.remotes.remove(name)

    def push(self, remote_name: str, branch: str) -> None:
        remote.push(self, remote_name, branch)

    def fetch(self, remote_name: str, branch: str) -> str:
        return remote.fetch(self, remote_name, branch)

    def pull(self, remote_name: str, branch: str) -> MergeResult:
        return remote.pull(self, remote_name, branch)


def disk_backends(repo_dir: str | os.PathLike) -> dict[str, KVStore]:
    from .kv.disk import Disk

    return {ns: Disk(os.path.join(repo_dir, ns)) for ns in BACKEND_NAMESPACES}


def open_disk_repository(
    root: str | os.PathLike, *, clock: codec.Clock = codec.timestamp
) -> Repository:
    return Repository(root, disk_backends(Path(root) / REPO_DIR), clock=clock)


def repository(
    storage: Literal["disk", "memory"] = "disk",
    *,
    path: str | os.PathLike | None = ".",
    create: bool = False,
    clock: codec.Clock = codec.timestamp,
) -> Repository:
    """Open (or with ``create=True``, initialize) a repository.

    Args:
        storage: ``"disk"`` (default) keeps state under ``path/.kvlet``;
            ``"memory"`` keeps it in memory for the life of the object.
        path: The working directory. Required for ``"disk"``.
        create: Run ``init`` on the new repository.
        clock: Source of commit timestamps.

    Returns:
        A loaded ``Repository``.
    """
    if storage == "memory":
        repo = Repository(path if path is not None else ".", clock=clock)
    elif storage == "disk":
        if path is None:
            raise ValueError("path is required when storage='disk'")
        repo_dir = Path(path) / REPO_DIR
        if create and repo_dir.exists():
            raise UsageError(
                "A Kvlet version-control system already exists in the current directory."
            )
        if not create and not repo_dir.is_dir():
            raise UsageError("Not in an initialized Kvlet directory.")
        repo = open_disk_repository(path, clock=clock)
    else:
        raise ValueError(f"Unknown storage: {storage!r}")

    if create:
        repo.init()
    return repo
