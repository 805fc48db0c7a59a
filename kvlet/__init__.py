"""kvlet: a small content-addressed version-control engine."""

from loguru import logger

from .checkout import Materializer
from .commits import Commit, CommitGraph
from .errors import (
    KvletError,
    NotFoundError,
    StateViolationError,
    StorageError,
    UsageError,
    ValidationError,
)
from .kv.base import KVStore
from .merge import MergeEngine, MergePlan, MergeResult, classify
from .objects import BLOBS, COMMITS, TREES, ObjectStore, copy_objects
from .refs import RefStore
from .remote import Remotes
from .repo import Repository, repository
from .staging import StagingArea
from .worktree import WorkingTree

logger.disable("kvlet")

__all__ = [
    "BLOBS",
    "COMMITS",
    "Commit",
    "CommitGraph",
    "KVStore",
    "KvletError",
    "Materializer",
    "MergeEngine",
    "MergePlan",
    "MergeResult",
    "NotFoundError",
    "ObjectStore",
    "RefStore",
    "Remotes",
    "Repository",
    "StagingArea",
    "StateViolationError",
    "StorageError",
    "TREES",
    "UsageError",
    "ValidationError",
    "WorkingTree",
    "classify",
    "copy_objects",
    "repository",
]
