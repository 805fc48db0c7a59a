"""Reference store: branch name -> head commit id, plus the active branch."""

import pickle

from loguru import logger

from .errors import NotFoundError, StateViolationError, StorageError

DEFAULT_BRANCH = "master"


class RefStore:
    """Branch pointers and the active branch.

    The active branch is always a key of ``branches``.
    """

    def __init__(self, branches: dict[str, str], active: str) -> None:
        if active not in branches:
            raise StorageError(f"Active branch {active!r} has no head.")
        self.branches = dict(branches)
        self._active = active

    @classmethod
    def init(cls, root_commit_id: str, branch: str = DEFAULT_BRANCH) -> "RefStore":
        return cls({branch: root_commit_id}, branch)

    @property
    def active(self) -> str:
        return self._active

    @property
    def active_head(self) -> str:
        return self.branches[self._active]

    def exists(self, name: str) -> bool:
        return name in self.branches

    def branch_head(self, name: str) -> str:
        try:
            return self.branches[name]
        except KeyError:
            raise NotFoundError("No such branch exists.") from None

    def new_branch(self, name: str, head_id: str | None = None) -> None:
        """Create ``name`` at the active head, or set it to ``head_id``.

        With an explicit head an existing branch is overwritten.
        """
        if head_id is None:
            if name in self.branches:
                raise StateViolationError("A branch with that name already exists.")
            head_id = self.active_head
        self.branches[name] = head_id
        logger.debug("branch {} -> {}", name, head_id)

    def del_branch(self, name: str) -> None:
        if name not in self.branches:
            raise NotFoundError("A branch with that name does not exist.")
        if name == self._active:
            raise StateViolationError("Cannot remove the current branch.")
        del self.branches[name]
        logger.debug("deleted branch {}", name)

    def set_active(self, name: str) -> None:
        if name not in self.branches:
            raise NotFoundError("No such branch exists.")
        self._active = name
        logger.info("switched to branch {}", name)

    def set_active_head(self, commit_id: str) -> None:
        self.branches[self._active] = commit_id
        logger.info("branch {} moved to {}", self._active, commit_id)

    def list_other_branches(self) -> set[str]:
        return {name for name in self.branches if name != self._active}

    # -- Persistence --

    def to_records(self) -> dict[str, bytes]:
        return {
            "branches": pickle.dumps(self.branches),
            "active_branch": pickle.dumps(self._active),
        }

    @classmethod
    def from_records(cls, branches: bytes, active: bytes) -> "RefStore":
        return cls(pickle.loads(branches), pickle.loads(active))
