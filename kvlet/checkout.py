"""Snapshot materializer: writes commit trees into the working directory."""

from loguru import logger

from .commits import Commit, CommitGraph
from .errors import NotFoundError, StateViolationError
from .objects import BLOBS
from .refs import RefStore
from .staging import StagingArea
from .worktree import WorkingTree

UNTRACKED_IN_THE_WAY = (
    "There is an untracked file in the way; delete it, or add and commit it first."
)


class Materializer:
    """Checkout and reset over a working tree.

    "Untracked" here means present in the working tree but absent from
    the active head's tree, whether or not the file is staged.
    """

    def __init__(
        self,
        graph: CommitGraph,
        refs: RefStore,
        staging: StagingArea,
        worktree: WorkingTree,
    ) -> None:
        self.graph = graph
        self.refs = refs
        self.staging = staging
        self.worktree = worktree

    def untracked(self) -> list[str]:
        head_tree = self.graph.tree(self.refs.active_head)
        return [name for name in self.worktree.files() if name not in head_tree]

    def check_untracked(self, target_tree: dict[str, str]) -> None:
        """Fail if an untracked file would be overwritten by ``target_tree``."""
        for filename in self.untracked():
            if filename in target_tree:
                raise StateViolationError(UNTRACKED_IN_THE_WAY)

    def restore_file(self, commit_id: str, filename: str) -> None:
        tree = self.graph.tree(commit_id)
        if filename not in tree:
            raise NotFoundError("File does not exist in that commit.")
        self._write_blob(filename, tree[filename])

    def restore_commit(self, commit_id: str) -> None:
        """Make the working tree match ``commit_id``.

        Files of the target tree are written; files tracked by the
        current head but absent from the target are deleted. Nothing is
        touched if an untracked file is in the way.
        """
        target = self.graph.tree(commit_id)
        self.check_untracked(target)
        current = self.graph.tree(self.refs.active_head)
        for filename, blob_hash in target.items():
            self._write_blob(filename, blob_hash)
        for filename in current:
            if filename not in target:
                self.worktree.delete(filename)
        logger.debug("working tree restored to {}", commit_id)

    def checkout_file(self, filename: str, commit_prefix: str | None = None) -> None:
        """Restore one file from the head, or from the commit matching a prefix.

        Refused while any untracked file is present.
        """
        if self.untracked():
            raise StateViolationError(UNTRACKED_IN_THE_WAY)
        if commit_prefix is None:
            commit_id = self.refs.active_head
        else:
            commit_id = self.graph.resolve_short(commit_prefix).id
        self.restore_file(commit_id, filename)

    def checkout_branch(self, name: str) -> None:
        if name == self.refs.active:
            raise StateViolationError("No need to checkout the current branch.")
        if not self.refs.exists(name):
            raise NotFoundError("No such branch exists.")
        self.restore_commit(self.refs.branch_head(name))
        self.refs.set_active(name)
        self.staging.clear()

    def reset(self, commit_prefix: str) -> Commit:
        """Check out any commit and move the active branch to it."""
        commit = self.graph.resolve_short(commit_prefix)
        self.move_to(commit.id)
        return commit

    def move_to(self, commit_id: str) -> None:
        self.restore_commit(commit_id)
        self.refs.set_active_head(commit_id)
        self.staging.clear()

    def _write_blob(self, filename: str, blob_hash: str) -> None:
        self.worktree.write(filename, self.graph.objects.get(BLOBS, blob_hash))
