"""Three-way merge of another branch into the active branch."""

from dataclasses import dataclass, field

from loguru import logger

from .checkout import UNTRACKED_IN_THE_WAY, Materializer
from .commits import CommitGraph
from .errors import NotFoundError, StateViolationError
from .objects import BLOBS
from .refs import RefStore
from .staging import StagingArea
from .worktree import WorkingTree

ANCESTOR_MESSAGE = "Given branch is an ancestor of the current branch."
FAST_FORWARD_MESSAGE = "Current branch fast-forwarded."
CONFLICT_MESSAGE = "Encountered a merge conflict."


@dataclass(frozen=True)
class MergeResult:
    """Result of a merge operation."""

    merged: bool
    commit: str | None
    strategy: str  # "ancestor", "fast_forward", "three_way"
    conflicts: tuple[str, ...] = ()
    messages: tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return self.merged


@dataclass
class MergePlan:
    """Per-file outcome of comparing split point, primary and secondary trees."""

    additions: dict[str, str] = field(default_factory=dict)
    removals: list[str] = field(default_factory=list)
    conflicts: dict[str, tuple[str | None, str | None]] = field(default_factory=dict)

    def touched(self) -> set[str]:
        return set(self.additions) | set(self.removals) | set(self.conflicts)


def _changed(split: dict[str, str], side: dict[str, str], filename: str) -> bool:
    """True unless both trees map ``filename`` to the same blob."""
    return not (
        filename in split and filename in side and split[filename] == side[filename]
    )


def classify(
    split: dict[str, str], primary: dict[str, str], secondary: dict[str, str]
) -> MergePlan:
    """Decide what happens to each file.

    A file changed only on the secondary side takes the secondary
    version (or is removed). A file changed differently on both sides
    conflicts. Files changed only on the primary side already have the
    right content.
    """
    plan = MergePlan()
    for filename in split:
        p_changed = _changed(split, primary, filename)
        s_changed = _changed(split, secondary, filename)
        p_blob = primary.get(filename)
        s_blob = secondary.get(filename)
        if not p_changed and s_changed:
            if s_blob is not None:
                plan.additions[filename] = s_blob
            else:
                plan.removals.append(filename)
        elif p_changed and s_changed and p_blob != s_blob:
            plan.conflicts[filename] = (p_blob, s_blob)
    for filename, s_blob in secondary.items():
        if filename in split:
            continue
        if filename in primary:
            if primary[filename] != s_blob:
                plan.conflicts[filename] = (primary[filename], s_blob)
        else:
            plan.additions[filename] = s_blob
    return plan


class MergeEngine:
    """Merges a branch into the active branch.

    Outcomes: nothing to do when the other branch is already an
    ancestor; a fast-forward of the active branch when it is an
    ancestor of the other branch; otherwise a two-parent merge commit,
    with conflict markers written for conflicting files.
    """

    def __init__(
        self,
        graph: CommitGraph,
        refs: RefStore,
        staging: StagingArea,
        worktree: WorkingTree,
        materializer: Materializer,
    ) -> None:
        self.graph = graph
        self.refs = refs
        self.staging = staging
        self.worktree = worktree
        self.materializer = materializer

    def merge(self, secondary: str) -> MergeResult:
        primary = self.refs.active
        self._precheck(primary, secondary)

        primary_head = self.refs.active_head
        secondary_head = self.refs.branch_head(secondary)
        split = self.graph.lowest_common_ancestor(primary_head, secondary_head)
        logger.debug(
            "merging {} ({}) into {} ({}), split point {}",
            secondary, secondary_head, primary, primary_head, split.id,
        )

        if split.id == secondary_head:
            logger.info("{} already contains {}", primary, secondary)
            return MergeResult(
                merged=True,
                commit=None,
                strategy="ancestor",
                messages=(ANCESTOR_MESSAGE,),
            )
        if split.id == primary_head:
            self.materializer.move_to(secondary_head)
            logger.info("fast-forwarded {} to {}", primary, secondary_head)
            return MergeResult(
                merged=True,
                commit=None,
                strategy="fast_forward",
                messages=(FAST_FORWARD_MESSAGE,),
            )

        primary_tree = self.graph.tree(primary_head)
        plan = classify(
            self.graph.tree(split.id), primary_tree, self.graph.tree(secondary_head)
        )
        logger.debug(
            "merge plan: {} to add, {} to remove, {} conflicting",
            len(plan.additions), len(plan.removals), len(plan.conflicts),
        )
        self._check_worktree(plan)
        self._apply(plan, primary_tree)

        message = f"Merged {secondary} into {primary}."
        tree = self.staging.apply(primary_tree, self.graph.objects)
        commit = self.graph.create_merge_commit(message, primary_head, secondary_head, tree)
        self.refs.set_active_head(commit.id)
        self.staging.clear()
        logger.info("merge commit {} on {}", commit.id, primary)

        messages = (CONFLICT_MESSAGE,) if plan.conflicts else ()
        return MergeResult(
            merged=True,
            commit=commit.id,
            strategy="three_way",
            conflicts=tuple(plan.conflicts),
            messages=messages,
        )

    def _precheck(self, primary: str, secondary: str) -> None:
        if not self.staging.is_empty():
            raise StateViolationError("You have uncommitted changes.")
        if primary == secondary:
            raise StateViolationError("Cannot merge a branch with itself.")
        if not self.refs.exists(secondary):
            raise NotFoundError("A branch with that name does not exist.")

    def _check_worktree(self, plan: MergePlan) -> None:
        touched = plan.touched()
        for filename in self.materializer.untracked():
            if filename in touched:
                raise StateViolationError(UNTRACKED_IN_THE_WAY)

    def _apply(self, plan: MergePlan, primary_tree: dict[str, str]) -> None:
        for filename, blob_hash in plan.additions.items():
            self.worktree.write(filename, self._blob(blob_hash))
            self.staging.stage_add(filename, self.worktree, primary_tree)
        for filename in plan.removals:
            self.staging.stage_remove(filename, self.worktree, primary_tree)
        for filename, (p_blob, s_blob) in plan.conflicts.items():
            self.worktree.write(filename, self._conflict_content(p_blob, s_blob))
            self.staging.stage_add(filename, self.worktree, primary_tree)

    def _conflict_content(self, p_blob: str | None, s_blob: str | None) -> bytes:
        return (
            b"<<<<<<< HEAD\n"
            + (self._blob(p_blob) if p_blob is not None else b"")
            + b"=======\n"
            + (self._blob(s_blob) if s_blob is not None else b"")
            + b">>>>>>>\n"
        )

    def _blob(self, blob_hash: str) -> bytes:
        return self.graph.objects.get(BLOBS, blob_hash)
