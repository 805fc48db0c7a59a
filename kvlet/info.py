"""Human-readable log and status text."""

from typing import Iterable, Mapping

from .commits import Commit, CommitGraph
from .errors import StateViolationError
from .refs import RefStore
from .staging import StagingArea
from .worktree import WorkingTree


def format_commit(commit: Commit) -> list[str]:
    lines = ["===", f"commit {commit.id}"]
    if commit.is_merge:
        lines.append(f"Merge: {commit.parent[:7]} {commit.second_parent[:7]}")
    lines += [f"Date: {commit.timestamp}", commit.message, ""]
    return lines


def log(graph: CommitGraph, head_id: str) -> str:
    """History of ``head_id`` along first parents."""
    return _join(line for c in graph.history(head_id) for line in format_commit(c))


def global_log(graph: CommitGraph) -> str:
    """Every stored commit, in id order."""
    return _join(
        line for cid in graph.list_ids() for line in format_commit(graph.get(cid))
    )


def find(graph: CommitGraph, message: str) -> str:
    matches = graph.find(message)
    if not matches:
        raise StateViolationError("Found no commit with that message.")
    return _join(matches)


def status(
    refs: RefStore,
    staging: StagingArea,
    worktree: WorkingTree,
    head_tree: Mapping[str, str],
) -> str:
    sections = [
        ("Branches", [f"*{refs.active}", *sorted(refs.list_other_branches())]),
        ("Staged Files", sorted(staging.additions)),
        ("Removed Files", sorted(staging.removals)),
        (
            "Modifications Not Staged For Commit",
            unstaged_modifications(staging, worktree, head_tree),
        ),
        ("Untracked Files", untracked_files(staging, worktree, head_tree)),
    ]
    lines: list[str] = []
    for title, entries in sections:
        lines += [f"=== {title} ===", *entries, ""]
    return _join(lines)


def unstaged_modifications(
    staging: StagingArea, worktree: WorkingTree, head_tree: Mapping[str, str]
) -> list[str]:
    entries: dict[str, str] = {}
    for filename, blob_hash in staging.additions.items():
        if not worktree.exists(filename):
            entries[filename] = "deleted"
        elif worktree.hash(filename) != blob_hash:
            entries[filename] = "modified"
    for filename, blob_hash in head_tree.items():
        if not worktree.exists(filename):
            if filename not in staging.removals and filename not in staging.additions:
                entries[filename] = "deleted"
        elif filename not in staging.additions and worktree.hash(filename) != blob_hash:
            entries[filename] = "modified"
    return [f"{name} ({state})" for name, state in sorted(entries.items())]


def untracked_files(
    staging: StagingArea, worktree: WorkingTree, head_tree: Mapping[str, str]
) -> list[str]:
    return [
        name
        for name in worktree.files()
        if name not in head_tree and name not in staging.additions
    ]


def _join(lines: Iterable[str]) -> str:
    return "\n".join(lines)
