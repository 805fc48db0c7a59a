"""Tests for the ``kvlet`` command line."""

import os
from pathlib import Path

import pytest
from click.testing import CliRunner
from loguru import logger

from kvlet.cli import main


@pytest.fixture
def runner():
    runner = CliRunner()
    with runner.isolated_filesystem():
        yield runner
    logger.remove()
    logger.disable("kvlet")


def run(runner, *args):
    result = runner.invoke(main, list(args))
    assert result.exception is None, result.exception
    assert result.exit_code == 0
    return result.output


@pytest.fixture
def initialized(runner):
    assert run(runner, "init") == ""
    return runner


class TestDispatch:
    def test_no_command(self, runner):
        assert run(runner) == "Please enter a command.\n"

    def test_unknown_command(self, runner):
        assert run(runner, "frobnicate") == "No command with that name exists.\n"

    def test_outside_repository(self, runner):
        assert run(runner, "status") == "Not in an initialized Kvlet directory.\n"

    def test_init_twice(self, initialized):
        assert run(initialized, "init") == (
            "A Kvlet version-control system already exists in the current directory.\n"
        )

    @pytest.mark.parametrize(
        "args",
        [
            ("add",),
            ("add", "a", "b"),
            ("commit",),
            ("init", "extra"),
            ("log", "extra"),
            ("merge",),
            ("push", "origin"),
            ("checkout",),
            ("checkout", "a", "b"),
            ("checkout", "a", "++", "b"),
            ("checkout", "--"),
        ],
    )
    def test_incorrect_operands(self, initialized, args):
        assert run(initialized, *args) == "Incorrect operands.\n"


class TestWorkflow:
    def test_add_commit_log(self, initialized):
        Path("wug.txt").write_text("hello")
        assert run(initialized, "add", "wug.txt") == ""
        assert run(initialized, "commit", "add wug") == ""
        out = run(initialized, "log")
        assert out.startswith("===\ncommit ")
        assert "\nadd wug\n" in out
        assert out.endswith("initial commit\n\n")

    def test_errors_are_reported(self, initialized):
        assert run(initialized, "add", "nope") == "File does not exist.\n"
        assert run(initialized, "commit", "x") == "No changes added to the commit.\n"
        assert run(initialized, "commit", "") == "Please enter a commit message.\n"
        assert run(initialized, "rm", "nope") == "No reason to remove the file.\n"
        assert run(initialized, "find", "nope") == "Found no commit with that message.\n"

    def test_state_persists_between_invocations(self, initialized):
        Path("wug.txt").write_text("hello")
        run(initialized, "add", "wug.txt")
        assert "=== Staged Files ===\nwug.txt\n" in run(initialized, "status")
        run(initialized, "commit", "one")
        assert "=== Staged Files ===\n\n" in run(initialized, "status")

    def test_find_and_global_log(self, initialized):
        Path("wug.txt").write_text("hello")
        run(initialized, "add", "wug.txt")
        run(initialized, "commit", "one")
        commit_id = run(initialized, "find", "one").strip()
        assert len(commit_id) == 40
        assert f"commit {commit_id}\n" in run(initialized, "global-log")

    def test_checkout_forms(self, initialized):
        Path("wug.txt").write_text("v1")
        run(initialized, "add", "wug.txt")
        run(initialized, "commit", "one")
        first = run(initialized, "find", "one").strip()
        Path("wug.txt").write_text("v2")
        run(initialized, "add", "wug.txt")
        run(initialized, "commit", "two")

        Path("wug.txt").write_text("scribble")
        assert run(initialized, "checkout", "--", "wug.txt") == ""
        assert Path("wug.txt").read_text() == "v2"
        assert run(initialized, "checkout", first[:8], "--", "wug.txt") == ""
        assert Path("wug.txt").read_text() == "v1"

        run(initialized, "branch", "dev")
        assert run(initialized, "checkout", "dev") == ""
        assert run(initialized, "checkout", "dev") == (
            "No need to checkout the current branch.\n"
        )
        assert run(initialized, "checkout", "nope") == "No such branch exists.\n"

    def test_branch_commands(self, initialized):
        assert run(initialized, "branch", "dev") == ""
        assert run(initialized, "branch", "dev") == (
            "A branch with that name already exists.\n"
        )
        assert run(initialized, "rm-branch", "master") == (
            "Cannot remove the current branch.\n"
        )
        assert run(initialized, "rm-branch", "dev") == ""
        assert run(initialized, "rm-branch", "dev") == (
            "A branch with that name does not exist.\n"
        )

    def test_reset(self, initialized):
        Path("wug.txt").write_text("v1")
        run(initialized, "add", "wug.txt")
        run(initialized, "commit", "one")
        first = run(initialized, "find", "one").strip()
        Path("wug.txt").write_text("v2")
        run(initialized, "add", "wug.txt")
        run(initialized, "commit", "two")
        assert run(initialized, "reset", first) == ""
        assert Path("wug.txt").read_text() == "v1"
        assert run(initialized, "reset", "ffffffffff") == "No commit with that id exists.\n"

    def test_merge_conflict(self, initialized):
        Path("f.txt").write_text("foo\n")
        run(initialized, "add", "f.txt")
        run(initialized, "commit", "base")
        run(initialized, "branch", "dev")
        Path("f.txt").write_text("bar\n")
        run(initialized, "add", "f.txt")
        run(initialized, "commit", "on master")
        run(initialized, "checkout", "dev")
        Path("f.txt").write_text("baz\n")
        run(initialized, "add", "f.txt")
        run(initialized, "commit", "on dev")
        run(initialized, "checkout", "master")

        assert run(initialized, "merge", "dev") == "Encountered a merge conflict.\n"
        assert Path("f.txt").read_text() == "<<<<<<< HEAD\nbar\n=======\nbaz\n>>>>>>>\n"
        assert "Merge: " in run(initialized, "log")
        assert run(initialized, "merge", "dev") == (
            "Given branch is an ancestor of the current branch.\n"
        )

    def test_fast_forward_message(self, initialized):
        run(initialized, "branch", "dev")
        run(initialized, "checkout", "dev")
        Path("f.txt").write_text("x")
        run(initialized, "add", "f.txt")
        run(initialized, "commit", "on dev")
        run(initialized, "checkout", "master")
        assert run(initialized, "merge", "dev") == "Current branch fast-forwarded.\n"
        assert Path("f.txt").read_text() == "x"


class TestRemoteCommands:
    def test_push_and_pull(self, runner):
        root = Path.cwd()
        for name in ("one", "two"):
            (root / name).mkdir()
        os.chdir(root / "two")
        run(runner, "init")
        os.chdir(root / "one")
        run(runner, "init")
        assert run(runner, "add-remote", "other", "../two") == ""
        assert run(runner, "add-remote", "other", "../two") == (
            "A remote with that name already exists.\n"
        )
        Path("wug.txt").write_text("shared")
        run(runner, "add", "wug.txt")
        run(runner, "commit", "shared work")
        assert run(runner, "push", "other", "feature") == ""

        os.chdir(root / "two")
        run(runner, "add-remote", "back", "../one")
        assert run(runner, "branch", "feature") == (
            "A branch with that name already exists.\n"
        )
        assert run(runner, "pull", "back", "master") == "Current branch fast-forwarded.\n"
        assert Path("wug.txt").read_text() == "shared"
        assert run(runner, "fetch", "back", "nope") == (
            "That remote does not have that branch.\n"
        )
        assert run(runner, "rm-remote", "back") == ""
        assert run(runner, "rm-remote", "back") == (
            "A remote with that name does not exist.\n"
        )


class TestOperandsAndFailures:
    def test_dash_prefixed_operands(self, initialized):
        Path("-notes").write_text("n")
        assert run(initialized, "add", "-notes") == ""
        assert run(initialized, "commit", "-fix typo") == ""
        assert "\n-fix typo\n" in run(initialized, "log")
        assert run(initialized, "find", "-fix typo").strip()
        assert run(initialized, "rm", "-notes") == ""
        assert not Path("-notes").exists()

    def test_io_failure_is_one_line(self, initialized):
        Path("x").write_text("v1")
        run(initialized, "add", "x")
        run(initialized, "commit", "one")
        first = run(initialized, "find", "one").strip()
        run(initialized, "rm", "x")
        run(initialized, "commit", "two")
        Path("x").mkdir()
        out = run(initialized, "checkout", first, "--", "x")
        assert out.startswith("Could not access x: ")
        assert out.count("\n") == 1
        assert Path("x").is_dir()
