"""The ``kvlet`` command.

Every command takes a fixed number of operands. Errors and notices are
printed as one line on stdout and the exit status is always 0.
"""

import os
import sys
from contextlib import contextmanager
from typing import Iterator

import click
from loguru import logger

from .errors import KvletError, UsageError
from .repo import Repository, repository

LOG_LEVEL_ENV = "KVLET_LOG_LEVEL"


class VerbatimCommand(click.Command):
    """Command that receives its operands verbatim.

    Operands such as ``--`` or a message starting with ``-`` are never
    read as options.
    """

    def parse_args(self, ctx, args):
        return super().parse_args(ctx, ["--", *args])


class KvletGroup(click.Group):
    """Group that reports problems as plain messages instead of exiting."""

    command_class = VerbatimCommand

    def main(self, args=None, prog_name=None, **extra):
        if args is None:
            args = sys.argv[1:]
        args = list(args)
        extra.pop("standalone_mode", None)
        if not args:
            click.echo("Please enter a command.")
            return 0
        try:
            super().main(args, prog_name=prog_name, standalone_mode=False, **extra)
        except KvletError as e:
            click.echo(str(e))
        except click.UsageError:
            click.echo("Incorrect operands.")
        except OSError as e:
            logger.debug("I/O failure: {!r}", e)
            click.echo(_describe_os_error(e))
        return 0

    def resolve_command(self, ctx, args):
        if args and self.get_command(ctx, args[0]) is None:
            raise UsageError("No command with that name exists.")
        return super().resolve_command(ctx, args)


def _describe_os_error(error: OSError) -> str:
    reason = error.strerror or str(error)
    if error.filename is not None:
        return f"Could not access {os.path.basename(error.filename)}: {reason}."
    return f"Storage failure: {reason}."


def _configure_logging() -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=os.environ.get(LOG_LEVEL_ENV, "WARNING").upper(),
        format="{time:HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
    )
    logger.enable("kvlet")


@contextmanager
def _session() -> Iterator[Repository]:
    """Open the repository in the current directory; save it on success."""
    repo = repository(path=os.getcwd())
    try:
        yield repo
        repo.save()
    finally:
        repo.close()


def _echo(text: str) -> None:
    if text:
        click.echo(text)


@click.group(cls=KvletGroup)
def main() -> None:
    """A tiny version-control system."""
    _configure_logging()


@main.command()
def init() -> None:
    """Create a repository in the current directory."""
    repo = repository(path=os.getcwd(), create=True)
    repo.close()


@main.command()
@click.argument("filename")
def add(filename: str) -> None:
    """Stage a file for the next commit."""
    with _session() as repo:
        repo.add(filename)


@main.command()
@click.argument("message")
def commit(message: str) -> None:
    """Commit the staged changes."""
    with _session() as repo:
        repo.commit(message)


@main.command()
@click.argument("filename")
def rm(filename: str) -> None:
    """Unstage a file, or stage a tracked file for removal."""
    with _session() as repo:
        repo.rm(filename)


@main.command()
def log() -> None:
    """Show the history of the current head."""
    with _session() as repo:
        _echo(repo.log())


@main.command("global-log")
def global_log() -> None:
    """Show every commit ever made."""
    with _session() as repo:
        _echo(repo.global_log())


@main.command()
@click.argument("message")
def find(message: str) -> None:
    """Print the ids of commits with the given message."""
    with _session() as repo:
        _echo(repo.find(message))


@main.command()
def status() -> None:
    """Show branches, staged changes and untracked files."""
    with _session() as repo:
        _echo(repo.status())


@main.command()
@click.argument("operands", nargs=-1)
def checkout(operands: tuple[str, ...]) -> None:
    """checkout BRANCH | checkout -- FILE | checkout COMMIT -- FILE"""
    if len(operands) == 1 and operands[0] != "--":
        with _session() as repo:
            repo.checkout_branch(operands[0])
    elif len(operands) == 2 and operands[0] == "--":
        with _session() as repo:
            repo.checkout_file(operands[1])
    elif len(operands) == 3 and operands[1] == "--":
        with _session() as repo:
            repo.checkout_file(operands[2], operands[0])
    else:
        raise UsageError("Incorrect operands.")


@main.command()
@click.argument("name")
def branch(name: str) -> None:
    """Create a branch at the current head."""
    with _session() as repo:
        repo.branch(name)


@main.command("rm-branch")
@click.argument("name")
def rm_branch(name: str) -> None:
    """Delete a branch pointer."""
    with _session() as repo:
        repo.rm_branch(name)


@main.command()
@click.argument("commit_id")
def reset(commit_id: str) -> None:
    """Check out a commit and move the current branch to it."""
    with _session() as repo:
        repo.reset(commit_id)


@main.command()
@click.argument("branch_name")
def merge(branch_name: str) -> None:
    """Merge a branch into the current branch."""
    with _session() as repo:
        result = repo.merge(branch_name)
        for message in result.messages:
            click.echo(message)


@main.command("add-remote")
@click.argument("name")
@click.argument("location")
def add_remote(name: str, location: str) -> None:
    """Register another repository as a remote."""
    with _session() as repo:
        repo.add_remote(name, location)


@main.command("rm-remote")
@click.argument("name")
def rm_remote(name: str) -> None:
    """Forget a remote."""
    with _session() as repo:
        repo.rm_remote(name)


@main.command()
@click.argument("remote_name")
@click.argument("branch_name")
def push(remote_name: str, branch_name: str) -> None:
    """Append the current head's commits to a remote branch."""
    with _session() as repo:
        repo.push(remote_name, branch_name)


@main.command()
@click.argument("remote_name")
@click.argument("branch_name")
def fetch(remote_name: str, branch_name: str) -> None:
    """Copy a remote branch into REMOTE/BRANCH."""
    with _session() as repo:
        repo.fetch(remote_name, branch_name)


@main.command()
@click.argument("remote_name")
@click.argument("branch_name")
def pull(remote_name: str, branch_name: str) -> None:
    """Fetch a remote branch and merge it."""
    with _session() as repo:
        result = repo.pull(remote_name, branch_name)
        for message in result.messages:
            click.echo(message)
