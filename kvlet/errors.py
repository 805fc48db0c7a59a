"""kvlet error types.

Every error carries the single line shown to the user as its message.
"""


class KvletError(Exception):
    """Base class for all errors reported to the user."""


class UsageError(KvletError):
    """Raised for malformed invocations: bad operands, unknown commands,
    or running outside a repository."""


class NotFoundError(KvletError):
    """Raised when a commit, branch, remote, or file cannot be found."""


class StateViolationError(KvletError):
    """Raised when the repository is not in a state that allows the
    requested operation (uncommitted changes, nothing to commit, an
    untracked file in the way, a duplicate name, ...)."""


ValidationError = StateViolationError


class StorageError(KvletError):
    """Raised when stored records are missing or cannot be decoded.

    These indicate a damaged repository rather than a user mistake.
    """
