"""Record encoding and hashing for commits and trees.

Records are versioned JSON so commit ids stay reproducible:

- tree: ``{"version": 1, "entries": [[name, blob_hash], ...]}`` in
  insertion order.
- commit: ``{"version": 1, "message": ..., "timestamp": ...,
  "parent": ..., "second_parent": ...}`` with sorted keys.
"""

import hashlib
import json
import time
from typing import Any, Callable, Mapping

from .errors import StorageError

RECORD_VERSION = 1
HASH_LENGTH = 40

ROOT_MESSAGE = "initial commit"
# Unpadded day, unlike TIMESTAMP_FORMAT; the root record must hash the same everywhere.
EPOCH_TIMESTAMP = "Thu Jan 1 00:00:00 1970 -0000"
TIMESTAMP_FORMAT = "%a %b %d %H:%M:%S %Y %z"

Clock = Callable[[], str]


def content_hash(*parts: bytes) -> str:
    """SHA-1 hex digest over the concatenation of ``parts``."""
    h = hashlib.sha1()
    for part in parts:
        h.update(part)
    return h.hexdigest()


def timestamp() -> str:
    """Current local time in commit timestamp format."""
    return time.strftime(TIMESTAMP_FORMAT, time.localtime())


def _field(value: str | None) -> bytes:
    return json.dumps(value).encode("utf-8")


def encode_tree(tree: Mapping[str, str]) -> bytes:
    entries = [[name, blob] for name, blob in tree.items()]
    return json.dumps(
        {"version": RECORD_VERSION, "entries": entries}, separators=(",", ":")
    ).encode("utf-8")


def decode_tree(raw: bytes) -> dict[str, str]:
    record = _load(raw, "tree")
    try:
        return {name: blob for name, blob in record["entries"]}
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Malformed tree record: {e}") from e


def encode_commit(
    message: str,
    timestamp: str,
    parent: str | None,
    second_parent: str | None = None,
) -> bytes:
    record = {
        "version": RECORD_VERSION,
        "message": message,
        "timestamp": timestamp,
        "parent": parent,
        "second_parent": second_parent,
    }
    return json.dumps(record, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_commit(raw: bytes) -> dict[str, Any]:
    record = _load(raw, "commit")
    missing = {"message", "timestamp", "parent", "second_parent"} - record.keys()
    if missing:
        raise StorageError(
            f"Malformed commit record: missing {', '.join(sorted(missing))}"
        )
    return record


def commit_id(
    tree: Mapping[str, str], message: str, timestamp: str, parent: str | None
) -> str:
    """Id of an ordinary or merge commit.

    The second parent of a merge commit is not part of the hash input.
    """
    return content_hash(
        encode_tree(tree), _field(message), _field(timestamp), _field(parent)
    )


def root_commit_id(record: bytes) -> str:
    """Id of the root commit: the hash of its whole record."""
    return content_hash(record)


def _load(raw: bytes, kind: str) -> dict[str, Any]:
    try:
        record = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StorageError(f"Undecodable {kind} record: {e}") from e
    if not isinstance(record, dict):
        raise StorageError(f"Undecodable {kind} record: not an object")
    version = record.get("version")
    if version != RECORD_VERSION:
        raise StorageError(f"Unsupported {kind} record version: {version!r}")
    return record
