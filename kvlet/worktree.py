"""Working directory access.

Only plain files directly inside the repository root are tracked;
subdirectories (including the repository's own metadata directory)
are ignored.
"""

import os
from pathlib import Path

from .codec import content_hash


class WorkingTree:
    """Plain files in the root directory of a repository."""

    def __init__(self, root: str | os.PathLike) -> None:
        self.root = Path(root)

    def path(self, filename: str) -> Path:
        return self.root / filename

    def files(self) -> list[str]:
        """Names of all plain files in the root, sorted."""
        return sorted(
            entry.name for entry in os.scandir(self.root) if entry.is_file()
        )

    def exists(self, filename: str) -> bool:
        return self.path(filename).is_file()

    def read(self, filename: str) -> bytes:
        return self.path(filename).read_bytes()

    def write(self, filename: str, data: bytes) -> None:
        self.path(filename).write_bytes(data)

    def delete(self, filename: str) -> None:
        """Delete a file if present."""
        self.path(filename).unlink(missing_ok=True)

    def hash(self, filename: str) -> str:
        return content_hash(self.read(filename))
