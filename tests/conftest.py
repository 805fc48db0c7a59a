"""Shared fixtures: an in-memory repository over a temporary working tree."""

import pytest

from kvlet import repository


class TickClock:
    """Deterministic, strictly increasing commit timestamps."""

    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        n = self.ticks
        return f"Tue Nov 14 {n // 3600:02d}:{n // 60 % 60:02d}:{n % 60:02d} 2023 +0000"


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def repo(workdir):
    return repository("memory", path=workdir, create=True, clock=TickClock())


@pytest.fixture
def commit_files(repo):
    """Write files, stage them, and commit. ``None`` stages a removal."""

    def _commit(message: str, **files: str | None):
        for name, text in files.items():
            if text is None:
                repo.rm(name)
            else:
                (repo.root / name).write_text(text)
                repo.add(name)
        return repo.commit(message)

    return _commit


@pytest.fixture
def disk_repo(tmp_path):
    """Factory for disk-backed repositories under ``tmp_path``."""
    opened = []

    def _make(name: str, create: bool = True):
        path = tmp_path / name
        path.mkdir(exist_ok=True)
        repo = repository("disk", path=path, create=create, clock=TickClock())
        opened.append(repo)
        return repo

    yield _make
    for repo in opened:
        repo.close()
