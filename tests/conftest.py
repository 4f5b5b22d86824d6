"""
Shared pytest fixtures for respace tests.

Provides a controllable clock and an in-memory storage gateway so store
tests never touch the filesystem or depend on the wall clock.
"""

from datetime import datetime, timedelta

import pytest

from respace.review_store import ReviewStore
from respace.types import MS_PER_DAY


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.ms = int(start.timestamp() * 1000)

    def __call__(self) -> int:
        return self.ms

    def advance(self, *, days: float = 0, minutes: float = 0, ms: int = 0) -> int:
        self.ms += int(days * MS_PER_DAY) + int(minutes * 60_000) + ms
        return self.ms

    def next_morning(self) -> int:
        """Jump to 09:00 local time on the following calendar day."""
        current = datetime.fromtimestamp(self.ms / 1000)
        target = (current + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0)
        self.ms = int(target.timestamp() * 1000)
        return self.ms


class MemoryGateway:
    """
    In-memory StorageGateway with failure injection.

    Set fail_writes / fail_reads to make the next operations raise OSError.
    """

    def __init__(self, files: dict[str, str] | None = None):
        self.files: dict[str, str] = dict(files or {})
        self.fail_writes = False
        self.fail_reads = False
        self.writes = 0

    def exists(self, path: str) -> bool:
        return path in self.files

    def read(self, path: str) -> str:
        if self.fail_reads:
            raise OSError("simulated read failure")
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def write(self, path: str, content: str) -> None:
        if self.fail_writes:
            raise OSError("simulated write failure")
        self.writes += 1
        self.files[path] = content


@pytest.fixture
def clock() -> FakeClock:
    """Clock at 09:00 local time on a fixed day."""
    return FakeClock(datetime(2026, 3, 10, 9, 0, 0))


@pytest.fixture
def gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture
def store(gateway, clock) -> ReviewStore:
    """Empty, loaded store with the default limit of 20 new items per day."""
    s = ReviewStore(gateway, "data.json", clock=clock)
    s.load()
    return s
