from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, TypeVar

from contest_scoring.entities.contest import ContestDocument, Entry, ScoreEntry
from contest_scoring.scoring.errors import StorageError

T = TypeVar("T")


class WriteConflict(StorageError):
    """The document kept changing between a transaction's read and its commit."""


class ContestTransaction:
    """Read snapshot plus buffered writes for one contest document.

    ``contest`` is a private copy; callers may mutate it freely. Only the
    fields passed to ``update`` are persisted at commit.
    """

    def __init__(self, contest: ContestDocument | None, now: datetime):
        self.contest = contest
        self.now = now
        self.entries: list[Entry] | None = None
        self.scores: list[ScoreEntry] | None = None

    @property
    def has_writes(self) -> bool:
        return self.entries is not None or self.scores is not None

    def update(self, *, entries: list[Entry] | None = None, scores: list[ScoreEntry] | None = None) -> None:
        if entries is not None:
            self.entries = entries
        if scores is not None:
            self.scores = scores


class ContestStore(ABC):

    @abstractmethod
    def fetch(self, contest_id: str) -> ContestDocument | None:
        pass

    @abstractmethod
    def save(self, contest: ContestDocument) -> None:
        pass

    @abstractmethod
    def run_transaction(self, contest_id: str, fn: Callable[[ContestTransaction], T]) -> T:
        """Run ``fn`` against a fresh snapshot and commit its writes atomically.

        ``fn`` is re-run on a storage-level write conflict. If it raises, nothing
        is written and the exception propagates. Transport and engine failures
        are raised as ``StorageError``.
        """
        pass
