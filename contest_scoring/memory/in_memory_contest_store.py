from __future__ import annotations

import copy
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, TypeVar

from contest_scoring.config.runtime import ScoringSettings
from contest_scoring.entities.contest import ContestDocument, utc_now
from contest_scoring.services.interfaces.contest_store import (
    ContestStore, ContestTransaction, WriteConflict,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class InMemoryContestStore(ContestStore):
    """Process-local document store with optimistic commit.

    Transactions read a copy, run outside the mutex, then commit only if the
    document version is unchanged; otherwise the transaction body is re-run.
    """

    def __init__(self, max_commit_attempts: int = 5, clock: Callable[[], datetime] = utc_now):
        self._storage: Dict[str, ContestDocument] = {}
        self._mutex = threading.Lock()
        self._max_commit_attempts = max_commit_attempts
        self._clock = clock
        self.commits = 0

    @classmethod
    def from_settings(
        cls,
        settings: ScoringSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> "InMemoryContestStore":
        """Store sized by ``STORE_MAX_COMMIT_ATTEMPTS`` (or the given settings)."""
        settings = settings or ScoringSettings.from_env()
        return cls(max_commit_attempts=settings.store_max_commit_attempts, clock=clock)

    def fetch(self, contest_id: str) -> ContestDocument | None:
        with self._mutex:
            contest = self._storage.get(contest_id)
            return contest.copy() if contest is not None else None

    def save(self, contest: ContestDocument) -> None:
        with self._mutex:
            stored = contest.copy()
            current = self._storage.get(contest.id)
            stored.version = (current.version + 1) if current is not None else max(contest.version, 0)
            stored.updated_at = self._clock()
            self._storage[contest.id] = stored

    def run_transaction(self, contest_id: str, fn: Callable[[ContestTransaction], T]) -> T:
        for attempt in range(self._max_commit_attempts):
            with self._mutex:
                current = self._storage.get(contest_id)
                snapshot = current.copy() if current is not None else None
            read_version = snapshot.version if snapshot is not None else None

            transaction = ContestTransaction(snapshot, self._clock())
            result = fn(transaction)
            if not transaction.has_writes:
                return result

            try:
                self._commit(contest_id, read_version, transaction)
            except WriteConflict:
                logger.debug("write conflict on contest %s (attempt %d)", contest_id, attempt + 1)
                continue
            return result

        raise WriteConflict(
            f"contest {contest_id} kept changing; gave up after {self._max_commit_attempts} attempts"
        )

    def _commit(self, contest_id: str, read_version: int | None, transaction: ContestTransaction) -> None:
        with self._mutex:
            current = self._storage.get(contest_id)
            if current is None or current.version != read_version:
                raise WriteConflict(contest_id)

            updated = current.copy()
            if transaction.entries is not None:
                updated.entries = copy.deepcopy(transaction.entries)
            if transaction.scores is not None:
                updated.scores = copy.deepcopy(transaction.scores)
            updated.version = current.version + 1
            updated.updated_at = transaction.now
            self._storage[contest_id] = updated
            self.commits += 1

    def clear(self) -> None:
        """Clear all contests (only for testing)."""
        with self._mutex:
            self._storage.clear()
