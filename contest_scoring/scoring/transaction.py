"""Locked read-modify-write of an entry's score aggregates.

Every mutation of ``score_by_user``/``score_totals`` goes through
``ScoreTransactionRunner.run_locked_update``: the store guarantees the
document is committed atomically, the advisory lock makes a second writer
on the same entry back off and retry against fresh state instead of
overwriting the first writer's delta.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Generic, TypeVar

from contest_scoring.config.runtime import ScoringSettings
from contest_scoring.entities.contest import ContestDocument, Entry, ScoreBreakdown, ScoreEntry
from contest_scoring.scoring.breakdown import add_breakdowns, diff_breakdowns
from contest_scoring.scoring.errors import (
    ContestNotFound, EntryNotFound, LockContention, LockRetryExceeded, Result, ScoringError,
)
from contest_scoring.scoring.lock import acquire_lock, check_lock, lock_backoff, release_lock
from contest_scoring.services.interfaces.contest_store import ContestStore, ContestTransaction

T = TypeVar("T")


@dataclass
class ScoreUpdate(Generic[T]):
    """What a mutator wants written: the full entry and score lists plus its result."""
    entries: list[Entry]
    scores: list[ScoreEntry]
    result: T


Mutator = Callable[[ContestDocument, int, datetime], ScoreUpdate[T]]


def apply_entry_score_update(entry: Entry, judge_id: str, breakdown: ScoreBreakdown | None) -> Entry:
    """Replace one judge's breakdown and shift the totals by the difference.

    ``breakdown=None`` removes the judge. The entry is updated in place and returned.
    """
    score_by_user = dict(entry.score_by_user)
    previous = score_by_user.get(judge_id, {})
    if breakdown is None:
        score_by_user.pop(judge_id, None)
        delta = diff_breakdowns({}, previous)
    else:
        score_by_user[judge_id] = dict(breakdown)
        delta = diff_breakdowns(breakdown, previous)

    entry.score_by_user = score_by_user
    entry.score_totals = add_breakdowns(entry.score_totals, delta)
    return entry


class ScoreTransactionRunner:
    def __init__(
        self,
        store: ContestStore,
        settings: ScoringSettings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.settings = settings or ScoringSettings()
        self._sleep = sleep
        self.logger = logging.getLogger(__name__)

    async def run_locked_update(
        self,
        contest_id: str,
        entry_id: str,
        lock_token: str,
        mutator: Mutator[T],
    ) -> Result[T]:
        max_attempts = max(1, self.settings.lock_max_attempts)
        last_contention: LockContention | None = None

        for attempt in range(max_attempts):
            try:
                outcome = await asyncio.to_thread(
                    self.store.run_transaction,
                    contest_id,
                    lambda transaction: self._locked_body(transaction, contest_id, entry_id, lock_token, mutator),
                )
            except ScoringError as exc:
                self.logger.info("score update on %s/%s failed: %s", contest_id, entry_id, exc)
                return Result.failure(exc)

            if isinstance(outcome, LockContention):
                last_contention = outcome
                if attempt + 1 >= max_attempts:
                    break
                delay = lock_backoff(attempt, self.settings.lock_base_delay_ms, self.settings.lock_jitter_ms)
                self.logger.debug(
                    "entry %s locked by %s, retry %d/%d in %.3fs",
                    entry_id, outcome.holder_token, attempt + 1, max_attempts, delay,
                )
                await self._sleep(delay)
                continue

            await self._release(contest_id, entry_id, lock_token)
            return Result.success(outcome.result)

        self.logger.warning("entry %s still locked after %d attempts", entry_id, max_attempts)
        return Result.failure(LockRetryExceeded(entry_id, max_attempts, cause=last_contention))

    def _locked_body(
        self,
        transaction: ContestTransaction,
        contest_id: str,
        entry_id: str,
        lock_token: str,
        mutator: Mutator[T],
    ) -> ScoreUpdate[T] | LockContention:
        contest = transaction.contest
        if contest is None:
            raise ContestNotFound(contest_id)

        entry_index = contest.entry_index(entry_id)
        if entry_index == -1:
            raise EntryNotFound(entry_id)

        contention = check_lock(contest.entries[entry_index], lock_token, transaction.now)
        if contention is not None:
            return contention

        update = mutator(contest, entry_index, transaction.now)
        for entry in update.entries:
            if entry.id == entry_id:
                entry.score_lock = acquire_lock(lock_token, transaction.now, self.settings.lock_ttl)

        transaction.update(entries=update.entries, scores=update.scores)
        return update

    async def _release(self, contest_id: str, entry_id: str, lock_token: str) -> None:
        def body(transaction: ContestTransaction) -> None:
            contest = transaction.contest
            entry = contest.find_entry(entry_id) if contest is not None else None
            if entry is not None and release_lock(entry, lock_token, transaction.now):
                transaction.update(entries=contest.entries)

        try:
            await asyncio.to_thread(self.store.run_transaction, contest_id, body)
        except ScoringError:
            # The lock expires on its own at expires_at.
            self.logger.warning("failed to release score lock on entry %s", entry_id, exc_info=True)
