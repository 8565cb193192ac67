from __future__ import annotations

import asyncio
import unittest
from datetime import timedelta

from contest_scoring.config.runtime import ScoringSettings
from contest_scoring.entities.contest import ContestDocument, Entry, ScoreLock, utc_now
from contest_scoring.memory.in_memory_contest_store import InMemoryContestStore
from contest_scoring.scoring.errors import (
    ContestNotFound, EntryNotFound, LockContention, LockRetryExceeded, StorageError,
)
from contest_scoring.scoring.transaction import (
    ScoreTransactionRunner, ScoreUpdate, apply_entry_score_update,
)


class RecordingSleep:
    def __init__(self, on_sleep=None):
        self.delays: list[float] = []
        self._on_sleep = on_sleep

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self._on_sleep is not None:
            self._on_sleep()


class FailingReleaseStore(InMemoryContestStore):
    """Commits the first transaction, then fails every later one."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def run_transaction(self, contest_id, fn):
        self.calls += 1
        if self.calls > 1:
            raise StorageError("connection reset")
        return super().run_transaction(contest_id, fn)


class BrokenStore(InMemoryContestStore):
    def run_transaction(self, contest_id, fn):
        raise StorageError("database unavailable")


def _seed(store, lock=None):
    store.save(ContestDocument(id="c1", entries=[Entry(id="e1", score_lock=lock), Entry(id="e2")]))


def _add_judge(judge_id, breakdown):
    def mutate(contest, entry_index, now):
        entries = list(contest.entries)
        entries[entry_index] = apply_entry_score_update(entries[entry_index], judge_id, breakdown)
        return ScoreUpdate(entries=entries, scores=list(contest.scores), result=entries[entry_index])
    return mutate


def _foreign_lock():
    now = utc_now()
    return ScoreLock(locked=True, token="other-writer", expires_at=now + timedelta(hours=1), updated_at=now)


SETTINGS = ScoringSettings(lock_max_attempts=4, lock_base_delay_ms=10, lock_jitter_ms=0)


class TestApplyEntryScoreUpdate(unittest.TestCase):
    def test_new_judge_adds_to_totals(self):
        entry = Entry(id="e1", score_by_user={"j1": {"aroma": 8}}, score_totals={"aroma": 8})
        apply_entry_score_update(entry, "j2", {"aroma": 6})
        self.assertEqual(entry.score_totals, {"aroma": 14})
        self.assertEqual(entry.score_by_user, {"j1": {"aroma": 8}, "j2": {"aroma": 6}})

    def test_revision_shifts_totals_by_difference(self):
        entry = Entry(id="e1", score_by_user={"j1": {"aroma": 8}}, score_totals={"aroma": 8})
        apply_entry_score_update(entry, "j1", {"aroma": 9})
        self.assertEqual(entry.score_totals, {"aroma": 9})

    def test_none_removes_judge(self):
        entry = Entry(
            id="e1",
            score_by_user={"j1": {"aroma": 8}, "j2": {"aroma": 6}},
            score_totals={"aroma": 14},
        )
        apply_entry_score_update(entry, "j1", None)
        self.assertEqual(entry.score_by_user, {"j2": {"aroma": 6}})
        self.assertEqual(entry.score_totals, {"aroma": 6})


class TestScoreTransactionRunner(unittest.TestCase):
    def test_success_commits_and_releases_lock(self):
        store = InMemoryContestStore()
        _seed(store)
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=RecordingSleep())

        result = asyncio.run(runner.run_locked_update("c1", "e1", "tok", _add_judge("j1", {"aroma": 7})))

        self.assertTrue(result.ok)
        entry = store.fetch("c1").find_entry("e1")
        self.assertEqual(entry.score_totals, {"aroma": 7})
        self.assertFalse(entry.score_lock.locked)
        # update + release
        self.assertEqual(store.commits, 2)

    def test_lock_is_held_inside_the_committed_write(self):
        store = InMemoryContestStore()
        _seed(store)
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=RecordingSleep())
        seen = []

        async def no_release(contest_id, entry_id, lock_token):
            seen.append(store.fetch(contest_id).find_entry(entry_id).score_lock)

        runner._release = no_release
        asyncio.run(runner.run_locked_update("c1", "e1", "tok", _add_judge("j1", {"aroma": 7})))

        self.assertTrue(seen[0].locked)
        self.assertEqual(seen[0].token, "tok")

    def test_missing_contest(self):
        runner = ScoreTransactionRunner(InMemoryContestStore(), SETTINGS, sleep=RecordingSleep())
        result = asyncio.run(runner.run_locked_update("nope", "e1", "tok", _add_judge("j1", {})))
        self.assertIsInstance(result.error, ContestNotFound)

    def test_missing_entry(self):
        store = InMemoryContestStore()
        _seed(store)
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=RecordingSleep())
        result = asyncio.run(runner.run_locked_update("c1", "ghost", "tok", _add_judge("j1", {})))
        self.assertIsInstance(result.error, EntryNotFound)
        self.assertEqual(store.commits, 0)

    def test_contention_backs_off_then_succeeds(self):
        store = InMemoryContestStore()
        _seed(store, lock=_foreign_lock())

        def other_writer_finishes():
            contest = store.fetch("c1")
            contest.find_entry("e1").score_lock = None
            store.save(contest)

        sleep = RecordingSleep(on_sleep=other_writer_finishes)
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=sleep)

        result = asyncio.run(runner.run_locked_update("c1", "e1", "tok", _add_judge("j1", {"aroma": 5})))

        self.assertTrue(result.ok)
        self.assertEqual(sleep.delays, [0.01])
        self.assertEqual(store.fetch("c1").find_entry("e1").score_totals, {"aroma": 5})

    def test_retry_limit_reports_last_contention(self):
        store = InMemoryContestStore()
        _seed(store, lock=_foreign_lock())
        sleep = RecordingSleep()
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=sleep)

        result = asyncio.run(runner.run_locked_update("c1", "e1", "tok", _add_judge("j1", {"aroma": 5})))

        self.assertIsInstance(result.error, LockRetryExceeded)
        self.assertEqual(result.error.attempts, 4)
        self.assertIsInstance(result.error.cause, LockContention)
        self.assertEqual(result.error.cause.holder_token, "other-writer")
        # no sleep after the final attempt
        self.assertEqual(sleep.delays, [0.01, 0.02, 0.04])

        entry = store.fetch("c1").find_entry("e1")
        self.assertEqual(entry.score_totals, {})
        self.assertEqual(entry.score_lock.token, "other-writer")

    def test_expired_foreign_lock_is_taken_over_without_waiting(self):
        now = utc_now()
        stale = ScoreLock(locked=True, token="crashed-writer", expires_at=now - timedelta(seconds=1), updated_at=now)
        store = InMemoryContestStore()
        _seed(store, lock=stale)
        sleep = RecordingSleep()
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=sleep)
        seen = []

        async def no_release(contest_id, entry_id, lock_token):
            seen.append(store.fetch(contest_id).find_entry(entry_id).score_lock)

        runner._release = no_release
        result = asyncio.run(runner.run_locked_update("c1", "e1", "tok", _add_judge("j1", {"aroma": 4})))

        self.assertTrue(result.ok)
        self.assertEqual(sleep.delays, [])
        self.assertEqual(seen[0].token, "tok")
        self.assertTrue(seen[0].locked)
        self.assertEqual(store.fetch("c1").find_entry("e1").score_totals, {"aroma": 4})

    def test_contention_on_one_entry_leaves_others_free(self):
        store = InMemoryContestStore()
        _seed(store, lock=_foreign_lock())
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=RecordingSleep())

        result = asyncio.run(runner.run_locked_update("c1", "e2", "tok", _add_judge("j1", {"aroma": 3})))

        self.assertTrue(result.ok)

    def test_storage_failure_is_returned(self):
        store = BrokenStore()
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=RecordingSleep())
        result = asyncio.run(runner.run_locked_update("c1", "e1", "tok", _add_judge("j1", {})))
        self.assertIsInstance(result.error, StorageError)

    def test_release_failure_is_logged_and_update_stands(self):
        store = FailingReleaseStore()
        _seed(store)
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=RecordingSleep())

        with self.assertLogs("contest_scoring.scoring.transaction", level="WARNING") as logs:
            result = asyncio.run(runner.run_locked_update("c1", "e1", "tok", _add_judge("j1", {"aroma": 2})))

        self.assertTrue(result.ok)
        self.assertIn("failed to release score lock on entry e1", logs.output[0])
        entry = store.fetch("c1").find_entry("e1")
        self.assertEqual(entry.score_totals, {"aroma": 2})
        self.assertEqual(entry.score_lock.token, "tok")

    def test_mutator_bug_propagates_without_writing(self):
        store = InMemoryContestStore()
        _seed(store)
        runner = ScoreTransactionRunner(store, SETTINGS, sleep=RecordingSleep())

        def broken(contest, entry_index, now):
            raise RuntimeError("boom")

        with self.assertRaises(RuntimeError):
            asyncio.run(runner.run_locked_update("c1", "e1", "tok", broken))
        self.assertEqual(store.commits, 0)


if __name__ == "__main__":
    unittest.main()
