"""Advisory per-entry score lock.

The lock lives on the entry itself. It is taken in the same write that
applies a score delta and released by a follow-up write; an unreleased lock
becomes acquirable again once ``expires_at`` passes.
"""
from __future__ import annotations

import random
import uuid
from datetime import datetime, timedelta

from contest_scoring.entities.contest import Entry, ScoreLock
from contest_scoring.scoring.errors import LockContention

SCORE_LOCK_TTL_MS = 2500
SCORE_LOCK_MAX_RETRIES = 5
SCORE_LOCK_BASE_DELAY_MS = 120
SCORE_LOCK_JITTER_MS = 140


def new_lock_token() -> str:
    return f"score-lock-{uuid.uuid4().hex}"


def is_lock_held(lock: ScoreLock | None, now: datetime) -> bool:
    if lock is None or not lock.locked:
        return False
    return lock.expires_at is not None and lock.expires_at > now


def check_lock(entry: Entry, token: str, now: datetime) -> LockContention | None:
    """Return the contention if another live token holds the entry, else None."""
    lock = entry.score_lock
    if not is_lock_held(lock, now) or lock.token == token:
        return None
    return LockContention(entry.id, holder_token=lock.token, expires_at=lock.expires_at)


def acquire_lock(token: str, now: datetime, ttl: timedelta = timedelta(milliseconds=SCORE_LOCK_TTL_MS)) -> ScoreLock:
    return ScoreLock(locked=True, token=token, expires_at=now + ttl, updated_at=now)


def release_lock(entry: Entry, token: str, now: datetime) -> bool:
    """Unlock ``entry`` in place when ``token`` still owns it. Returns whether it changed."""
    lock = entry.score_lock
    if lock is None or lock.token != token:
        return False
    entry.score_lock = ScoreLock(locked=False, token=None, expires_at=now, updated_at=now)
    return True


def lock_backoff(
    attempt: int,
    base_delay_ms: int = SCORE_LOCK_BASE_DELAY_MS,
    jitter_ms: int = SCORE_LOCK_JITTER_MS,
) -> float:
    """Seconds to wait before retry ``attempt``: exponential base plus random jitter."""
    delay_ms = base_delay_ms * (2 ** attempt) + random.uniform(0, jitter_ms)
    return delay_ms / 1000.0
