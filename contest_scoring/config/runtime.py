from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
import os


@dataclass(frozen=True)
class ScoringSettings:
    lock_ttl_ms: int = 2500
    lock_max_attempts: int = 5
    lock_base_delay_ms: int = 120
    lock_jitter_ms: int = 140
    store_max_commit_attempts: int = 5
    default_contest_template: str = "mixology"

    @property
    def lock_ttl(self) -> timedelta:
        return timedelta(milliseconds=self.lock_ttl_ms)

    @classmethod
    def from_env(cls) -> "ScoringSettings":
        return cls(
            lock_ttl_ms=int(os.getenv("SCORE_LOCK_TTL_MS", "2500")),
            lock_max_attempts=int(os.getenv("SCORE_LOCK_MAX_RETRIES", "5")),
            lock_base_delay_ms=int(os.getenv("SCORE_LOCK_BASE_DELAY_MS", "120")),
            lock_jitter_ms=int(os.getenv("SCORE_LOCK_JITTER_MS", "140")),
            store_max_commit_attempts=int(os.getenv("STORE_MAX_COMMIT_ATTEMPTS", "5")),
            default_contest_template=os.getenv("DEFAULT_CONTEST_TEMPLATE", "mixology"),
        )
