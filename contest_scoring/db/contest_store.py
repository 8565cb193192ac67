from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, TypeVar

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlmodel import Session, select

from contest_scoring.config.runtime import ScoringSettings
from contest_scoring.db.session import create_session, get_engine
from contest_scoring.db.tables import ContestRow
from contest_scoring.entities.contest import ContestDocument, utc_now
from contest_scoring.scoring.errors import StorageError
from contest_scoring.services.interfaces.contest_store import (
    ContestStore, ContestTransaction, WriteConflict,
)

T = TypeVar("T")

logger = logging.getLogger(__name__)


class DBContestStore(ContestStore):
    """Contest documents in the ``contests`` table.

    A transaction reads the row ``FOR UPDATE`` and commits with a
    compare-and-set on ``version``; a lost race or a serialization failure
    re-runs the transaction body against a fresh read.
    """

    def __init__(
        self,
        engine: Engine,
        max_commit_attempts: int = 5,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._engine = engine
        self._max_commit_attempts = max_commit_attempts
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        engine: Engine | None = None,
        settings: ScoringSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> "DBContestStore":
        """Store on the configured database, retrying up to ``STORE_MAX_COMMIT_ATTEMPTS``."""
        settings = settings or ScoringSettings.from_env()
        return cls(engine or get_engine(), max_commit_attempts=settings.store_max_commit_attempts, clock=clock)

    def fetch(self, contest_id: str) -> ContestDocument | None:
        try:
            with create_session(self._engine) as session:
                row = session.get(ContestRow, contest_id)
                return self._row_to_domain(row) if row else None
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to read contest {contest_id}", exc) from exc

    def save(self, contest: ContestDocument) -> None:
        row = self._domain_to_row(contest)
        try:
            with create_session(self._engine) as session:
                existing = session.get(ContestRow, contest.id)
                if existing is None:
                    session.add(row)
                else:
                    existing.name = row.name
                    existing.config_jsonb = row.config_jsonb
                    existing.entries_jsonb = row.entries_jsonb
                    existing.scores_jsonb = row.scores_jsonb
                    existing.version = existing.version + 1
                    existing.updated_at = row.updated_at
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"failed to save contest {contest.id}", exc) from exc

    def run_transaction(self, contest_id: str, fn: Callable[[ContestTransaction], T]) -> T:
        last_error: SQLAlchemyError | None = None

        for attempt in range(self._max_commit_attempts):
            try:
                with create_session(self._engine) as session:
                    return self._attempt(session, contest_id, fn)
            except WriteConflict:
                logger.debug("write conflict on contest %s (attempt %d)", contest_id, attempt + 1)
            except OperationalError as exc:
                # serialization failures and deadlocks are worth another try
                last_error = exc
                logger.warning("transaction on contest %s failed (attempt %d): %s", contest_id, attempt + 1, exc)
            except SQLAlchemyError as exc:
                raise StorageError(f"transaction on contest {contest_id} failed", exc) from exc

        if last_error is not None:
            raise StorageError(f"transaction on contest {contest_id} failed", last_error) from last_error
        raise WriteConflict(
            f"contest {contest_id} kept changing; gave up after {self._max_commit_attempts} attempts"
        )

    def _attempt(self, session: Session, contest_id: str, fn: Callable[[ContestTransaction], T]) -> T:
        row = session.exec(
            select(ContestRow).where(ContestRow.id == contest_id).with_for_update()
        ).first()
        snapshot = self._row_to_domain(row) if row else None

        transaction = ContestTransaction(snapshot, self._clock())
        result = fn(transaction)
        if not transaction.has_writes:
            session.rollback()
            return result
        if row is None:
            raise StorageError(f"cannot write to missing contest {contest_id}")

        values: dict = {"version": row.version + 1, "updated_at": transaction.now}
        if transaction.entries is not None:
            values["entries_jsonb"] = [e.to_dict() for e in transaction.entries]
        if transaction.scores is not None:
            values["scores_jsonb"] = [s.to_dict() for s in transaction.scores]

        outcome = session.execute(
            update(ContestRow)
            .where(ContestRow.id == contest_id, ContestRow.version == row.version)
            .values(**values)
        )
        if outcome.rowcount != 1:
            session.rollback()
            raise WriteConflict(contest_id)

        session.commit()
        return result

    @staticmethod
    def _row_to_domain(row: ContestRow) -> ContestDocument:
        return ContestDocument.from_dict({
            "id": row.id,
            "name": row.name,
            "config": row.config_jsonb,
            "entries": row.entries_jsonb or [],
            "scores": row.scores_jsonb or [],
            "version": row.version,
            "updated_at": row.updated_at,
        })

    def _domain_to_row(self, contest: ContestDocument) -> ContestRow:
        data = contest.to_dict()
        return ContestRow(
            id=contest.id,
            name=contest.name,
            version=contest.version,
            config_jsonb=data["config"],
            entries_jsonb=data["entries"],
            scores_jsonb=data["scores"],
            updated_at=self._clock(),
        )
