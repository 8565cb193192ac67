"""Score service: rubric-checked judge submissions applied through the locked aggregate update."""
from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from typing import Any, Iterable

from contest_scoring.config.runtime import ScoringSettings
from contest_scoring.entities.contest import ContestDocument, Entry, ScoreBreakdown, ScoreEntry
from contest_scoring.schemas.contest_config import ContestConfig
from contest_scoring.schemas.templates import default_config as template_config
from contest_scoring.scoring.breakdown import sum_breakdowns
from contest_scoring.scoring.errors import (
    ContestNotFound, Result, ScoreNotFound, ScoringError, ValidationFailed,
)
from contest_scoring.scoring.lock import new_lock_token
from contest_scoring.scoring.rubric import effective_config, normalize_na_attributes, validate_breakdown
from contest_scoring.scoring.transaction import (
    ScoreTransactionRunner, ScoreUpdate, apply_entry_score_update,
)
from contest_scoring.services.interfaces.contest_store import ContestStore


def generate_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def _prepare_breakdown(
    updates: Any,
    config: ContestConfig,
    na_attribute_ids: list[str],
    base: ScoreBreakdown | None = None,
) -> ScoreBreakdown:
    """Overlay ``updates`` on ``base`` with N/A attributes blanked, then validate.

    ``updates=None`` is only a no-op when revising an existing ``base``.
    """
    if not isinstance(updates, Mapping) and (updates is not None or base is None):
        raise ValidationFailed(validate_breakdown(updates, config, na_attribute_ids))

    breakdown: ScoreBreakdown = dict(base or {})
    for attribute_id in na_attribute_ids:
        breakdown[attribute_id] = None
    breakdown.update(updates or {})

    errors = validate_breakdown(breakdown, config, na_attribute_ids)
    if errors:
        raise ValidationFailed(errors)
    return breakdown


def _find_judge_score(scores: Iterable[ScoreEntry], entry_id: str, judge_id: str) -> int:
    return next(
        (i for i, s in enumerate(scores) if s.entry_id == entry_id and s.judge_id == judge_id),
        -1,
    )


class ScoreService:
    def __init__(
        self,
        store: ContestStore,
        settings: ScoringSettings | None = None,
        default_config: ContestConfig | None = None,
        runner: ScoreTransactionRunner | None = None,
    ):
        self.store = store
        self.settings = settings or ScoringSettings()
        self.default_rubric = default_config or template_config(self.settings.default_contest_template)
        self.runner = runner or ScoreTransactionRunner(store, self.settings)
        self.logger = logging.getLogger(__name__)

    # mutations

    async def submit(
        self,
        contest_id: str,
        entry_id: str,
        judge_id: str,
        breakdown: Any,
        notes: str | None = None,
        na_attribute_ids: Iterable[str] | None = None,
    ) -> Result[ScoreEntry]:
        """Record a judge's score for an entry; a second submit by the same judge replaces the first."""
        try:
            contest = await self._fetch_contest(contest_id)
            config = self._config(contest)
            na_ids = normalize_na_attributes(na_attribute_ids, config)
            _prepare_breakdown(breakdown, config, na_ids)
        except ScoringError as exc:
            return Result.failure(exc)

        score_id = generate_id("score")

        def mutate(current: ContestDocument, entry_index: int, now) -> ScoreUpdate[ScoreEntry]:
            current_config = self._config(current)
            current_na = normalize_na_attributes(na_ids, current_config)
            prepared = _prepare_breakdown(breakdown, current_config, current_na)

            scores = list(current.scores)
            existing_index = _find_judge_score(scores, entry_id, judge_id)
            if existing_index != -1:
                existing = scores[existing_index]
                record = ScoreEntry(
                    id=existing.id,
                    entry_id=entry_id,
                    judge_id=judge_id,
                    breakdown=prepared,
                    notes=notes if notes is not None else existing.notes,
                    na_attribute_ids=current_na,
                )
                scores[existing_index] = record
            else:
                record = ScoreEntry(
                    id=score_id,
                    entry_id=entry_id,
                    judge_id=judge_id,
                    breakdown=prepared,
                    notes=notes,
                    na_attribute_ids=current_na,
                )
                scores.append(record)

            entries = list(current.entries)
            entries[entry_index] = apply_entry_score_update(entries[entry_index], judge_id, prepared)
            return ScoreUpdate(entries=entries, scores=scores, result=record)

        result = await self.runner.run_locked_update(contest_id, entry_id, new_lock_token(), mutate)
        if result.ok:
            self.logger.info("judge %s scored entry %s in contest %s", judge_id, entry_id, contest_id)
        return result

    async def update(
        self,
        contest_id: str,
        score_id: str,
        breakdown: Any = None,
        notes: str | None = None,
        na_attribute_ids: Iterable[str] | None = None,
    ) -> Result[ScoreEntry]:
        """Revise an existing score. Only the attributes present in ``breakdown`` change."""
        try:
            contest = await self._fetch_contest(contest_id)
            existing = contest.find_score(score_id)
            if existing is None:
                raise ScoreNotFound(score_id)
            config = self._config(contest)
            na_ids = normalize_na_attributes(
                na_attribute_ids if na_attribute_ids is not None else existing.na_attribute_ids, config,
            )
            _prepare_breakdown(breakdown, config, na_ids, base=existing.breakdown)
        except ScoringError as exc:
            return Result.failure(exc)

        def mutate(current: ContestDocument, entry_index: int, now) -> ScoreUpdate[ScoreEntry]:
            scores = list(current.scores)
            score_index = next((i for i, s in enumerate(scores) if s.id == score_id), -1)
            if score_index == -1:
                raise ScoreNotFound(score_id)

            committed = scores[score_index]
            current_config = self._config(current)
            current_na = normalize_na_attributes(
                na_attribute_ids if na_attribute_ids is not None else committed.na_attribute_ids,
                current_config,
            )
            prepared = _prepare_breakdown(breakdown, current_config, current_na, base=committed.breakdown)

            record = ScoreEntry(
                id=committed.id,
                entry_id=committed.entry_id,
                judge_id=committed.judge_id,
                breakdown=prepared,
                notes=notes if notes is not None else committed.notes,
                na_attribute_ids=current_na,
            )
            scores[score_index] = record

            entries = list(current.entries)
            entries[entry_index] = apply_entry_score_update(entries[entry_index], record.judge_id, prepared)
            return ScoreUpdate(entries=entries, scores=scores, result=record)

        return await self.runner.run_locked_update(contest_id, existing.entry_id, new_lock_token(), mutate)

    async def delete(self, contest_id: str, score_id: str) -> Result[None]:
        """Drop a score and subtract its breakdown from the entry totals."""
        try:
            contest = await self._fetch_contest(contest_id)
            existing = contest.find_score(score_id)
            if existing is None:
                raise ScoreNotFound(score_id)
        except ScoringError as exc:
            return Result.failure(exc)

        def mutate(current: ContestDocument, entry_index: int, now) -> ScoreUpdate[None]:
            committed = current.find_score(score_id)
            if committed is None:
                raise ScoreNotFound(score_id)

            scores = [s for s in current.scores if s.id != score_id]
            entries = list(current.entries)
            entries[entry_index] = apply_entry_score_update(entries[entry_index], committed.judge_id, None)
            return ScoreUpdate(entries=entries, scores=scores, result=None)

        result = await self.runner.run_locked_update(contest_id, existing.entry_id, new_lock_token(), mutate)
        if result.ok:
            self.logger.info("deleted score %s from contest %s", score_id, contest_id)
        return result

    async def rebuild_entry_totals(self, contest_id: str, entry_id: str) -> Result[Entry]:
        """Recompute an entry's per-judge breakdowns and totals from the flat score list."""

        def mutate(current: ContestDocument, entry_index: int, now) -> ScoreUpdate[Entry]:
            score_by_user: dict[str, ScoreBreakdown] = {}
            for score in current.scores:
                if score.entry_id == entry_id:
                    score_by_user[score.judge_id] = dict(score.breakdown)

            entries = list(current.entries)
            entry = entries[entry_index]
            entry.score_by_user = score_by_user
            entry.score_totals = sum_breakdowns(score_by_user.values())
            return ScoreUpdate(entries=entries, scores=list(current.scores), result=entry)

        result = await self.runner.run_locked_update(contest_id, entry_id, new_lock_token(), mutate)
        if result.ok:
            self.logger.info("rebuilt score totals for entry %s in contest %s", entry_id, contest_id)
        return result

    # lock-free reads

    async def list_by_entry(self, contest_id: str, entry_id: str) -> Result[list[ScoreEntry]]:
        return await self._read(contest_id, lambda c: [s for s in c.scores if s.entry_id == entry_id])

    async def list_by_judge(self, contest_id: str, judge_id: str) -> Result[list[ScoreEntry]]:
        return await self._read(contest_id, lambda c: [s for s in c.scores if s.judge_id == judge_id])

    async def get_by_id(self, contest_id: str, score_id: str) -> Result[ScoreEntry | None]:
        return await self._read(contest_id, lambda c: c.find_score(score_id))

    # helpers

    async def _read(self, contest_id: str, select) -> Result:
        try:
            contest = await self._fetch_contest(contest_id)
        except ScoringError as exc:
            return Result.failure(exc)
        return Result.success(select(contest))

    async def _fetch_contest(self, contest_id: str) -> ContestDocument:
        contest = await asyncio.to_thread(self.store.fetch, contest_id)
        if contest is None:
            raise ContestNotFound(contest_id)
        return contest

    def _config(self, contest: ContestDocument) -> ContestConfig:
        return effective_config(contest, self.default_rubric)
