"""Arithmetic over sparse score breakdowns.

Rubrics differ per contest, so every operation works over the union of the
keys it is given. Missing keys, ``None`` and non-numeric values count as 0.
"""
from __future__ import annotations

from numbers import Real
from typing import Iterable, Mapping

from contest_scoring.entities.contest import Entry, ScoreBreakdown
from contest_scoring.schemas.contest_config import ContestConfig


def _value(breakdown: Mapping[str, float | None], key: str) -> float:
    value = breakdown.get(key)
    if isinstance(value, bool) or not isinstance(value, Real):
        return 0
    return value


def _union_keys(*breakdowns: Mapping[str, float | None]) -> list[str]:
    keys: dict[str, None] = {}
    for breakdown in breakdowns:
        keys.update(dict.fromkeys(breakdown))
    return list(keys)


def empty_breakdown(config: ContestConfig | Iterable[str]) -> ScoreBreakdown:
    ids = config.attribute_ids if isinstance(config, ContestConfig) else list(config)
    return {attribute_id: 0 for attribute_id in ids}


def add_breakdowns(base: Mapping[str, float | None], delta: Mapping[str, float | None]) -> ScoreBreakdown:
    return {key: _value(base, key) + _value(delta, key) for key in _union_keys(base, delta)}


def diff_breakdowns(next_: Mapping[str, float | None], prev: Mapping[str, float | None]) -> ScoreBreakdown:
    return {key: _value(next_, key) - _value(prev, key) for key in _union_keys(next_, prev)}


def entry_averages(entry: Entry) -> ScoreBreakdown:
    """Per-attribute mean over the judges that gave the attribute a value.

    Attributes nobody scored (all N/A) map to None.
    """
    averages: ScoreBreakdown = {}
    for key in _union_keys(entry.score_totals, *entry.score_by_user.values()):
        scored = [b for b in entry.score_by_user.values() if b.get(key) is not None]
        averages[key] = _value(entry.score_totals, key) / len(scored) if scored else None
    return averages


def sum_breakdowns(breakdowns: Iterable[Mapping[str, float | None]]) -> ScoreBreakdown:
    total: ScoreBreakdown = {}
    for breakdown in breakdowns:
        total = add_breakdowns(total, breakdown)
    return total
