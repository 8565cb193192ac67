from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from contest_scoring.schemas.contest_config import ContestConfig

# attribute id -> value; None means "not scored"
ScoreBreakdown = dict[str, float | None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_ts(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class ScoreLock:
    """Advisory lock stamp stored on an entry next to the aggregates it guards."""
    locked: bool = False
    token: str | None = None
    expires_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "locked": self.locked,
            "token": self.token,
            "expires_at": _format_ts(self.expires_at),
            "updated_at": _format_ts(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreLock":
        return cls(
            locked=bool(data.get("locked", False)),
            token=data.get("token"),
            expires_at=_parse_ts(data.get("expires_at")),
            updated_at=_parse_ts(data.get("updated_at")),
        )


@dataclass
class Entry:
    """A contest entry with its per-judge breakdowns and running totals."""
    id: str
    name: str = ""
    score_by_user: dict[str, ScoreBreakdown] = field(default_factory=dict)
    score_totals: ScoreBreakdown = field(default_factory=dict)
    score_lock: ScoreLock | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "score_by_user": {judge: dict(b) for judge, b in self.score_by_user.items()},
            "score_totals": dict(self.score_totals),
            "score_lock": self.score_lock.to_dict() if self.score_lock else None,
            "meta": dict(self.meta),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Entry":
        lock = data.get("score_lock")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            score_by_user={judge: dict(b) for judge, b in (data.get("score_by_user") or {}).items()},
            score_totals=dict(data.get("score_totals") or {}),
            score_lock=ScoreLock.from_dict(lock) if lock else None,
            meta=dict(data.get("meta") or {}),
        )


@dataclass
class ScoreEntry:
    """One judge's score for one entry, as kept in the contest-level list."""
    id: str
    entry_id: str
    judge_id: str
    breakdown: ScoreBreakdown = field(default_factory=dict)
    notes: str | None = None
    na_attribute_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "entry_id": self.entry_id,
            "judge_id": self.judge_id,
            "breakdown": dict(self.breakdown),
            "na_attribute_ids": list(self.na_attribute_ids),
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoreEntry":
        return cls(
            id=data["id"],
            entry_id=data["entry_id"],
            judge_id=data["judge_id"],
            breakdown=dict(data.get("breakdown") or {}),
            notes=data.get("notes"),
            na_attribute_ids=list(data.get("na_attribute_ids") or []),
        )


@dataclass
class ContestDocument:
    """The single stored document holding a contest's entries and score list."""
    id: str
    name: str = ""
    config: ContestConfig | None = None
    entries: list[Entry] = field(default_factory=list)
    scores: list[ScoreEntry] = field(default_factory=list)
    version: int = 0
    updated_at: datetime = field(default_factory=utc_now)

    def entry_index(self, entry_id: str) -> int:
        return next((i for i, e in enumerate(self.entries) if e.id == entry_id), -1)

    def find_entry(self, entry_id: str) -> Entry | None:
        index = self.entry_index(entry_id)
        return self.entries[index] if index != -1 else None

    def find_score(self, score_id: str) -> ScoreEntry | None:
        return next((s for s in self.scores if s.id == score_id), None)

    def copy(self) -> "ContestDocument":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "config": self.config.model_dump(by_alias=True) if self.config else None,
            "entries": [e.to_dict() for e in self.entries],
            "scores": [s.to_dict() for s in self.scores],
            "version": self.version,
            "updated_at": _format_ts(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContestDocument":
        config = data.get("config")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            config=ContestConfig.model_validate(config) if config else None,
            entries=[Entry.from_dict(e) for e in data.get("entries") or []],
            scores=[ScoreEntry.from_dict(s) for s in data.get("scores") or []],
            version=int(data.get("version", 0)),
            updated_at=_parse_ts(data.get("updated_at")) or utc_now(),
        )
