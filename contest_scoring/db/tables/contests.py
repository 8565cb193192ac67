"""Contest document table: one row per contest, entries and scores as JSON documents."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from contest_scoring.entities.contest import utc_now

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests).
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class ContestRow(SQLModel, table=True):
    __tablename__ = "contests"

    id: str = Field(primary_key=True)
    name: str = ""
    version: int = Field(default=0)

    config_jsonb: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSONDocument, nullable=True),
    )
    entries_jsonb: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSONDocument),
    )
    scores_jsonb: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSONDocument),
    )

    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True)))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), index=True))
