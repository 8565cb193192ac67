"""Typed failures of the score engine and the Result wrapper that carries them."""
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")


class ValidationRule(StrEnum):
    NOT_A_MAPPING = "not_a_mapping"
    MISSING = "missing"
    NOT_A_NUMBER = "not_a_number"
    OUT_OF_RANGE = "out_of_range"
    NA_SCORED = "na_scored"
    UNKNOWN_ATTRIBUTE = "unknown_attribute"
    UNKNOWN_NA_ATTRIBUTE = "unknown_na_attribute"


@dataclass(frozen=True)
class ValidationError:
    """One rubric violation. attribute_id is None when the whole payload is rejected."""
    attribute_id: str | None
    rule: ValidationRule
    message: str

    def __str__(self) -> str:
        return self.message


class ScoringError(Exception):
    """Base class for every failure surfaced by the score engine."""


class ValidationFailed(ScoringError):
    def __init__(self, errors: list[ValidationError]):
        self.errors = list(errors)
        super().__init__("Validation: " + " ".join(e.message for e in self.errors))


class ContestNotFound(ScoringError):
    def __init__(self, contest_id: str):
        self.contest_id = contest_id
        super().__init__(f"Contest not found: {contest_id}")


class EntryNotFound(ScoringError):
    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry not found: {entry_id}")


class ScoreNotFound(ScoringError):
    def __init__(self, score_id: str):
        self.score_id = score_id
        super().__init__(f"Score not found: {score_id}")


class LockContention(ScoringError):
    """The entry is held by another, unexpired lock token."""

    def __init__(self, entry_id: str, holder_token: str | None = None, expires_at=None):
        self.entry_id = entry_id
        self.holder_token = holder_token
        self.expires_at = expires_at
        super().__init__(f"Entry score is locked: {entry_id}")


class LockRetryExceeded(ScoringError):
    def __init__(self, entry_id: str, attempts: int, cause: LockContention | None = None):
        self.entry_id = entry_id
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Entry score lock retry limit exceeded for {entry_id} after {attempts} attempts"
        )
        self.__cause__ = cause


class StorageError(ScoringError):
    def __init__(self, message: str, original: BaseException | None = None):
        self.original = original
        super().__init__(message)
        self.__cause__ = original


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a typed ScoringError, never both."""
    value: T | None = None
    error: ScoringError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ScoringError) -> "Result[T]":
        return cls(error=error)
