from .breakdown import add_breakdowns, diff_breakdowns, empty_breakdown, entry_averages, sum_breakdowns
from .errors import (
    ContestNotFound, EntryNotFound, LockContention, LockRetryExceeded, Result,
    ScoreNotFound, ScoringError, StorageError, ValidationError, ValidationFailed, ValidationRule,
)
from .rubric import effective_config, normalize_na_attributes, validate_breakdown

__all__ = [
    "add_breakdowns", "diff_breakdowns", "empty_breakdown", "entry_averages", "sum_breakdowns",
    "ContestNotFound", "EntryNotFound", "LockContention", "LockRetryExceeded", "Result",
    "ScoreNotFound", "ScoringError", "StorageError", "ValidationError", "ValidationFailed",
    "ValidationRule",
    "effective_config", "normalize_na_attributes", "validate_breakdown",
]
