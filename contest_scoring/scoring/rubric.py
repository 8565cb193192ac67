"""Rubric validation for judge score breakdowns."""
from __future__ import annotations

import math
from collections.abc import Mapping
from numbers import Real
from typing import Any, Iterable

from contest_scoring.entities.contest import ContestDocument
from contest_scoring.schemas.contest_config import ContestConfig
from contest_scoring.schemas.templates import default_config
from contest_scoring.scoring.errors import ValidationError, ValidationFailed, ValidationRule


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


def validate_breakdown(
    breakdown: Any,
    config: ContestConfig,
    na_attribute_ids: Iterable[str] = (),
) -> list[ValidationError]:
    """Check a proposed breakdown against a rubric.

    Returns the violations in rubric attribute order followed by unknown keys
    in input order. An empty list means the breakdown is valid.
    """
    if not isinstance(breakdown, Mapping):
        return [ValidationError(None, ValidationRule.NOT_A_MAPPING, "breakdown must be an object")]

    errors: list[ValidationError] = []
    na_ids = set(na_attribute_ids)

    for attr in config.attributes:
        if attr.id in na_ids:
            if breakdown.get(attr.id) is not None:
                errors.append(ValidationError(
                    attr.id, ValidationRule.NA_SCORED,
                    f"{attr.id}: cannot score a section marked N/A",
                ))
            continue

        if attr.id not in breakdown:
            errors.append(ValidationError(
                attr.id, ValidationRule.MISSING, f"missing attribute: {attr.id}",
            ))
            continue

        value = breakdown[attr.id]
        if not _is_finite_number(value):
            errors.append(ValidationError(
                attr.id, ValidationRule.NOT_A_NUMBER, f"{attr.id}: must be a number",
            ))
        elif value < attr.min or value > attr.max:
            errors.append(ValidationError(
                attr.id, ValidationRule.OUT_OF_RANGE,
                f"{attr.id}: must be between {attr.min:g} and {attr.max:g}",
            ))

    known = set(config.attribute_ids)
    for key in breakdown:
        if key not in known:
            errors.append(ValidationError(
                key, ValidationRule.UNKNOWN_ATTRIBUTE, f"unknown attribute: {key}",
            ))

    return errors


def normalize_na_attributes(na_attribute_ids: Iterable[str] | None, config: ContestConfig) -> list[str]:
    """Trim, drop blanks and de-duplicate N/A ids; raise on ids outside the rubric."""
    if not na_attribute_ids:
        return []
    if isinstance(na_attribute_ids, str):
        na_attribute_ids = [na_attribute_ids]

    normalized: list[str] = []
    for raw in na_attribute_ids:
        attribute_id = str(raw).strip()
        if attribute_id and attribute_id not in normalized:
            normalized.append(attribute_id)

    known = set(config.attribute_ids)
    errors = [
        ValidationError(
            attribute_id, ValidationRule.UNKNOWN_NA_ATTRIBUTE,
            f"Invalid N/A section: {attribute_id}.",
        )
        for attribute_id in normalized if attribute_id not in known
    ]
    if errors:
        raise ValidationFailed(errors)
    return normalized


def effective_config(contest: ContestDocument, fallback: ContestConfig | None = None) -> ContestConfig:
    """The contest's own rubric, or the system default when it has none."""
    if contest.config is not None:
        return contest.config
    return fallback if fallback is not None else default_config()
