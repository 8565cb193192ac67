from __future__ import annotations

import math
import unittest

from contest_scoring.entities.contest import ContestDocument
from contest_scoring.schemas.contest_config import AttributeConfig, ContestConfig
from contest_scoring.scoring.errors import ValidationFailed, ValidationRule
from contest_scoring.scoring.rubric import effective_config, normalize_na_attributes, validate_breakdown


def _config() -> ContestConfig:
    return ContestConfig(
        topic="Tasting",
        attributes=[
            AttributeConfig(id="aroma", label="Aroma"),
            AttributeConfig(id="overall", label="Overall"),
            AttributeConfig(id="heat", label="Heat", min=1, max=5),
        ],
    )


class TestValidateBreakdown(unittest.TestCase):
    def test_valid_breakdown_has_no_errors(self):
        errors = validate_breakdown({"aroma": 8, "overall": 9.5, "heat": 3}, _config())
        self.assertEqual(errors, [])

    def test_non_mapping_short_circuits_with_single_error(self):
        for bad in (None, [1, 2], "aroma=8", 7):
            errors = validate_breakdown(bad, _config())
            self.assertEqual(len(errors), 1)
            self.assertEqual(errors[0].rule, ValidationRule.NOT_A_MAPPING)
            self.assertIsNone(errors[0].attribute_id)

    def test_missing_attribute_is_reported(self):
        errors = validate_breakdown({"aroma": 8, "heat": 2}, _config())
        self.assertEqual([(e.attribute_id, e.rule) for e in errors], [("overall", ValidationRule.MISSING)])
        self.assertEqual(errors[0].message, "missing attribute: overall")

    def test_value_above_max_is_rejected(self):
        errors = validate_breakdown({"aroma": 11, "overall": 9, "heat": 3}, _config())
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].attribute_id, "aroma")
        self.assertEqual(errors[0].rule, ValidationRule.OUT_OF_RANGE)
        self.assertEqual(errors[0].message, "aroma: must be between 0 and 10")

    def test_attribute_specific_range_is_used(self):
        errors = validate_breakdown({"aroma": 0, "overall": 10, "heat": 0}, _config())
        self.assertEqual([e.attribute_id for e in errors], ["heat"])
        self.assertIn("between 1 and 5", errors[0].message)

    def test_non_numeric_values_are_rejected(self):
        for bad in ("8", None, True, math.nan, math.inf):
            errors = validate_breakdown({"aroma": bad, "overall": 5, "heat": 3}, _config())
            self.assertEqual([(e.attribute_id, e.rule) for e in errors],
                             [("aroma", ValidationRule.NOT_A_NUMBER)], msg=repr(bad))

    def test_na_attribute_may_be_absent_or_null(self):
        self.assertEqual(validate_breakdown({"aroma": 8, "overall": 9}, _config(), ["heat"]), [])
        self.assertEqual(validate_breakdown({"aroma": 8, "overall": 9, "heat": None}, _config(), ["heat"]), [])

    def test_scoring_an_na_attribute_is_an_error(self):
        errors = validate_breakdown({"aroma": 8, "overall": 9, "heat": 2}, _config(), ["heat"])
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].rule, ValidationRule.NA_SCORED)
        self.assertEqual(errors[0].message, "heat: cannot score a section marked N/A")

    def test_unknown_keys_follow_rubric_errors_in_input_order(self):
        breakdown = {"zest": 1, "aroma": 12, "overall": 9, "heat": 3, "body": 2}
        errors = validate_breakdown(breakdown, _config())
        self.assertEqual(
            [(e.attribute_id, e.rule) for e in errors],
            [
                ("aroma", ValidationRule.OUT_OF_RANGE),
                ("zest", ValidationRule.UNKNOWN_ATTRIBUTE),
                ("body", ValidationRule.UNKNOWN_ATTRIBUTE),
            ],
        )

    def test_errors_follow_rubric_order(self):
        errors = validate_breakdown({"heat": 9}, _config())
        self.assertEqual([e.attribute_id for e in errors], ["aroma", "overall", "heat"])

    def test_validation_is_pure(self):
        breakdown = {"aroma": 11, "extra": 1}
        first = validate_breakdown(breakdown, _config(), ["heat"])
        second = validate_breakdown(breakdown, _config(), ["heat"])
        self.assertEqual(first, second)
        self.assertEqual(breakdown, {"aroma": 11, "extra": 1})


class TestNormalizeNaAttributes(unittest.TestCase):
    def test_trims_drops_blanks_and_dedupes(self):
        self.assertEqual(
            normalize_na_attributes([" heat ", "", "heat", "aroma"], _config()),
            ["heat", "aroma"],
        )

    def test_none_means_no_na_attributes(self):
        self.assertEqual(normalize_na_attributes(None, _config()), [])

    def test_unknown_na_attribute_raises(self):
        with self.assertRaises(ValidationFailed) as ctx:
            normalize_na_attributes(["smoke"], _config())
        self.assertEqual(ctx.exception.errors[0].rule, ValidationRule.UNKNOWN_NA_ATTRIBUTE)
        self.assertEqual(ctx.exception.errors[0].attribute_id, "smoke")

    def test_single_string_is_one_attribute(self):
        self.assertEqual(normalize_na_attributes("heat", _config()), ["heat"])
        with self.assertRaises(ValidationFailed) as ctx:
            normalize_na_attributes("smoke", _config())
        self.assertEqual([e.attribute_id for e in ctx.exception.errors], ["smoke"])


class TestEffectiveConfig(unittest.TestCase):
    def test_contest_config_wins(self):
        contest = ContestDocument(id="c1", config=_config())
        self.assertEqual(effective_config(contest).topic, "Tasting")

    def test_falls_back_to_default_rubric(self):
        config = effective_config(ContestDocument(id="c1"))
        self.assertEqual(config.topic, "Mixology")
        self.assertEqual(config.attribute_ids, ["aroma", "balance", "presentation", "creativity", "overall"])

    def test_explicit_fallback_is_honoured(self):
        fallback = ContestConfig(topic="Chili", attributes=[AttributeConfig(id="heat", label="Heat")])
        self.assertIs(effective_config(ContestDocument(id="c1"), fallback), fallback)


if __name__ == "__main__":
    unittest.main()
