from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from app.validators.policy_row_normalizer import (
    FIELD_TOO_LONG,
    INVALID_DATE_RANGE,
    INVALID_NUMBER,
    INVALID_STATUS,
    POLICY_NUMBER_REQUIRED,
    PolicyRowNormalizer,
)


def _row(**overrides: str) -> dict[str, str]:
    row = {
        "policy_number": "POL-001",
        "customer": "Acme Corp",
        "policy_type": "Property",
        "start_date": "2024-01-01",
        "end_date": "2025-01-01",
        "premium_usd": "1200.50",
        "status": "active",
        "insured_value_usd": "250000",
    }
    row.update(overrides)
    return row


class TestPolicyRowNormalizer(unittest.TestCase):
    def setUp(self) -> None:
        self.normalizer = PolicyRowNormalizer()

    def test_valid_row_becomes_candidate(self) -> None:
        candidate, errors = self.normalizer.normalize(raw_row=_row(), row_number=1)

        self.assertEqual(errors, [])
        assert candidate is not None
        self.assertEqual(candidate.policy_number, "POL-001")
        self.assertEqual(candidate.start_date, date(2024, 1, 1))
        self.assertEqual(candidate.end_date, date(2025, 1, 1))
        self.assertEqual(candidate.premium_usd, Decimal("1200.50"))
        self.assertEqual(candidate.insured_value_usd, Decimal("250000"))

    def test_values_are_trimmed_and_status_lowercased(self) -> None:
        candidate, errors = self.normalizer.normalize(
            raw_row=_row(policy_number="  POL-9 ", status=" Expired "),
            row_number=4,
        )

        self.assertEqual(errors, [])
        assert candidate is not None
        self.assertEqual(candidate.policy_number, "POL-9")
        self.assertEqual(candidate.status, "expired")

    def test_blank_policy_number_is_reported_once(self) -> None:
        candidate, errors = self.normalizer.normalize(raw_row=_row(policy_number="   "), row_number=7)

        self.assertIsNone(candidate)
        self.assertEqual([e.code for e in errors], [POLICY_NUMBER_REQUIRED])
        self.assertEqual(errors[0].row_number, 7)

    def test_start_after_end_is_invalid_range(self) -> None:
        _, errors = self.normalizer.normalize(
            raw_row=_row(start_date="2025-02-01", end_date="2025-01-01"),
            row_number=2,
        )

        self.assertEqual([e.code for e in errors], [INVALID_DATE_RANGE])
        self.assertEqual(errors[0].field, "start_date,end_date")

    def test_equal_dates_are_invalid_range(self) -> None:
        _, errors = self.normalizer.normalize(
            raw_row=_row(start_date="2025-01-01", end_date="2025-01-01"),
            row_number=2,
        )

        self.assertEqual([e.code for e in errors], [INVALID_DATE_RANGE])

    def test_unparseable_date_is_invalid_range(self) -> None:
        _, errors = self.normalizer.normalize(raw_row=_row(start_date="not-a-date"), row_number=2)

        self.assertEqual([e.code for e in errors], [INVALID_DATE_RANGE])

    def test_missing_dates_are_accepted(self) -> None:
        candidate, errors = self.normalizer.normalize(
            raw_row=_row(start_date="", end_date=""),
            row_number=1,
        )

        self.assertEqual(errors, [])
        assert candidate is not None
        self.assertIsNone(candidate.start_date)
        self.assertIsNone(candidate.end_date)

    def test_alternative_date_formats(self) -> None:
        candidate, errors = self.normalizer.normalize(
            raw_row=_row(start_date="01/15/2024", end_date="2024-12-31T00:00:00Z"),
            row_number=1,
        )

        self.assertEqual(errors, [])
        assert candidate is not None
        self.assertEqual(candidate.start_date, date(2024, 1, 15))
        self.assertEqual(candidate.end_date, date(2024, 12, 31))

    def test_unknown_status(self) -> None:
        _, errors = self.normalizer.normalize(raw_row=_row(status="pending"), row_number=3)

        self.assertEqual([e.code for e in errors], [INVALID_STATUS])

    def test_invalid_number_reported_when_row_is_otherwise_clean(self) -> None:
        _, errors = self.normalizer.normalize(raw_row=_row(premium_usd="abc"), row_number=5)

        self.assertEqual([e.code for e in errors], [INVALID_NUMBER])
        self.assertEqual(errors[0].field, "premium_usd|insured_value_usd")

    def test_invalid_number_suppressed_after_earlier_defect(self) -> None:
        _, errors = self.normalizer.normalize(
            raw_row=_row(status="unknown", insured_value_usd="NaN"),
            row_number=5,
        )

        self.assertEqual([e.code for e in errors], [INVALID_STATUS])

    def test_blank_amount_is_invalid_number(self) -> None:
        _, errors = self.normalizer.normalize(raw_row=_row(insured_value_usd=""), row_number=1)

        self.assertEqual([e.code for e in errors], [INVALID_NUMBER])

    def test_all_technical_defects_are_collected(self) -> None:
        _, errors = self.normalizer.normalize(
            raw_row=_row(policy_number="", start_date="2025-06-01", end_date="2025-01-01", status="x"),
            row_number=9,
        )

        self.assertEqual(
            [e.code for e in errors],
            [POLICY_NUMBER_REQUIRED, INVALID_DATE_RANGE, INVALID_STATUS],
        )
        self.assertTrue(all(e.row_number == 9 for e in errors))

    def test_spaced_keys_are_accepted(self) -> None:
        row = _row()
        row["policy number"] = row.pop("policy_number")

        self.assertEqual(PolicyRowNormalizer.policy_number_of(row), "POL-001")

    def test_over_long_text_fields_are_rejected(self) -> None:
        candidate, errors = self.normalizer.normalize(
            raw_row=_row(policy_number="P" * 65, customer="c" * 256, policy_type="t" * 65),
            row_number=3,
        )

        self.assertIsNone(candidate)
        self.assertEqual(
            [(e.code, e.field) for e in errors],
            [
                (FIELD_TOO_LONG, "policy_number"),
                (FIELD_TOO_LONG, "customer"),
                (FIELD_TOO_LONG, "policy_type"),
            ],
        )

    def test_text_fields_at_column_width_are_accepted(self) -> None:
        candidate, errors = self.normalizer.normalize(
            raw_row=_row(policy_number="P" * 64, customer="c" * 255),
            row_number=1,
        )

        self.assertEqual(errors, [])
        self.assertIsNotNone(candidate)

    def test_amount_beyond_storage_precision_is_invalid_number(self) -> None:
        for value in ("1000000000000", "-1e12", "999999999999.995"):
            with self.subTest(value=value):
                _, errors = self.normalizer.normalize(
                    raw_row=_row(premium_usd=value),
                    row_number=1,
                )
                self.assertEqual([e.code for e in errors], [INVALID_NUMBER])

    def test_largest_storable_amount_is_accepted(self) -> None:
        candidate, errors = self.normalizer.normalize(
            raw_row=_row(insured_value_usd="999999999999.99"),
            row_number=1,
        )

        self.assertEqual(errors, [])
        assert candidate is not None
        self.assertEqual(candidate.insured_value_usd, Decimal("999999999999.99"))

    def test_lone_unparseable_date_is_logged_and_dropped(self) -> None:
        with self.assertLogs("app.validators.policy_row_normalizer", level="DEBUG") as logs:
            candidate, errors = self.normalizer.normalize(
                raw_row=_row(start_date="not-a-date", end_date=""),
                row_number=5,
            )

        self.assertEqual(errors, [])
        assert candidate is not None
        self.assertIsNone(candidate.start_date)
        self.assertIn("not-a-date", logs.output[0])


if __name__ == "__main__":
    unittest.main()
