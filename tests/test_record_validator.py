# tests/test_record_validator.py

"""Tests for RecordValidator."""

import unittest

from src.filters.record_validator import RecordValidator
from src.models.source_record import SourceRecord


def _make(
    provider: str = "TXU Energy",
    plan: str = "Value 12",
    rate_1000: float = 11.0,
    rate_500: float = 12.5,
) -> SourceRecord:
    return SourceRecord(
        provider_name=provider,
        plan_name=plan,
        rate_500kwh=rate_500,
        rate_1000kwh=rate_1000,
        rate_2000kwh=10.2,
    )


class TestRecordValidator(unittest.TestCase):
    """RecordValidator.validate behaviour."""

    def test_valid_records_kept(self) -> None:
        valid, dropped = RecordValidator.validate([_make(), _make(plan="B")])
        self.assertEqual(len(valid), 2)
        self.assertEqual(dropped, 0)

    def test_blank_plan_name_dropped(self) -> None:
        valid, dropped = RecordValidator.validate([_make(plan="   ")])
        self.assertEqual(valid, [])
        self.assertEqual(dropped, 1)

    def test_blank_provider_dropped(self) -> None:
        valid, dropped = RecordValidator.validate([_make(provider="")])
        self.assertEqual(valid, [])
        self.assertEqual(dropped, 1)

    def test_zero_rate_dropped(self) -> None:
        valid, dropped = RecordValidator.validate([_make(rate_1000=0.0)])
        self.assertEqual(valid, [])
        self.assertEqual(dropped, 1)

    def test_tier_parameter_respected(self) -> None:
        """Only the requested tier is checked."""
        record = _make(rate_1000=11.0, rate_500=0.0)
        valid, _ = RecordValidator.validate([record], tier=1000)
        self.assertEqual(len(valid), 1)
        valid, dropped = RecordValidator.validate([record], tier=500)
        self.assertEqual(valid, [])
        self.assertEqual(dropped, 1)


if __name__ == "__main__":
    unittest.main()
