# tests/test_differ.py

"""Tests for PlanDiffer change detection."""

import unittest

from src.models.catalog_entry import CatalogEntry
from src.models.source_record import SourceRecord
from src.services.differ import PlanDiffer
from src.storage.provider_directory import MappingProviderDirectory


def _record(
    plan: str,
    rate: float,
    provider: str = "TXU Energy",
    low: float | None = None,
) -> SourceRecord:
    return SourceRecord(
        provider_name=provider,
        plan_name=plan,
        rate_500kwh=low if low is not None else rate + 1.5,
        rate_1000kwh=rate,
        rate_2000kwh=rate - 0.8,
    )


def _entry(
    entry_id: str,
    plan: str,
    rate: float,
    provider_id: str = "p-txu",
    provider_name: str = "TXU Energy",
) -> CatalogEntry:
    return CatalogEntry(
        entry_id=entry_id,
        provider_id=provider_id,
        provider_name=provider_name,
        plan_name=plan,
        rate_500kwh=rate + 1.5,
        rate_1000kwh=rate,
        rate_2000kwh=rate - 0.8,
    )


class TestPlanDiffer(unittest.TestCase):
    """PlanDiffer.diff classification."""

    def setUp(self) -> None:
        self.directory = MappingProviderDirectory(
            {"TXU Energy": "p-txu", "Reliant Energy": "p-rel"}
        )
        self.differ = PlanDiffer(self.directory)

    def test_change_below_threshold_ignored(self) -> None:
        """12.00 vs 12.05 is noise."""
        changes = self.differ.diff(
            [_record("Value 12", 12.05)], [_entry("e1", "Value 12", 12.0)],
        )
        self.assertEqual(changes.updated, [])
        self.assertEqual(changes.new, [])
        self.assertEqual(changes.removed, [])

    def test_change_exactly_at_threshold_ignored(self) -> None:
        changes = self.differ.diff(
            [_record("Value 12", 12.5)], [_entry("e1", "Value 12", 12.4)],
        )
        self.assertEqual(len(changes.updated), 0)

    def test_tenth_of_a_cent_moves_all_ignored(self) -> None:
        """A 0.1¢ move sits on the threshold whatever the rates are."""
        for old, new in (
            (12.4, 12.5), (12.2, 12.3), (12.0, 12.1),
            (9.7, 9.8), (12.3, 12.2), (0.7, 0.8),
        ):
            with self.subTest(old=old, new=new):
                changes = self.differ.diff(
                    [_record("Value 12", new)],
                    [_entry("e1", "Value 12", old)],
                )
                self.assertEqual(changes.updated, [])

    def test_two_tenths_of_a_cent_reported(self) -> None:
        for old, new in ((12.2, 12.4), (9.7, 9.9), (12.1, 11.9)):
            with self.subTest(old=old, new=new):
                changes = self.differ.diff(
                    [_record("Value 12", new)],
                    [_entry("e1", "Value 12", old)],
                )
                self.assertEqual(len(changes.updated), 1)

    def test_change_above_threshold_reported(self) -> None:
        """12.00 vs 12.15 is an update."""
        changes = self.differ.diff(
            [_record("Value 12", 12.15)], [_entry("e1", "Value 12", 12.0)],
        )
        self.assertEqual(len(changes.updated), 1)
        change = changes.updated[0]
        self.assertEqual(change.kind, "updated")
        self.assertEqual(change.entry_id, "e1")
        self.assertEqual(change.old_rate, 12.0)
        self.assertEqual(change.new_rate, 12.15)
        self.assertEqual(change.notes, ["Rate changed from 12.0¢ to 12.2¢"])

    def test_rate_drop_reported(self) -> None:
        changes = self.differ.diff(
            [_record("Value 12", 11.0)], [_entry("e1", "Value 12", 12.0)],
        )
        self.assertEqual(changes.updated[0].new_rate, 11.0)

    def test_other_tiers_ignored(self) -> None:
        """Only the representative tier is compared."""
        changes = self.differ.diff(
            [_record("Value 12", 12.0, low=20.0)],
            [_entry("e1", "Value 12", 12.0)],
        )
        self.assertEqual(changes.updated, [])

    def test_tier_parameter(self) -> None:
        differ = PlanDiffer(self.directory, tier=500)
        changes = differ.diff(
            [_record("Value 12", 12.0, low=20.0)],
            [_entry("e1", "Value 12", 12.0)],
        )
        self.assertEqual(len(changes.updated), 1)
        self.assertEqual(changes.updated[0].new_rate, 20.0)

    def test_unknown_tier_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PlanDiffer(self.directory, tier=750)

    def test_new_plan(self) -> None:
        changes = self.differ.diff([_record("Saver 24", 9.8)], [])
        self.assertEqual(len(changes.new), 1)
        self.assertEqual(changes.new[0].kind, "new")
        self.assertEqual(changes.new[0].new_rate, 9.8)
        self.assertIsNone(changes.new[0].entry_id)

    def test_removed_plan_carries_old_rate(self) -> None:
        changes = self.differ.diff([], [_entry("e1", "Value 12", 11.0)])
        self.assertEqual(len(changes.removed), 1)
        removed = changes.removed[0]
        self.assertEqual(removed.kind, "removed")
        self.assertEqual(removed.entry_id, "e1")
        self.assertEqual(removed.old_rate, 11.0)
        self.assertEqual(removed.provider_name, "TXU Energy")

    def test_removed_without_provider_name(self) -> None:
        changes = self.differ.diff(
            [], [_entry("e1", "Value 12", 11.0, provider_name="")],
        )
        self.assertEqual(changes.removed[0].provider_name, "Unknown")

    def test_unresolved_provider_excluded(self) -> None:
        """Plans from providers outside the catalog are not new."""
        changes = self.differ.diff(
            [_record("Mystery 12", 10.0, provider="Nobody Power")], [],
        )
        self.assertEqual(changes.new, [])
        self.assertEqual(changes.unresolved_count, 1)

    def test_same_plan_name_other_provider(self) -> None:
        """Identity includes the provider."""
        changes = self.differ.diff(
            [_record("Value 12", 12.0, provider="Reliant Energy")],
            [_entry("e1", "Value 12", 12.0)],
        )
        self.assertEqual(len(changes.new), 1)
        self.assertEqual(len(changes.removed), 1)

    def test_provider_key_used_for_lookup(self) -> None:
        differ = PlanDiffer(MappingProviderDirectory({"txu": "p-txu"}))
        record = _record("Value 12", 12.0, provider="TXU Energy Retail")
        record.provider_key = "txu"
        changes = differ.diff([record], [_entry("e1", "Value 12", 12.0)])
        self.assertEqual(changes.removed, [])
        self.assertEqual(changes.new, [])

    def test_provider_spellings_sharing_an_id_diffed_once(self) -> None:
        """A second name for the same provider is not a new plan."""
        differ = PlanDiffer(
            MappingProviderDirectory(
                {"TXU Energy": "p-txu", "TXU Energy Retail": "p-txu"}
            )
        )
        changes = differ.diff(
            [
                _record("Value 12", 12.0),
                _record("Value 12", 12.0, provider="TXU Energy Retail"),
            ],
            [_entry("e1", "Value 12", 12.0)],
        )
        self.assertEqual(changes.new, [])
        self.assertEqual(changes.updated, [])
        self.assertEqual(changes.removed, [])

    def test_repeat_of_unmatched_key_reported_new_once(self) -> None:
        differ = PlanDiffer(
            MappingProviderDirectory(
                {"TXU Energy": "p-txu", "TXU Energy Retail": "p-txu"}
            )
        )
        changes = differ.diff(
            [
                _record("Saver 24", 9.8),
                _record("Saver 24", 9.8, provider="TXU Energy Retail"),
            ],
            [],
        )
        self.assertEqual(len(changes.new), 1)
        self.assertEqual(changes.new[0].provider_name, "TXU Energy")

    def test_mixed_change_set(self) -> None:
        snapshot = [
            _entry("e1", "Value 12", 12.0),
            _entry("e2", "Fixed 12", 12.0),
            _entry("e3", "Gone 6", 13.0),
        ]
        fresh = [
            _record("Value 12", 12.0),
            _record("Fixed 12", 12.6),
            _record("Green 12", 12.5),
        ]
        changes = self.differ.diff(fresh, snapshot)
        self.assertEqual([c.plan_name for c in changes.new], ["Green 12"])
        self.assertEqual(
            [c.plan_name for c in changes.updated], ["Fixed 12"]
        )
        self.assertEqual([c.plan_name for c in changes.removed], ["Gone 6"])


if __name__ == "__main__":
    unittest.main()
