# tests/test_models.py

"""Tests for the plan_sync data models."""

import unittest

from src.models.catalog_entry import CatalogEntry
from src.models.change_record import ChangeRecord
from src.models.region import RegionTarget
from src.models.source_record import SourceRecord
from src.models.sync_session import SyncSession


class TestSourceRecord(unittest.TestCase):
    """SourceRecord defaults and accessors."""

    def setUp(self) -> None:
        self.record = SourceRecord(
            provider_name="TXU Energy",
            plan_name="TXU Value 12",
            rate_500kwh=13.0,
            rate_1000kwh=11.5,
            rate_2000kwh=10.7,
        )

    def test_defaults(self) -> None:
        """Live, unverified-free, month-to-month by default."""
        self.assertEqual(self.record.provenance, "live")
        self.assertFalse(self.record.requires_verification)
        self.assertEqual(self.record.features, [])
        self.assertIsNone(self.record.efl_url)

    def test_identity(self) -> None:
        """Identity is provider name plus plan name."""
        self.assertEqual(
            self.record.identity, ("TXU Energy", "TXU Value 12")
        )

    def test_rate_for_tiers(self) -> None:
        """rate_for reads the matching tier field."""
        self.assertEqual(self.record.rate_for(500), 13.0)
        self.assertEqual(self.record.rate_for(1000), 11.5)
        self.assertEqual(self.record.rate_for(2000), 10.7)

    def test_feature_lists_not_shared(self) -> None:
        """Each record gets its own feature list."""
        other = SourceRecord("A", "B", 1.0, 1.0, 1.0)
        self.record.features.append("fixed_rate")
        self.assertEqual(other.features, [])


class TestCatalogEntry(unittest.TestCase):
    """CatalogEntry identity."""

    def test_identity_uses_provider_reference(self) -> None:
        entry = CatalogEntry(
            entry_id="e1",
            provider_id="p1",
            provider_name="TXU Energy",
            plan_name="TXU Value 12",
            rate_500kwh=13.0,
            rate_1000kwh=11.5,
            rate_2000kwh=10.7,
        )
        self.assertEqual(entry.identity, ("p1", "TXU Value 12"))
        self.assertEqual(entry.rate_for(1000), 11.5)


class TestChangeRecord(unittest.TestCase):
    """ChangeRecord serialisation."""

    def test_new_omits_old_rate(self) -> None:
        change = ChangeRecord(
            kind="new",
            plan_name="Saver 12",
            provider_name="ProviderX",
            new_rate=11.0,
        )
        data = change.to_dict()
        self.assertEqual(data["type"], "new")
        self.assertEqual(data["newRate"], 11.0)
        self.assertNotIn("oldRate", data)
        self.assertNotIn("planId", data)

    def test_updated_includes_notes(self) -> None:
        change = ChangeRecord(
            kind="updated",
            plan_name="Saver 12",
            provider_name="ProviderX",
            entry_id="e1",
            old_rate=12.0,
            new_rate=12.15,
            notes=["Rate changed from 12.0¢ to 12.2¢"],
        )
        data = change.to_dict()
        self.assertEqual(data["planId"], "e1")
        self.assertEqual(data["oldRate"], 12.0)
        self.assertEqual(
            data["changes"], ["Rate changed from 12.0¢ to 12.2¢"]
        )


class TestRegionTarget(unittest.TestCase):
    """RegionTarget config parsing."""

    def test_from_config(self) -> None:
        region = RegionTarget.from_config({
            "region_id": "77001",
            "display_name": "Houston",
            "utility": "CenterPoint Energy",
        })
        self.assertEqual(region.region_id, "77001")
        self.assertEqual(region.display_name, "Houston")
        self.assertEqual(region.utility, "CenterPoint Energy")

    def test_display_name_defaults_to_id(self) -> None:
        region = RegionTarget.from_config({"region_id": "75201"})
        self.assertEqual(region.display_name, "75201")


class TestSyncSession(unittest.TestCase):
    """SyncSession serialisation."""

    def test_to_dict_keys(self) -> None:
        session = SyncSession(
            session_id="sync_1", start_time="2026-01-01T00:00:00",
        )
        data = session.to_dict()
        for key in (
            "sessionId", "startTime", "endTime", "status",
            "regionsProcessed", "totalPlansFound", "uniquePlans",
            "newPlans", "updatedPlans", "removedPlans",
            "warnings", "errors", "provenance",
        ):
            self.assertIn(key, data)
        self.assertEqual(data["status"], "running")


if __name__ == "__main__":
    unittest.main()
