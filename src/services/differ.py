# src/services/differ.py

"""Change detection between a fresh scrape and the catalog snapshot."""

import logging

from src.config.settings import Settings
from src.models.catalog_entry import CatalogEntry
from src.models.change_record import (
    CHANGE_NEW,
    CHANGE_REMOVED,
    CHANGE_UPDATED,
    ChangeRecord,
    ChangeSet,
)
from src.models.source_record import SourceRecord
from src.storage.provider_directory import ProviderDirectory

logger = logging.getLogger("plan_sync.differ")

# Decimal places kept when comparing rate deltas
_RATE_PRECISION = 6


class PlanDiffer:
    """Compute new / updated / removed plans against a snapshot.

    Only the rate at ``tier`` kWh is compared; differences confined to
    the other tiers, the term or the fees never produce an update.
    """

    def __init__(
        self,
        directory: ProviderDirectory,
        threshold: float = Settings.RATE_CHANGE_THRESHOLD,
        tier: int = Settings.REPRESENTATIVE_TIER,
    ) -> None:
        if tier not in Settings.RATE_TIERS:
            msg = f"Unknown rate tier: {tier}"
            raise ValueError(msg)
        self.directory = directory
        self.threshold = threshold
        self.tier = tier

    def diff(
        self,
        fresh: list[SourceRecord],
        snapshot: list[CatalogEntry],
    ) -> ChangeSet:
        """Diff unique fresh records against the active snapshot."""
        changes = ChangeSet()
        lookup: dict[tuple[str, str], CatalogEntry] = {
            entry.identity: entry for entry in snapshot
        }
        matched: set[tuple[str, str]] = set()

        for record in fresh:
            provider_id = self.directory.resolve(
                record.provider_name, record.provider_key,
            )
            if provider_id is None:
                changes.unresolved_count += 1
                continue

            key = (provider_id, record.plan_name)
            if key in matched:
                # Another spelling of a provider already diffed
                logger.debug(
                    "Skipping repeat of %s / %s under provider %s",
                    record.provider_name,
                    record.plan_name,
                    provider_id,
                )
                continue
            matched.add(key)
            entry = lookup.pop(key, None)
            new_rate = record.rate_for(self.tier)

            if entry is None:
                changes.new.append(
                    ChangeRecord(
                        kind=CHANGE_NEW,
                        plan_name=record.plan_name,
                        provider_name=record.provider_name,
                        new_rate=new_rate,
                    )
                )
                continue

            old_rate = entry.rate_for(self.tier)
            delta = round(abs(new_rate - old_rate), _RATE_PRECISION)
            if delta > self.threshold:
                changes.updated.append(
                    ChangeRecord(
                        kind=CHANGE_UPDATED,
                        plan_name=record.plan_name,
                        provider_name=record.provider_name,
                        entry_id=entry.entry_id,
                        old_rate=old_rate,
                        new_rate=new_rate,
                        notes=[
                            f"Rate changed from {old_rate:.1f}¢ "
                            f"to {new_rate:.1f}¢"
                        ],
                    )
                )

        # Whatever is left was active in the catalog but not scraped
        for entry in lookup.values():
            changes.removed.append(
                ChangeRecord(
                    kind=CHANGE_REMOVED,
                    plan_name=entry.plan_name,
                    provider_name=entry.provider_name or "Unknown",
                    entry_id=entry.entry_id,
                    old_rate=entry.rate_for(self.tier),
                )
            )

        if changes.unresolved_count:
            logger.info(
                "Skipped %d records from providers outside the catalog",
                changes.unresolved_count,
            )
        logger.info(
            "Diff: %d new, %d updated, %d removed",
            len(changes.new),
            len(changes.updated),
            len(changes.removed),
        )
        return changes
