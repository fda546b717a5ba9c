# src/services/applier.py

"""Apply a change set to the catalog under the soft-delete policy."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from src.config.settings import Settings
from src.models.change_record import ChangeRecord, ChangeSet
from src.storage.catalog_db import CatalogStore

logger = logging.getLogger("plan_sync.applier")


@dataclass
class ApplyReport:
    """Outcome of one apply pass."""

    deactivated: int = 0
    patched: int = 0
    skipped_new: int = 0
    failures: list[str] = field(
        default_factory=lambda: list[str]()
    )


class ChangeApplier:
    """Write ``removed`` and ``updated`` changes; never insert ``new``.

    New plans need a verified provider mapping, documents and a fee
    schedule that the scrape cannot supply, so they are left for an
    operator to add. Every write is attempted on its own: one failure
    is reported and the remaining changes are still applied.
    """

    def __init__(
        self,
        store: CatalogStore,
        tier: int = Settings.REPRESENTATIVE_TIER,
    ) -> None:
        self.store = store
        self.tier = tier

    def apply(self, changes: ChangeSet) -> ApplyReport:
        """Apply *changes* and return what was written."""
        report = ApplyReport()
        logger.info("Applying changes to catalog")

        for change in changes.removed:
            if self._deactivate(change, report):
                report.deactivated += 1

        timestamp = datetime.now().isoformat()
        for change in changes.updated:
            if self._patch(change, timestamp, report):
                report.patched += 1

        report.skipped_new = len(changes.new)
        for change in changes.new:
            logger.info(
                "New plan awaiting manual review: %s - %s",
                change.provider_name,
                change.plan_name,
            )

        logger.info(
            "Applied %d removals and %d updates (%d failures, "
            "%d new plans not auto-inserted)",
            report.deactivated,
            report.patched,
            len(report.failures),
            report.skipped_new,
        )
        return report

    def _deactivate(
        self, change: ChangeRecord, report: ApplyReport,
    ) -> bool:
        if not change.entry_id:
            return False
        try:
            self.store.deactivate(change.entry_id)
        except Exception as exc:
            self._record_failure("deactivate", change, exc, report)
            return False
        return True

    def _patch(
        self,
        change: ChangeRecord,
        timestamp: str,
        report: ApplyReport,
    ) -> bool:
        if not change.entry_id or change.new_rate is None:
            return False
        try:
            self.store.patch_rate(
                change.entry_id, change.new_rate, timestamp, self.tier,
            )
        except Exception as exc:
            self._record_failure("update", change, exc, report)
            return False
        return True

    @staticmethod
    def _record_failure(
        action: str,
        change: ChangeRecord,
        exc: Exception,
        report: ApplyReport,
    ) -> None:
        message = (
            f"Failed to {action} {change.provider_name} - "
            f"{change.plan_name}: {exc}"
        )
        logger.warning("%s", message, exc_info=True)
        report.failures.append(message)
