# src/filters/deduplicator.py

"""Plan deduplication across overlapping region samples."""

import logging

from src.models.source_record import SourceRecord

logger = logging.getLogger("plan_sync.filters")


class RecordDeduplicator:
    """Collapse plans seen in several regions into one record each."""

    @staticmethod
    def _has_richer_docs(
        candidate: SourceRecord, kept: SourceRecord,
    ) -> bool:
        """True when *candidate* carries an EFL link *kept* lacks."""
        return bool(candidate.efl_url) and not kept.efl_url

    @staticmethod
    def deduplicate(
        records: list[SourceRecord],
    ) -> tuple[list[SourceRecord], int]:
        """Keep one record per ``(provider_name, plan_name)``.

        The first-seen record wins unless a later duplicate has a
        document reference the kept one is missing. Output keeps
        first-seen order.

        Returns the unique list and the count of removed dupes.
        """
        if not records:
            return [], 0

        seen: dict[tuple[str, str], int] = {}
        kept: list[SourceRecord] = []
        removed = 0

        for record in records:
            key = record.identity
            if key in seen:
                idx = seen[key]
                if RecordDeduplicator._has_richer_docs(
                    record, kept[idx]
                ):
                    kept[idx] = record
                removed += 1
                continue
            seen[key] = len(kept)
            kept.append(record)

        if removed:
            logger.info(
                "Deduplication collapsed %d duplicate plans",
                removed,
            )

        return kept, removed
