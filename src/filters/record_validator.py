# src/filters/record_validator.py

"""Record validation: drop unusable plans before deduplication."""

import logging

from src.config.settings import Settings
from src.models.source_record import SourceRecord

logger = logging.getLogger("plan_sync.filters")


class RecordValidator:
    """Validate records and drop those with missing essential fields."""

    @staticmethod
    def validate(
        records: list[SourceRecord],
        tier: int = Settings.REPRESENTATIVE_TIER,
    ) -> tuple[list[SourceRecord], int]:
        """Drop records with blank names or a non-positive tier rate.

        Returns the valid records and the count of dropped items.
        """
        valid: list[SourceRecord] = []
        dropped = 0

        for record in records:
            if (
                not record.provider_name.strip()
                or not record.plan_name.strip()
            ):
                logger.debug(
                    "Dropped record with blank name "
                    "(region=%s, provider=%r, plan=%r)",
                    record.region_id,
                    record.provider_name,
                    record.plan_name,
                )
                dropped += 1
                continue
            if record.rate_for(tier) <= 0:
                logger.debug(
                    "Dropped record with zero/negative rate "
                    "(provider=%s, plan=%s)",
                    record.provider_name,
                    record.plan_name,
                )
                dropped += 1
                continue
            valid.append(record)

        if dropped:
            logger.info(
                "Validation dropped %d invalid records",
                dropped,
            )

        return valid, dropped
