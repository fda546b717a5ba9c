# src/services/session_recorder.py

"""Aggregates per-region outcomes into one SyncSession."""

import logging
import uuid
from datetime import datetime

from src.models.change_record import ChangeSet
from src.models.source_record import (
    PROVENANCE_ESTIMATED,
    PROVENANCE_LIVE,
)
from src.models.sync_session import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    SyncSession,
)

logger = logging.getLogger("plan_sync.session")

PROVENANCE_MIXED = "mixed"


def generate_session_id() -> str:
    """Return an id like ``sync_20260214_153045_a1b2c3``."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"sync_{stamp}_{uuid.uuid4().hex[:6]}"


class SessionRecorder:
    """Build the session record for a single run."""

    def __init__(self, auto_apply: bool = False) -> None:
        self.session = SyncSession(
            session_id=generate_session_id(),
            start_time=datetime.now().isoformat(),
            auto_apply=auto_apply,
        )
        self._provenances: set[str] = set()

    def record_region(
        self, region_id: str, provenance: str, record_count: int,
    ) -> None:
        """Count a region that contributed records."""
        self.session.regions_processed.append(region_id)
        self.session.total_plans_found += record_count
        self._provenances.add(provenance)

    def add_warning(self, message: str) -> None:
        """Add a warning once, however many regions raise it."""
        if message not in self.session.warnings:
            self.session.warnings.append(message)

    def add_error(self, message: str) -> None:
        self.session.errors.append(message)

    def set_unique_count(self, unique: int, invalid: int = 0) -> None:
        self.session.unique_plans = unique
        self.session.invalid_count = invalid

    def set_changes(self, changes: ChangeSet) -> None:
        self.session.new_plans = list(changes.new)
        self.session.updated_plans = list(changes.updated)
        self.session.removed_plans = list(changes.removed)

    def aggregate_provenance(self) -> str:
        """``mixed`` for several tags, else the single tag seen."""
        if len(self._provenances) > 1:
            return PROVENANCE_MIXED
        if PROVENANCE_ESTIMATED in self._provenances:
            return PROVENANCE_ESTIMATED
        return PROVENANCE_LIVE

    def complete(self) -> SyncSession:
        """Close the session as completed."""
        self.session.provenance = self.aggregate_provenance()
        self.session.status = STATUS_COMPLETED
        self.session.end_time = datetime.now().isoformat()
        logger.info(
            "Sync session %s completed", self.session.session_id,
        )
        return self.session

    def fail(self, message: str) -> SyncSession:
        """Close the session as failed with *message* captured."""
        self.session.provenance = self.aggregate_provenance()
        self.session.status = STATUS_FAILED
        self.session.end_time = datetime.now().isoformat()
        self.session.errors.append(message)
        logger.error(
            "Sync session %s failed: %s",
            self.session.session_id,
            message,
        )
        return self.session
