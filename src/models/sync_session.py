# src/models/sync_session.py

"""Run record for one pass of the plan sync pipeline."""

from dataclasses import dataclass, field

from src.models.change_record import ChangeRecord

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


@dataclass
class SyncSession:
    """Everything a caller or operator needs to interpret one run."""

    session_id: str
    start_time: str
    end_time: str | None = None
    status: str = STATUS_RUNNING  # "running", "completed", "failed"
    auto_apply: bool = False
    regions_processed: list[str] = field(
        default_factory=lambda: list[str]()
    )
    total_plans_found: int = 0
    unique_plans: int = 0
    invalid_count: int = 0
    new_plans: list[ChangeRecord] = field(
        default_factory=lambda: list[ChangeRecord]()
    )
    updated_plans: list[ChangeRecord] = field(
        default_factory=lambda: list[ChangeRecord]()
    )
    removed_plans: list[ChangeRecord] = field(
        default_factory=lambda: list[ChangeRecord]()
    )
    warnings: list[str] = field(
        default_factory=lambda: list[str]()
    )
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )
    provenance: str = "live"  # "live", "estimated", "mixed"

    def to_dict(self) -> dict[str, object]:
        """Serialise to the externally visible session representation."""
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "status": self.status,
            "autoApply": self.auto_apply,
            "regionsProcessed": list(self.regions_processed),
            "totalPlansFound": self.total_plans_found,
            "uniquePlans": self.unique_plans,
            "invalidPlans": self.invalid_count,
            "newPlans": [c.to_dict() for c in self.new_plans],
            "updatedPlans": [c.to_dict() for c in self.updated_plans],
            "removedPlans": [c.to_dict() for c in self.removed_plans],
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "provenance": self.provenance,
        }
