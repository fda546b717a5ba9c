# src/models/change_record.py

"""Change set models produced by the differ."""

from dataclasses import dataclass, field

CHANGE_NEW = "new"
CHANGE_UPDATED = "updated"
CHANGE_REMOVED = "removed"


@dataclass
class ChangeRecord:
    """One detected difference between the fresh scrape and the catalog."""

    kind: str  # "new", "updated", "removed"
    plan_name: str
    provider_name: str
    entry_id: str | None = None
    old_rate: float | None = None
    new_rate: float | None = None
    notes: list[str] = field(
        default_factory=lambda: list[str]()
    )

    def to_dict(self) -> dict[str, object]:
        """Serialise for the session artifact."""
        data: dict[str, object] = {
            "type": self.kind,
            "planName": self.plan_name,
            "providerName": self.provider_name,
        }
        if self.entry_id is not None:
            data["planId"] = self.entry_id
        if self.old_rate is not None:
            data["oldRate"] = self.old_rate
        if self.new_rate is not None:
            data["newRate"] = self.new_rate
        if self.notes:
            data["changes"] = list(self.notes)
        return data


@dataclass
class ChangeSet:
    """The three change lists computed for one run."""

    new: list[ChangeRecord] = field(
        default_factory=lambda: list[ChangeRecord]()
    )
    updated: list[ChangeRecord] = field(
        default_factory=lambda: list[ChangeRecord]()
    )
    removed: list[ChangeRecord] = field(
        default_factory=lambda: list[ChangeRecord]()
    )
    unresolved_count: int = 0
