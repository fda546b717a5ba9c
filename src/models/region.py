# src/models/region.py

"""Region sampling point model."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RegionTarget:
    """A ZIP code used as a proxy to query the plan listing."""

    region_id: str
    display_name: str
    utility: str = ""

    @classmethod
    def from_config(cls, entry: dict[str, str]) -> "RegionTarget":
        """Build a target from a ``Settings.REGION_TARGETS`` entry."""
        return cls(
            region_id=entry["region_id"],
            display_name=entry.get("display_name", entry["region_id"]),
            utility=entry.get("utility", ""),
        )
