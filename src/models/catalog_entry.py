# src/models/catalog_entry.py

"""Persisted catalog plan model."""

from dataclasses import dataclass


@dataclass
class CatalogEntry:
    """A plan row in the catalog store, joined with its provider."""

    entry_id: str
    provider_id: str
    provider_name: str
    plan_name: str
    rate_500kwh: float
    rate_1000kwh: float
    rate_2000kwh: float
    active: bool = True
    updated_at: str = ""

    @property
    def identity(self) -> tuple[str, str]:
        """The ``(provider_id, plan_name)`` key used for diffing."""
        return (self.provider_id, self.plan_name)

    def rate_for(self, tier: int) -> float:
        """Return the stored rate for a 500/1000/2000 kWh tier."""
        rate: float = getattr(self, f"rate_{tier}kwh")
        return rate
