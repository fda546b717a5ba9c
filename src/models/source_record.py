# src/models/source_record.py

"""Plan record model for data collected in one sync run."""

from dataclasses import dataclass, field

PROVENANCE_LIVE = "live"
PROVENANCE_ESTIMATED = "estimated"
PROVENANCE_MOCK = "mock"


@dataclass
class SourceRecord:
    """A single plan listing as observed for one region."""

    provider_name: str
    plan_name: str
    rate_500kwh: float
    rate_1000kwh: float
    rate_2000kwh: float
    provider_key: str | None = None
    plan_type: str = "Fixed"
    contract_length_months: int = 0  # 0 = month-to-month
    renewable_percentage: float = 0.0
    base_charge: float = 0.0
    early_termination_fee: float | None = None
    features: list[str] = field(
        default_factory=lambda: list[str]()
    )
    efl_url: str | None = None
    tos_url: str | None = None
    yrac_url: str | None = None
    provenance: str = PROVENANCE_LIVE  # "live", "estimated", "mock"
    requires_verification: bool = False
    region_id: str = ""

    @property
    def identity(self) -> tuple[str, str]:
        """The ``(provider_name, plan_name)`` join key."""
        return (self.provider_name, self.plan_name)

    def rate_for(self, tier: int) -> float:
        """Return the cents/kWh rate quoted at a 500/1000/2000 kWh tier."""
        rate: float = getattr(self, f"rate_{tier}kwh")
        return rate
