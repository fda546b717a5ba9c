# src/collectors/estimator.py

"""Synthetic plan generator used when the primary source is unavailable."""

import logging
import random
from dataclasses import dataclass

from src.config.settings import Settings
from src.models.source_record import PROVENANCE_ESTIMATED, SourceRecord

logger = logging.getLogger("plan_sync.estimator")

YRAC_URL = "https://www.puc.texas.gov/consumer/facts/rights.pdf"
EFL_URL = (
    "https://www.powertochoose.org/en-us/Plan/ExternalFactSheet?repId={}"
)
TOS_URL = (
    "https://www.powertochoose.org/en-us/Plan/TermsOfService?repId={}"
)

# Low usage pays more per kWh, high usage less (fixed + variable billing)
LOW_TIER_PREMIUM = 1.5
HIGH_TIER_DISCOUNT = 0.8
RATE_JITTER = 0.5


@dataclass(frozen=True)
class PlanTemplate:
    """A plan archetype: name suffix, term, base rate and renewables."""

    suffix: str
    contract_months: int
    base_rate: float
    renewable: float = 0.0


DEFAULT_TEMPLATES: tuple[PlanTemplate, ...] = (
    PlanTemplate("Value 12", 12, 10.5),
    PlanTemplate("Fixed 12", 12, 11.2),
    PlanTemplate("Saver 24", 24, 9.8),
    PlanTemplate("Green 12", 12, 12.5, renewable=100.0),
    PlanTemplate("Freedom Month-to-Month", 0, 13.5),
)


class PlanEstimator:
    """Generate plausible plans per provider from a few archetypes.

    Each provider gets two or three plans. Rates are perturbed within
    ``±RATE_JITTER`` cents so repeated calls differ but stay in a
    realistic band. Pass a seeded :class:`random.Random` for
    reproducible output.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        providers: list[dict[str, str]] | None = None,
        templates: tuple[PlanTemplate, ...] = DEFAULT_TEMPLATES,
    ) -> None:
        self.rng = rng if rng is not None else random.Random()
        self.providers = (
            providers
            if providers is not None
            else Settings.ESTIMATED_PROVIDERS
        )
        self.templates = templates

    def estimate(self, region_id: str) -> list[SourceRecord]:
        """Return estimated plans for one region."""
        if not self.templates:
            msg = "No plan templates configured"
            raise ValueError(msg)

        records: list[SourceRecord] = []
        for provider in self.providers:
            num_plans = self.rng.randint(2, 3)
            for i in range(num_plans):
                template = self.templates[i % len(self.templates)]
                records.append(
                    self._instantiate(provider, template, region_id)
                )

        logger.info(
            "Generated %d estimated plans for region %s",
            len(records),
            region_id,
        )
        return records

    def _instantiate(
        self,
        provider: dict[str, str],
        template: PlanTemplate,
        region_id: str,
    ) -> SourceRecord:
        name = provider["name"]
        variation = self.rng.uniform(-RATE_JITTER, RATE_JITTER)
        rate_1000 = template.base_rate + variation
        open_ended = template.contract_months == 0

        return SourceRecord(
            provider_name=name,
            provider_key=provider.get("slug"),
            plan_name=f"{name.split(' ')[0]} {template.suffix}",
            plan_type="Variable" if open_ended else "Fixed",
            contract_length_months=template.contract_months,
            rate_500kwh=round(rate_1000 + LOW_TIER_PREMIUM, 1),
            rate_1000kwh=round(rate_1000, 1),
            rate_2000kwh=round(rate_1000 - HIGH_TIER_DISCOUNT, 1),
            renewable_percentage=template.renewable,
            base_charge=round(self.rng.uniform(5.0, 10.0), 2),
            early_termination_fee=(
                None if open_ended
                else float(template.contract_months * 15)
            ),
            features=self._features(template),
            efl_url=EFL_URL.format(self.rng.randrange(10000)),
            tos_url=TOS_URL.format(self.rng.randrange(10000)),
            yrac_url=YRAC_URL,
            provenance=PROVENANCE_ESTIMATED,
            requires_verification=True,
            region_id=region_id,
        )

    def _features(self, template: PlanTemplate) -> list[str]:
        features: list[str] = []
        if template.renewable >= 100:
            features.append("renewable_energy")
        if template.contract_months > 0:
            features.append("fixed_rate")
        else:
            features.append("no_cancellation_fee")
        if self.rng.random() > 0.7:
            features.append("bill_credit")
        if self.rng.random() > 0.8:
            features.append("no_deposit")
        return features
