# src/collectors/power_to_choose_collector.py

"""Collector for powertochoose.org, the Texas retail plan listing."""

from typing import Any

from bs4 import BeautifulSoup, Tag

from src.collectors.base_collector import BaseCollector
from src.config.settings import Settings
from src.models.region import RegionTarget
from src.models.source_record import PROVENANCE_LIVE, SourceRecord

# API field name -> spreadsheet export column name
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "provider": ("company_name", "RepCompany"),
    "plan_name": ("plan_name", "Plan Name"),
    "rate_500": ("price_kwh500", "Price/kWh 500"),
    "rate_1000": ("price_kwh1000", "Price/kWh 1000"),
    "rate_2000": ("price_kwh2000", "Price/kWh 2000"),
    "rate_type": ("rate_type", "Rate Type"),
    "term": ("term_value", "Term Value"),
    "prepaid": ("prepaid", "Prepaid"),
    "renewable": ("renewable_energy_id", "Renewable Perc"),
    "fact_sheet": ("fact_sheet", "Fact Sheet"),
    "terms_of_service": ("terms_of_service", "Terms of Service"),
    "yrac": ("yrac_url", "YRAC"),
    "cancel_fee": ("cancel_fee", "Cancel Fee"),
    "base_charge": ("base_charge", "Base Charge"),
}


def _field(row: dict[str, Any], key: str) -> Any:
    """Return the first populated value among a field's aliases."""
    for name in _FIELD_ALIASES[key]:
        value = row.get(name)
        if value not in (None, ""):
            return value
    return None


def to_cents(value: Any) -> float:
    """Normalise a quoted rate to cents/kWh.

    The listing quotes dollars (``0.139``) while exports sometimes
    quote cents (``13.9``).
    """
    if value in (None, ""):
        return 0.0
    try:
        rate = float(str(value).replace("¢", "").replace("$", ""))
    except ValueError:
        return 0.0
    if 0 < rate < 1:
        rate *= 100
    return round(rate, 2)


class PowerToChooseCollector(BaseCollector):
    """Collect plans per ZIP code from the Power to Choose listing.

    The JSON plan API is tried first. When it is exhausted the public
    results page is fetched (with the cloudscraper fallback) and parsed
    with the selectors in ``selectors.json``.
    """

    def __init__(
        self,
        provider_aliases: dict[str, str] | None = None,
    ) -> None:
        super().__init__("power_to_choose")
        self.provider_aliases = (
            provider_aliases
            if provider_aliases is not None
            else dict(Settings.PROVIDER_ALIASES)
        )

    def _get_homepage(self) -> str:
        return self.settings.PTC_HOMEPAGE_URL

    def _collect(self, region: RegionTarget) -> list[SourceRecord]:
        rows = self._fetch_api_rows(region.region_id)
        if rows:
            return self._parse_rows(rows)

        self.logger.info(
            "[%s] API returned nothing for %s, trying results page",
            self.source_name,
            region.region_id,
        )
        soup = self._get_page(
            f"{self.settings.PTC_RESULTS_URL}?zip={region.region_id}"
        )
        if soup is None:
            return []
        return self._parse_results_page(soup)

    # ── JSON API ─────────────────────────────────────────

    def _fetch_api_rows(
        self, zip_code: str,
    ) -> list[dict[str, Any]]:
        headers = {
            **self.settings.DEFAULT_HEADERS,
            "Accept": "application/json",
            "Referer": self._get_homepage(),
        }
        resp = self._fetch_get(
            self.settings.PTC_API_URL,
            headers,
            params={"zip_code": zip_code},
        )
        if resp is None:
            return []
        payload: Any = resp.json()
        if isinstance(payload, dict):
            payload = payload.get("data", [])
        if not isinstance(payload, list):
            return []
        return [row for row in payload if isinstance(row, dict)]

    def _parse_rows(
        self, rows: list[dict[str, Any]],
    ) -> list[SourceRecord]:
        records: list[SourceRecord] = []
        for row in rows:
            try:
                record = self._parse_row(row)
            except (TypeError, ValueError, OverflowError) as exc:
                self.logger.warning(
                    "[%s] Skipping malformed row %r: %s",
                    self.source_name,
                    _field(row, "plan_name"),
                    exc,
                )
                continue
            if record is not None:
                records.append(record)
        return records

    def _number(self, row: dict[str, Any], key: str) -> float:
        """Read a number quoted as ``12``, ``"12 months"`` or ``"$4.95"``."""
        value = _field(row, key)
        if value is None:
            return 0.0
        if isinstance(value, (int, float)):
            return float(value)
        return self.extract_number(str(value))

    def _parse_row(self, row: dict[str, Any]) -> SourceRecord | None:
        provider = str(_field(row, "provider") or "").strip()
        plan_name = str(_field(row, "plan_name") or "").strip()
        if not provider or not plan_name:
            return None
        term = int(self._number(row, "term"))
        renewable = self._number(row, "renewable")
        prepaid = str(_field(row, "prepaid") or "").lower() in (
            "true", "1", "yes",
        )
        cancel_fee = _field(row, "cancel_fee")
        return SourceRecord(
            provider_name=provider,
            provider_key=self.provider_aliases.get(provider),
            plan_name=plan_name,
            plan_type=self._plan_type(_field(row, "rate_type"), prepaid),
            contract_length_months=term,
            rate_500kwh=to_cents(_field(row, "rate_500")),
            rate_1000kwh=to_cents(_field(row, "rate_1000")),
            rate_2000kwh=to_cents(_field(row, "rate_2000")),
            renewable_percentage=renewable,
            base_charge=self._number(row, "base_charge"),
            early_termination_fee=(
                self.extract_number(str(cancel_fee))
                if cancel_fee is not None
                else None
            ),
            features=self._features(term, renewable),
            efl_url=_field(row, "fact_sheet"),
            tos_url=_field(row, "terms_of_service"),
            yrac_url=_field(row, "yrac"),
            provenance=PROVENANCE_LIVE,
            requires_verification=False,
        )

    @staticmethod
    def _plan_type(rate_type: Any, prepaid: bool) -> str:
        if prepaid:
            return "Prepaid"
        if str(rate_type or "").strip().lower().startswith("var"):
            return "Variable"
        return "Fixed"

    @staticmethod
    def _features(term: int, renewable: float) -> list[str]:
        features: list[str] = []
        if term > 0:
            features.append("fixed_rate")
        else:
            features.append("no_cancellation_fee")
        if renewable >= 100:
            features.append("renewable_energy")
        return features

    # ── HTML results page ────────────────────────────────

    def _select_text(self, node: Tag, key: str) -> str:
        selector = self.selectors.get(key, "")
        if not selector:
            return ""
        found = node.select_one(selector)
        return found.get_text(strip=True) if found else ""

    def _select_href(self, node: Tag, key: str) -> str | None:
        selector = self.selectors.get(key, "")
        if not selector:
            return None
        found = node.select_one(selector)
        if found is None:
            return None
        href = found.get("href")
        return str(href) if href else None

    def _parse_results_page(
        self, soup: BeautifulSoup,
    ) -> list[SourceRecord]:
        row_selector = self.selectors.get("plan_row", "")
        if not row_selector:
            self.logger.error(
                "[%s] No plan_row selector configured",
                self.source_name,
            )
            return []

        rows: list[dict[str, Any]] = []
        for node in soup.select(row_selector):
            rows.append({
                "company_name": self._select_text(node, "provider"),
                "plan_name": self._select_text(node, "plan_name"),
                "price_kwh500": self.extract_number(
                    self._select_text(node, "rate_500")
                ),
                "price_kwh1000": self.extract_number(
                    self._select_text(node, "rate_1000")
                ),
                "price_kwh2000": self.extract_number(
                    self._select_text(node, "rate_2000")
                ),
                "term_value": self.extract_number(
                    self._select_text(node, "term")
                ),
                "rate_type": self._select_text(node, "rate_type"),
                "renewable_energy_id": self.extract_number(
                    self._select_text(node, "renewable")
                ),
                "fact_sheet": self._select_href(node, "fact_sheet"),
                "terms_of_service": self._select_href(
                    node, "terms_of_service"
                ),
                "yrac_url": self._select_href(node, "yrac"),
            })
        return self._parse_rows(rows)
