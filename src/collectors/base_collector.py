# src/collectors/base_collector.py

"""Abstract base class for region plan collectors.

A collector never lets an exception escape ``collect()``: every outcome is
either :class:`Live` (records fetched from the primary source) or
:class:`Unavailable` (with a human-readable reason). The sync driver
inspects the variant and decides whether to fall back to estimation.
"""

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.region import RegionTarget
from src.models.source_record import SourceRecord

# Interstitial pages served instead of content by bot protection
_CHALLENGE_MARKERS: tuple[str, ...] = (
    "challenges.cloudflare.com",
    "cdn-cgi/challenge-platform",
    "just a moment",
    "cf-turnstile",
    "cf_chl_opt",
)


@dataclass
class Live:
    """The primary source answered with at least one plan."""

    records: list[SourceRecord] = field(
        default_factory=lambda: list[SourceRecord]()
    )


@dataclass
class Unavailable:
    """The primary source could not be used for this region."""

    reason: str


CollectorOutcome = Live | Unavailable


@dataclass
class CircuitBreaker:
    """Stop calling a source after repeated failed fetches.

    Once ``threshold`` consecutive fetches fail the breaker opens and
    every call is refused. After ``cooldown`` seconds one probe is let
    through; a success closes the breaker, a failure re-opens it.
    """

    threshold: int
    cooldown: float
    clock: Callable[[], float] = time.time
    failures: int = 0
    opened_at: float | None = None

    @property
    def is_open(self) -> bool:
        return self.opened_at is not None

    def blocks(self) -> bool:
        """True while the breaker is open and cooling down."""
        if self.opened_at is None:
            return False
        if self.clock() - self.opened_at >= self.cooldown:
            self.opened_at = None
            return False
        return True

    def succeed(self) -> None:
        self.failures = 0
        self.opened_at = None

    def fail(self) -> bool:
        """Count a failed fetch; True if this one opened the breaker."""
        self.failures += 1
        if self.failures >= self.threshold and self.opened_at is None:
            self.opened_at = self.clock()
            return True
        return False


class BaseCollector(ABC):
    """Abstract base class for all region collectors."""

    def __init__(self, source_name: str) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"plan_sync.collector.{source_name}"
        )
        self.settings = Settings()
        self.selectors: dict[str, str] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self.breaker = CircuitBreaker(
            threshold=self.settings.CIRCUIT_BREAKER_THRESHOLD,
            cooldown=self.settings.CIRCUIT_BREAKER_COOLDOWN,
        )
        self._current_delay: float = self.settings.REQUEST_DELAY
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _load_selectors(self) -> dict[str, str]:
        """Load this source's CSS selectors from selectors.json."""
        try:
            with open(self.settings.SELECTORS_PATH) as f:
                all_selectors: dict[str, Any] = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning(
                "[%s] Could not load selectors: %s",
                self.source_name,
                exc,
            )
            return {}
        result: dict[str, str] = all_selectors.get(
            self.source_name, {}
        )
        return result

    # ── Public contract ──────────────────────────────────

    def collect(self, region: RegionTarget) -> CollectorOutcome:
        """Fetch plans for one region, never raising.

        Any exception, an open circuit breaker or an empty result is
        reported as :class:`Unavailable`.
        """
        if self.breaker.blocks():
            return Unavailable(
                f"{self.source_name} circuit breaker open"
            )
        try:
            records = self._collect(region)
        except Exception as exc:
            self.logger.warning(
                "[%s] Collection failed for region %s: %s",
                self.source_name,
                region.region_id,
                exc,
                exc_info=True,
            )
            return Unavailable(str(exc) or type(exc).__name__)

        if not records:
            self.logger.info(
                "[%s] No plans returned for region %s",
                self.source_name,
                region.region_id,
            )
            return Unavailable(
                f"{self.source_name} returned no plans"
            )

        for record in records:
            record.region_id = region.region_id
        self.logger.info(
            "[%s] Collected %d live plans for region %s",
            self.source_name,
            len(records),
            region.region_id,
        )
        return Live(records)

    # ── HTTP helpers ─────────────────────────────────────

    def _blocked_marker(self, text: str) -> str | None:
        """Return the challenge or CAPTCHA marker found in *text*."""
        if text.lstrip().startswith(("{", "[")):
            return None
        lower = text.lower()
        for marker in _CHALLENGE_MARKERS:
            if marker in lower:
                return marker
        # Full listing pages can mention "captcha" in inline scripts
        if "<body" in lower and len(text) > 5000:
            return None
        for keyword in self.settings.CAPTCHA_KEYWORDS:
            if keyword in lower:
                return keyword
        return None

    def _back_off(self, reason: str) -> None:
        """Double the delay (capped) and wait it out."""
        ceiling = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(self._current_delay * 2, ceiling)
        self.logger.warning(
            "[%s] %s, backing off %.1fs",
            self.source_name,
            reason,
            self._current_delay,
        )
        time.sleep(self._current_delay)

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
    ) -> curl_requests.Response | None:
        """GET with retries, back-off and the circuit breaker.

        Returns None once every attempt has failed or been blocked.
        """
        if self.breaker.blocks():
            return None

        for attempt in range(1, self.settings.MAX_RETRIES + 1):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    params=params,
                    timeout=self._request_timeout,
                )
            except Exception as exc:
                self.logger.warning(
                    "[%s] Request error on attempt %d: %s",
                    self.source_name,
                    attempt,
                    exc,
                    exc_info=True,
                )
                time.sleep(self._current_delay * attempt)
                continue

            if resp.status_code == 200:
                marker = self._blocked_marker(resp.text)
                if marker is None:
                    self.breaker.succeed()
                    self._current_delay = self.settings.REQUEST_DELAY
                    return resp
                self._back_off(f"Blocked page ('{marker}')")
            elif resp.status_code in (403, 429):
                self._back_off(f"HTTP {resp.status_code}")
            else:
                self.logger.warning(
                    "[%s] HTTP %d on attempt %d",
                    self.source_name,
                    resp.status_code,
                    attempt,
                )

        if self.breaker.fail():
            self.logger.error(
                "[%s] Circuit breaker opened after %d failed fetches",
                self.source_name,
                self.breaker.failures,
            )
        return None

    def _cloudscraper_text(
        self, url: str, headers: dict[str, str],
    ) -> str | None:
        """Last-resort fetch through cloudscraper's JS challenge solver."""
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url, headers=headers, timeout=self._request_timeout,
            )
        except Exception as exc:
            self.logger.error(
                "[%s] cloudscraper fallback failed: %s",
                self.source_name,
                exc,
                exc_info=True,
            )
            return None
        if resp.status_code != 200:
            self.logger.warning(
                "[%s] cloudscraper fallback got HTTP %s",
                self.source_name,
                resp.status_code,
            )
            return None
        return str(resp.text)

    def _get_page(self, url: str) -> BeautifulSoup | None:
        """Fetch and parse an HTML page.

        curl_cffi (browser TLS impersonation) is tried first, then
        cloudscraper.
        """
        if self.breaker.blocks():
            return None
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self._get_homepage(),
        }

        resp = self._fetch_get(url, headers)
        if resp is not None:
            return BeautifulSoup(resp.text, "lxml")

        self.logger.info(
            "[%s] curl_cffi exhausted, trying cloudscraper",
            self.source_name,
        )
        text = self._cloudscraper_text(url, headers)
        return BeautifulSoup(text, "lxml") if text is not None else None

    @staticmethod
    def extract_number(text: str | None) -> float:
        """Extract the first number from text like '12.4¢' or '$150.00'."""
        if not text:
            return 0.0
        match = re.search(r"\d+(?:\.\d+)?", text.replace(",", ""))
        return float(match.group()) if match else 0.0

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...

    @abstractmethod
    def _collect(self, region: RegionTarget) -> list[SourceRecord]:
        """Fetch and parse plans for one region (may raise)."""
        ...
