# src/config/settings.py

"""Central configuration for the plan_sync pipeline."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    return int(raw) if raw else default


class Settings:
    """Central configuration for the plan_sync pipeline."""

    # --- Collection ---
    REQUEST_DELAY: float = _env_float(
        "PLAN_SYNC_REQUEST_DELAY", 2.0
    )                                   # Seconds between region calls
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_COOLDOWN: float = 300.0
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Run control ---
    RUN_TIMEOUT: float = _env_float(
        "PLAN_SYNC_RUN_TIMEOUT", 900.0
    )                                   # Wall-clock budget per run
    ESTIMATOR_SEED: int | None = _env_int(
        "PLAN_SYNC_ESTIMATOR_SEED", None
    )

    # --- Change detection ---
    RATE_CHANGE_THRESHOLD: float = 0.1  # Cents/kWh; smaller deltas are noise
    REPRESENTATIVE_TIER: int = 1000     # kWh tier compared by the differ
    RATE_TIERS: tuple[int, ...] = (500, 1000, 2000)

    # --- Primary source (Power to Choose) ---
    PTC_HOMEPAGE_URL: str = "https://www.powertochoose.org/"
    PTC_API_URL: str = (
        "http://api.powertochoose.org/api/PowerToChoose/plans"
    )
    PTC_RESULTS_URL: str = (
        "https://www.powertochoose.org/en-us/Plan/Results"
    )
    PRIMARY_COLLECTOR: str = (
        "src.collectors.power_to_choose_collector.PowerToChooseCollector"
    )

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,application/json;q=0.9,"
            "*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    LOGS_DIR: Path = BASE_DIR / "logs"
    RESULTS_DIR: Path = BASE_DIR / "results"
    CATALOG_DB_PATH: Path = Path(
        os.getenv(
            "PLAN_SYNC_DB_PATH",
            str(BASE_DIR / "data" / "catalog.db"),
        )
    )
    LOCK_FILE: Path = LOGS_DIR / "plan_sync.lock"

    # --- Regions (one sampling point per utility area) ---
    REGION_TARGETS: list[dict[str, str]] = [
        {
            "region_id": "77001",
            "display_name": "Houston",
            "utility": "CenterPoint Energy",
        },
        {
            "region_id": "75201",
            "display_name": "Dallas",
            "utility": "Oncor",
        },
        {
            "region_id": "78701",
            "display_name": "Austin",
            "utility": "Austin Energy",
        },
        {
            "region_id": "76101",
            "display_name": "Fort Worth",
            "utility": "Oncor",
        },
        {
            "region_id": "78201",
            "display_name": "San Antonio",
            "utility": "CPS Energy",
        },
        {
            "region_id": "79901",
            "display_name": "El Paso",
            "utility": "El Paso Electric",
        },
    ]

    # --- Provider aliases (source listing name -> catalog slug) ---
    PROVIDER_ALIASES: dict[str, str] = {
        "TXU Energy": "txu-energy",
        "Reliant Energy": "reliant-energy",
        "Direct Energy": "direct-energy",
        "Gexa Energy": "gexa-energy",
        "Green Mountain Energy": "green-mountain-energy",
        "4Change Energy": "4change-energy",
        "Frontier Utilities": "frontier-utilities",
        "Constellation": "constellation",
        "Discount Power": "discount-power",
        "Chariot Energy": "chariot-energy",
        "Champion Energy": "champion-energy",
        "Cirro Energy": "cirro-energy",
        "Rhythm Energy": "rhythm-energy",
        "TriEagle Energy": "trieagle-energy",
        "Payless Power": "payless-power",
        "APG&E": "apge",
        "Amigo Energy": "amigo-energy",
        "Pulse Power": "pulse-power",
        "Veteran Energy": "veteran-energy",
        "GoodCharlie": "goodcharlie",
        "Express Energy": "express-energy",
        "Texpo Energy": "texpo-energy",
        "Pennywise Power": "pennywise-power",
        "Tomorrow Energy": "tomorrow-energy",
    }

    # --- Estimator providers (subset quoted when the source is down) ---
    ESTIMATED_PROVIDERS: list[dict[str, str]] = [
        {"name": "TXU Energy", "slug": "txu-energy"},
        {"name": "Reliant Energy", "slug": "reliant-energy"},
        {"name": "Direct Energy", "slug": "direct-energy"},
        {"name": "Gexa Energy", "slug": "gexa-energy"},
        {"name": "Green Mountain Energy", "slug": "green-mountain-energy"},
        {"name": "4Change Energy", "slug": "4change-energy"},
        {"name": "Constellation", "slug": "constellation"},
        {"name": "Chariot Energy", "slug": "chariot-energy"},
    ]
