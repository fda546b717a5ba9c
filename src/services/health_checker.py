# src/services/health_checker.py

"""Connectivity check for the Power to Choose endpoints a sync depends on."""

import asyncio
import logging
import time
from dataclasses import dataclass

from curl_cffi import requests as curl_requests

from src.config.settings import Settings

logger = logging.getLogger("plan_sync.health")

_HEALTH_TIMEOUT = 10  # seconds per endpoint
_SLOW_MS = 5000.0


@dataclass
class HealthResult:
    """Result of a single endpoint health check."""

    source_id: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def default_endpoints() -> list[dict[str, str]]:
    """The homepage, plus the plan API queried for the first region."""
    zip_code = (
        Settings.REGION_TARGETS[0]["region_id"]
        if Settings.REGION_TARGETS
        else "77001"
    )
    return [
        {"id": "homepage", "url": Settings.PTC_HOMEPAGE_URL},
        {
            "id": "plan_api",
            "url": f"{Settings.PTC_API_URL}?zip_code={zip_code}",
            "expect": "json",
        },
    ]


def _classify(
    resp: curl_requests.Response,
    elapsed_ms: float,
    expect: str,
) -> tuple[str, str]:
    """Map a response onto a ``(status, message)`` pair."""
    if resp.status_code != 200:
        return "down", f"HTTP {resp.status_code}"
    if expect == "json":
        try:
            resp.json()
        except ValueError:
            return "down", "Response is not JSON"
    if elapsed_ms > _SLOW_MS:
        return "slow", "High latency"
    return "ok", ""


def probe_endpoint(endpoint: dict[str, str]) -> HealthResult:
    """Issue one impersonated GET and time it."""
    session = curl_requests.Session(
        impersonate=Settings.IMPERSONATE_BROWSER
    )
    start = time.monotonic()
    try:
        resp = session.get(
            endpoint["url"],
            headers={
                **Settings.DEFAULT_HEADERS,
                "Referer": Settings.PTC_HOMEPAGE_URL,
            },
            timeout=_HEALTH_TIMEOUT,
        )
        elapsed_ms = (time.monotonic() - start) * 1000
        status, message = _classify(
            resp, elapsed_ms, endpoint.get("expect", "")
        )
    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        status, message = "down", str(exc)[:80]
    finally:
        session.close()

    return HealthResult(
        source_id=endpoint["id"],
        status=status,
        latency_ms=elapsed_ms,
        message=message,
    )


class HealthChecker:
    """Probes every endpoint concurrently in worker threads."""

    def __init__(
        self, endpoints: list[dict[str, str]] | None = None,
    ) -> None:
        self.endpoints = (
            endpoints if endpoints is not None else default_endpoints()
        )

    async def check_all(self) -> list[HealthResult]:
        results: list[HealthResult] = list(
            await asyncio.gather(
                *(
                    asyncio.to_thread(probe_endpoint, ep)
                    for ep in self.endpoints
                )
            )
        )
        for r in results:
            level = logging.INFO if r.status == "ok" else logging.WARNING
            logger.log(
                level,
                "Health check %s: %s (%.0fms) %s",
                r.source_id,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
