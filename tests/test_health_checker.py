# tests/test_health_checker.py

"""Tests for the source health checker service."""

import asyncio
import unittest
from unittest.mock import MagicMock, patch

from src.services.health_checker import (
    HealthChecker,
    HealthResult,
    default_endpoints,
    probe_endpoint,
)

ENDPOINT = {"id": "homepage", "url": "https://example.com"}


class TestProbeEndpoint(unittest.TestCase):
    """Tests for the per-endpoint health probe function."""

    @patch("src.services.health_checker.curl_requests.Session")
    def test_ok_status(self, session_cls: MagicMock) -> None:
        """A fast 200 response should return 'ok' status."""
        session_cls.return_value.get.return_value = MagicMock(
            status_code=200
        )
        result = probe_endpoint(ENDPOINT)
        self.assertEqual(result.status, "ok")
        self.assertEqual(result.source_id, "homepage")
        session_cls.return_value.close.assert_called_once()

    @patch("src.services.health_checker.curl_requests.Session")
    def test_down_on_http_error(self, session_cls: MagicMock) -> None:
        """A non-200 response should return 'down' status."""
        session_cls.return_value.get.return_value = MagicMock(
            status_code=403
        )
        result = probe_endpoint(ENDPOINT)
        self.assertEqual(result.status, "down")
        self.assertIn("403", result.message)

    @patch("src.services.health_checker.curl_requests.Session")
    def test_down_on_exception(self, session_cls: MagicMock) -> None:
        """A connection error should return 'down' status."""
        session_cls.return_value.get.side_effect = ConnectionError(
            "Connection refused"
        )
        result = probe_endpoint(ENDPOINT)
        self.assertEqual(result.status, "down")
        self.assertIn("Connection refused", result.message)

    @patch("src.services.health_checker.curl_requests.Session")
    def test_api_must_return_json(self, session_cls: MagicMock) -> None:
        """An HTML body on the JSON endpoint counts as down."""
        resp = MagicMock(status_code=200)
        resp.json.side_effect = ValueError("Expecting value")
        session_cls.return_value.get.return_value = resp
        result = probe_endpoint(
            {"id": "plan_api", "url": "https://x/api", "expect": "json"}
        )
        self.assertEqual(result.status, "down")
        self.assertEqual(result.message, "Response is not JSON")

    @patch("src.services.health_checker.time.monotonic")
    @patch("src.services.health_checker.curl_requests.Session")
    def test_slow_status(
        self, session_cls: MagicMock, mock_clock: MagicMock,
    ) -> None:
        """A response over the latency budget should be 'slow'."""
        mock_clock.side_effect = [0.0, 6.0]
        session_cls.return_value.get.return_value = MagicMock(
            status_code=200
        )
        result = probe_endpoint(ENDPOINT)
        self.assertEqual(result.status, "slow")


class TestDefaultEndpoints(unittest.TestCase):

    def test_homepage_and_api(self) -> None:
        ids = [e["id"] for e in default_endpoints()]
        self.assertEqual(ids, ["homepage", "plan_api"])


class TestHealthChecker(unittest.TestCase):
    """Tests for the HealthChecker orchestrator."""

    @patch("src.services.health_checker.probe_endpoint")
    def test_check_all_returns_results(self, mock_probe: MagicMock) -> None:
        """check_all should return one result per endpoint."""
        mock_probe.side_effect = lambda ep: HealthResult(
            source_id=ep["id"], status="ok", latency_ms=12.0, message="",
        )
        checker = HealthChecker(
            [ENDPOINT, {"id": "plan_api", "url": "https://example.com/api"}]
        )
        results = asyncio.run(checker.check_all())
        self.assertEqual(
            sorted(r.source_id for r in results), ["homepage", "plan_api"]
        )


if __name__ == "__main__":
    unittest.main()
