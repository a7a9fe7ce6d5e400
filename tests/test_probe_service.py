# tests/test_probe_service.py

"""Tests for the outbound probe and its outcome classification."""

import socket
import unittest
from typing import Optional
from unittest.mock import ANY, MagicMock, patch

import requests

from linkhealth.errors import InvalidURLError
from linkhealth.services.probe_service import (
    ERROR_CONNECTION_REFUSED,
    ERROR_DNS_NOT_FOUND,
    ERROR_TIMEOUT,
    ProbeDeadlineExceeded,
    ProbeService,
)

URL = "https://example.com/landing"


def _response(status_code: int, history: Optional[list] = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.history = history or []
    response.url = URL
    return response


class FakeClock:
    """Stands in for the ``time`` module; only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def time(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ProbeTestCase(unittest.TestCase):

    def setUp(self) -> None:
        self.clock = FakeClock()
        patcher = patch("linkhealth.services.probe_service.time", self.clock)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.session = MagicMock(spec=requests.Session)
        self.probe = ProbeService(session=self.session)

    def _takes(self, seconds: float, response: MagicMock):
        def send(*args, **kwargs):
            self.clock.advance(seconds)
            return response

        return send


class TestHttpClassification(ProbeTestCase):
    """Responses are classified by status code."""

    def test_success_is_healthy(self) -> None:
        self.session.head.return_value = _response(200)

        result = self.probe.check_url(URL)

        self.assertTrue(result.is_healthy)
        self.assertEqual(result.status_code, 200)
        self.assertIsNone(result.error_message)
        self.session.head.assert_called_once_with(URL, timeout=10, allow_redirects=True, hooks=ANY)

    def test_redirects_are_counted(self) -> None:
        self.session.head.return_value = _response(200, history=[_response(301), _response(302)])

        result = self.probe.check_url(URL)

        self.assertTrue(result.is_healthy)
        self.assertEqual(result.redirect_count, 2)

    def test_client_error_is_unhealthy(self) -> None:
        self.session.head.return_value = _response(404)

        result = self.probe.check_url(URL)

        self.assertFalse(result.is_healthy)
        self.assertEqual(result.status_code, 404)
        self.assertEqual(result.error_message, "HTTP 404")

    def test_server_error_keeps_status_code(self) -> None:
        self.session.head.return_value = _response(503)

        result = self.probe.check_url(URL)

        self.assertFalse(result.is_healthy)
        self.assertEqual(result.status_code, 503)
        self.assertEqual(result.error_message, "HTTP 503")

    def test_head_not_allowed_falls_back_to_get(self) -> None:
        self.session.head.return_value = _response(405)
        self.session.get.return_value = _response(200)

        result = self.probe.check_url(URL)

        self.assertTrue(result.is_healthy)
        self.session.get.assert_called_once_with(
            URL, timeout=10, allow_redirects=True, stream=True, hooks=ANY,
        )

    def test_custom_timeout_is_passed(self) -> None:
        self.session.head.return_value = _response(200)
        self.probe.check_url(URL, timeout=3)
        self.session.head.assert_called_once_with(URL, timeout=3, allow_redirects=True, hooks=ANY)

    def test_response_time_is_measured(self) -> None:
        self.session.head.side_effect = self._takes(0.25, _response(200))

        result = self.probe.check_url(URL)

        self.assertEqual(result.response_time_ms, 250)


class TestTimeBudget(ProbeTestCase):
    """The timeout bounds the whole probe, not each request."""

    def test_get_fallback_gets_remaining_budget(self) -> None:
        self.session.head.side_effect = self._takes(4, _response(405))
        self.session.get.return_value = _response(200)

        result = self.probe.check_url(URL)

        self.assertTrue(result.is_healthy)
        self.assertEqual(self.session.get.call_args.kwargs["timeout"], 6)

    def test_budget_spent_before_fallback(self) -> None:
        self.session.head.side_effect = self._takes(10, _response(405))

        result = self.probe.check_url(URL)

        self.assertFalse(result.is_healthy)
        self.assertEqual(result.status_code, 0)
        self.assertEqual(result.error_message, ERROR_TIMEOUT)
        self.session.get.assert_not_called()

    def test_slow_fallback_is_a_timeout(self) -> None:
        self.session.head.side_effect = self._takes(6, _response(405))
        self.session.get.side_effect = self._takes(5, _response(200))

        result = self.probe.check_url(URL)

        self.assertFalse(result.is_healthy)
        self.assertEqual(result.status_code, 0)
        self.assertEqual(result.error_message, ERROR_TIMEOUT)

    def test_slow_redirect_chain_is_a_timeout(self) -> None:
        probe = ProbeService(timeout=1, session=self.session)

        def follow_redirects(url, **kwargs):
            hook = kwargs["hooks"]["response"]
            for _ in range(4):
                self.clock.advance(0.8)
                hook(_response(302))
            return _response(200)

        self.session.head.side_effect = follow_redirects

        result = probe.check_url(URL)

        self.assertFalse(result.is_healthy)
        self.assertEqual(result.status_code, 0)
        self.assertEqual(result.error_message, ERROR_TIMEOUT)
        self.assertGreaterEqual(result.response_time_ms, 1000)

    def test_hook_stops_chain_past_deadline(self) -> None:
        self.session.head.return_value = _response(200)
        self.probe.check_url(URL, timeout=2)
        hook = self.session.head.call_args.kwargs["hooks"]["response"]

        hop = _response(302)
        self.assertIs(hook(hop), hop)

        self.clock.advance(3)
        with self.assertRaises(ProbeDeadlineExceeded):
            hook(hop)
        hop.close.assert_called_once()

    def test_deadline_is_a_requests_timeout(self) -> None:
        self.assertTrue(issubclass(ProbeDeadlineExceeded, requests.exceptions.Timeout))


class TestTransportFailures(ProbeTestCase):
    """Network failures become classified results, never exceptions."""

    def _assert_failure(self, expected_message: str) -> None:
        result = self.probe.check_url(URL)
        self.assertFalse(result.is_healthy)
        self.assertEqual(result.status_code, 0)
        self.assertEqual(result.error_message, expected_message)
        self.assertGreaterEqual(result.response_time_ms, 0)

    def test_timeout(self) -> None:
        self.session.head.side_effect = requests.exceptions.ReadTimeout("read timed out")
        self._assert_failure(ERROR_TIMEOUT)

    def test_connect_timeout(self) -> None:
        self.session.head.side_effect = requests.exceptions.ConnectTimeout("connect timed out")
        self._assert_failure(ERROR_TIMEOUT)

    def test_dns_failure(self) -> None:
        error = requests.exceptions.ConnectionError("Max retries exceeded")
        error.__cause__ = socket.gaierror(-2, "Name or service not known")
        self.session.head.side_effect = error
        self._assert_failure(ERROR_DNS_NOT_FOUND)

    def test_connection_refused(self) -> None:
        self.session.head.side_effect = requests.exceptions.ConnectionError(
            ConnectionRefusedError(111, "Connection refused"),
        )
        self._assert_failure(ERROR_CONNECTION_REFUSED)

    def test_other_connection_error_keeps_text(self) -> None:
        self.session.head.side_effect = requests.exceptions.ConnectionError("connection reset by peer")
        self._assert_failure("connection reset by peer")

    def test_too_many_redirects(self) -> None:
        self.session.head.side_effect = requests.exceptions.TooManyRedirects("Exceeded 5 redirects.")
        self._assert_failure("Too many redirects (max 5)")


class TestInputValidation(unittest.TestCase):

    def test_non_http_scheme_is_rejected(self) -> None:
        probe = ProbeService(session=MagicMock(spec=requests.Session))
        with self.assertRaises(InvalidURLError):
            probe.check_url("ftp://example.com/file")

    def test_empty_url_is_rejected(self) -> None:
        probe = ProbeService(session=MagicMock(spec=requests.Session))
        with self.assertRaises(InvalidURLError):
            probe.check_url("")

    def test_from_config(self) -> None:
        probe = ProbeService.from_config({
            "HEALTH_REQUEST_TIMEOUT": 4,
            "HEALTH_MAX_REDIRECTS": 2,
            "HEALTH_USER_AGENT": "Probe/2",
        })
        self.assertEqual(probe.timeout, 4)
        self.assertEqual(probe.max_redirects, 2)
        self.assertEqual(probe._new_session().headers["User-Agent"], "Probe/2")


if __name__ == "__main__":
    unittest.main()
