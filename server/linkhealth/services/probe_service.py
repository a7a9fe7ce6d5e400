# server/linkhealth/services/probe_service.py

import logging
import socket
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import requests

from linkhealth.errors import InvalidURLError
from linkhealth.utils.validators import URLValidator

logger = logging.getLogger(__name__)

ERROR_TIMEOUT = "timeout"
ERROR_DNS_NOT_FOUND = "dns_not_found"
ERROR_CONNECTION_REFUSED = "connection_refused"

NO_RESPONSE_STATUS = 0


class ProbeDeadlineExceeded(requests.exceptions.Timeout):
    """The probe as a whole ran past its time budget."""


@dataclass
class CheckResult:
    """Outcome of a single probe against a destination URL."""

    status_code: int
    response_time_ms: int
    is_healthy: bool
    error_message: Optional[str] = None
    redirect_count: int = 0
    final_url: Optional[str] = None
    checked_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "status_code": self.status_code,
            "response_time_ms": self.response_time_ms,
            "is_healthy": self.is_healthy,
            "error_message": self.error_message,
            "redirect_count": self.redirect_count,
            "final_url": self.final_url,
            "checked_at": self.checked_at.isoformat(),
        }


def is_healthy_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def _connection_error_reason(exc: BaseException) -> Optional[str]:
    # requests wraps urllib3 errors which wrap the socket error; walk the chain
    pending = [exc]
    seen = set()

    while pending:
        err = pending.pop()
        if err is None or id(err) in seen:
            continue
        seen.add(id(err))

        if isinstance(err, socket.gaierror):
            return ERROR_DNS_NOT_FOUND
        if isinstance(err, ConnectionRefusedError):
            return ERROR_CONNECTION_REFUSED

        pending.append(err.__cause__)
        pending.append(err.__context__)
        reason = getattr(err, "reason", None)
        if isinstance(reason, BaseException):
            pending.append(reason)
        pending.extend(arg for arg in getattr(err, "args", ()) if isinstance(arg, BaseException))

    text = str(exc).lower()
    if "name or service not known" in text or "failed to resolve" in text or "getaddrinfo failed" in text:
        return ERROR_DNS_NOT_FOUND
    if "connection refused" in text:
        return ERROR_CONNECTION_REFUSED
    return None


class ProbeService:

    REQUEST_TIMEOUT = 10
    MAX_REDIRECTS = 5
    USER_AGENT = "Savlink Health Checker/1.0"
    GET_FALLBACK_STATUS_CODES = {405, 501}

    def __init__(
        self,
        timeout: int = REQUEST_TIMEOUT,
        max_redirects: int = MAX_REDIRECTS,
        user_agent: str = USER_AGENT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.max_redirects = max_redirects
        self.user_agent = user_agent
        self.session = session

    @classmethod
    def from_config(cls, config) -> "ProbeService":
        return cls(
            timeout=config.get("HEALTH_REQUEST_TIMEOUT", cls.REQUEST_TIMEOUT),
            max_redirects=config.get("HEALTH_MAX_REDIRECTS", cls.MAX_REDIRECTS),
            user_agent=config.get("HEALTH_USER_AGENT", cls.USER_AGENT),
        )

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.max_redirects = self.max_redirects
        session.headers.update({
            "User-Agent": self.user_agent,
            "Accept": "*/*",
        })
        return session

    @staticmethod
    def _remaining(deadline: float) -> float:
        remaining = deadline - time.time()
        if remaining <= 0:
            raise ProbeDeadlineExceeded("Probe time budget exhausted")
        return remaining

    @staticmethod
    def _deadline_hook(deadline: float):
        # Runs for every hop of a redirect chain
        def check_deadline(response, *args, **kwargs):
            if time.time() > deadline:
                response.close()
                raise ProbeDeadlineExceeded(f"Probe time budget exhausted at {response.url}")
            return response

        return check_deadline

    def check_url(self, url: str, timeout: Optional[int] = None) -> CheckResult:
        """Probe ``url`` once, HEAD first with a GET fallback.

        ``timeout`` bounds the whole probe, redirects and fallback included.
        A probe that runs past it is reported as a ``timeout`` failure.
        """
        is_valid, url, error = URLValidator.validate(url)
        if not is_valid:
            raise InvalidURLError(error)

        timeout = timeout or self.timeout
        session = self.session or self._new_session()
        start_time = time.time()
        deadline = start_time + timeout
        hooks = {"response": self._deadline_hook(deadline)}

        try:
            response = session.head(
                url, timeout=self._remaining(deadline), allow_redirects=True, hooks=hooks,
            )

            if response.status_code in self.GET_FALLBACK_STATUS_CODES:
                response.close()
                response = session.get(
                    url, timeout=self._remaining(deadline), allow_redirects=True, stream=True, hooks=hooks,
                )
                response.close()

            elapsed = time.time() - start_time
            if elapsed > timeout:
                raise ProbeDeadlineExceeded(f"Probe took {elapsed:.2f}s (limit {timeout}s)")

            status_code = response.status_code
            is_healthy = is_healthy_status(status_code)

            result = CheckResult(
                status_code=status_code,
                response_time_ms=int(elapsed * 1000),
                is_healthy=is_healthy,
                error_message=None if is_healthy else f"HTTP {status_code}",
                redirect_count=len(response.history),
                final_url=response.url,
            )

        except requests.exceptions.Timeout:
            result = self._failure(start_time, ERROR_TIMEOUT)
        except requests.exceptions.TooManyRedirects:
            result = self._failure(start_time, f"Too many redirects (max {self.max_redirects})")
        except requests.exceptions.ConnectionError as e:
            result = self._failure(start_time, _connection_error_reason(e) or str(e))
        except requests.exceptions.RequestException as e:
            logger.warning(f"Health probe failed for {url}: {e}")
            result = self._failure(start_time, str(e) or type(e).__name__)
        finally:
            if self.session is None:
                session.close()

        logger.debug(
            f"Probed {url}: status={result.status_code} "
            f"time={result.response_time_ms}ms healthy={result.is_healthy}"
        )
        return result

    @staticmethod
    def _failure(start_time: float, message: str) -> CheckResult:
        return CheckResult(
            status_code=NO_RESPONSE_STATUS,
            response_time_ms=int((time.time() - start_time) * 1000),
            is_healthy=False,
            error_message=message[:255],
        )
