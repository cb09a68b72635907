"""
HTTP transport for NVP and IPN requests.

Wraps a `requests.Session` configured with the timeouts, user agent and
redirect policy PayPal calls use. Failures below the HTTP layer raise
`TransportError`; non-2xx statuses are returned to the caller untouched.
"""

import re
from dataclasses import dataclass, field

import requests
import structlog

from core import metrics
from core.logging import BusinessEvents
from core.settings import Settings
from paypal_nvp.errors import TransportError

log = structlog.get_logger(__name__)

QUERY_STRING = re.compile(r"\?[^\s'\"]*")


def strip_query(text: str) -> str:
    """Remove every query string from text; NVP queries carry credentials."""
    return QUERY_STRING.sub("", text)


@dataclass
class TransportResponse:
    """Body, status and headers of a completed HTTP request."""

    url: str
    status_code: int
    text: str
    headers: dict[str, str] = field(default_factory=dict)


class HttpTransport:
    """
    Blocking GET transport over a `requests.Session`.

    `timeout` is the read timeout: the longest wait for the next chunk of
    the response, not a deadline for the whole request. `connect_timeout`
    bounds establishing the connection.
    """

    USER_AGENT = "PayPalNVP Python Client"
    READ_TIMEOUT = 30
    CONNECT_TIMEOUT = 10
    FOLLOW_REDIRECTS = True
    MAX_REDIRECTS = 10
    CAPTURE_HEADERS = True

    def __init__(
        self,
        user_agent: str = USER_AGENT,
        timeout: float = READ_TIMEOUT,
        connect_timeout: float = CONNECT_TIMEOUT,
        follow_redirects: bool = FOLLOW_REDIRECTS,
        max_redirects: int = MAX_REDIRECTS,
        capture_headers: bool = CAPTURE_HEADERS,
        session: requests.Session | None = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self.follow_redirects = follow_redirects
        self.max_redirects = max_redirects
        self.capture_headers = capture_headers
        self.session = session or requests.Session()

        self.last_url: str | None = None
        self.last_status_code: int | None = None
        self.last_headers: dict[str, str] = {}
        self.last_body: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpTransport":
        return cls(
            user_agent=settings.HTTP_USER_AGENT,
            timeout=settings.HTTP_TIMEOUT,
            connect_timeout=settings.HTTP_CONNECT_TIMEOUT,
            follow_redirects=settings.HTTP_FOLLOW_REDIRECTS,
            max_redirects=settings.HTTP_MAX_REDIRECTS,
            capture_headers=settings.HTTP_CAPTURE_HEADERS,
        )

    def execute(self, url: str) -> str:
        """GET the url and return the response body."""
        return self.fetch(url).text

    def fetch(self, url: str) -> TransportResponse:
        """GET the url and return body, status and headers."""
        self.last_url = url
        self.last_status_code = None
        self.last_headers = {}
        self.last_body = None

        self.session.max_redirects = self.max_redirects
        try:
            response = self.session.get(
                url,
                headers={"User-Agent": self.user_agent},
                timeout=(self.connect_timeout, self.timeout),
                allow_redirects=self.follow_redirects,
            )
        except requests.RequestException as e:
            error = self._transport_error(e)
            metrics.transport_failures.labels(code=error.code).inc()
            log.error(
                BusinessEvents.TRANSPORT_FAILURE,
                url=strip_query(url),
                code=error.code,
                error=error.message,
            )
            # The requests exception repeats the full url, so it is not chained
            raise error from None

        self.last_status_code = response.status_code
        self.last_body = response.text
        if self.capture_headers:
            self.last_headers = dict(response.headers)

        return TransportResponse(
            url=url,
            status_code=response.status_code,
            text=response.text,
            headers=dict(self.last_headers),
        )

    @staticmethod
    def _transport_error(e: requests.RequestException) -> TransportError:
        # SSLError and ConnectTimeout are ConnectionError subclasses, check them first
        if isinstance(e, requests.exceptions.SSLError):
            code = "ssl"
        elif isinstance(e, requests.Timeout):
            code = "timeout"
        elif isinstance(e, requests.TooManyRedirects):
            code = "too_many_redirects"
        elif isinstance(e, requests.ConnectionError):
            code = "connection"
        else:
            code = "request"
        return TransportError(code, strip_query(str(e)) or e.__class__.__name__)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
