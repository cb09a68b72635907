"""
PayPal IPN (Instant Payment Notification) validation.

The fields PayPal posted to the listener are echoed back to the IPN
endpoint with `cmd=_notify-validate` in front; PayPal answers with the
plain text `VERIFIED` or `INVALID`. No credentials are involved.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from core import metrics
from core.dependencies import get_settings
from core.logging import BusinessEvents
from core.settings import Settings
from paypal_nvp.errors import TransportError
from paypal_nvp.fields import Params, as_pairs, encode_nvp
from paypal_nvp.transport import HttpTransport

log = structlog.get_logger(__name__)

ENDPOINT = "https://www.paypal.com/cgi-bin/webscr"
ENDPOINT_SANDBOX = "https://www.sandbox.paypal.com/cgi-bin/webscr"

VERIFIED = "VERIFIED"
NOTIFY_VALIDATE = ("cmd", "_notify-validate")


def normalize_verdict(body: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return re.sub(r"\s+", " ", body).strip()


@dataclass
class IPNResult:
    verdict: str
    validated: bool
    errors: list[str] = field(default_factory=list)
    raw: str = ""


class IPNValidator:
    """Validates notifications received by an IPN listener."""

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        live: bool = True,
        transport: HttpTransport | None = None,
    ):
        self.live = live
        self.url: str | None = (config or {}).get("URL") or None
        self.transport = transport or HttpTransport()

        self.last_response: str | None = None
        self.validated = False
        self.errors: list[str] = []

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, transport: HttpTransport | None = None
    ) -> "IPNValidator":
        settings = settings or get_settings()
        return cls(
            settings.ipn_config(),
            live=settings.PAYPAL_LIVE,
            transport=transport or HttpTransport.from_settings(settings),
        )

    @property
    def endpoint(self) -> str:
        if self.url:
            return self.url
        return ENDPOINT if self.live else ENDPOINT_SANDBOX

    def build_request(self, parameters: Params) -> list[tuple[str, Any]]:
        """The notification fields in their original order, after `cmd`."""
        return [NOTIFY_VALIDATE] + [
            (name, value) for name, value in as_pairs(parameters) if name != "cmd"
        ]

    def check(self, parameters: Params, encoding: str = "utf-8") -> IPNResult:
        """
        Validate one notification and return the verdict with its state.

        `encoding` must be the one the fields were decoded with so the
        echoed bytes match what PayPal sent.

        Raises:
            TransportError: the validation request could not be completed.
        """
        self.last_response = None
        self.validated = False
        self.errors = []

        pairs = as_pairs(parameters)
        txn_id = dict(pairs).get("txn_id")
        url = f"{self.endpoint}?{encode_nvp(self.build_request(pairs), encoding)}"
        try:
            body = self.transport.execute(url)
        except TransportError as e:
            self.errors.append(e.message)
            raise

        self.last_response = body
        verdict = normalize_verdict(body)
        result = IPNResult(verdict=verdict, validated=verdict == VERIFIED, raw=body)
        if not result.validated:
            result.errors.append(f"IPN Validation Failed: {verdict}")

        self.validated = result.validated
        self.errors = result.errors

        metrics.ipn_validations.labels(verdict=metrics.verdict_label(verdict)).inc()
        if result.validated:
            log.info(BusinessEvents.IPN_VERIFIED, txn_id=txn_id)
        else:
            log.warning(
                BusinessEvents.IPN_REJECTED,
                txn_id=txn_id,
                verdict=verdict[:200],
            )
        return result

    def validate(self, parameters: Params, encoding: str = "utf-8") -> str:
        """Validate one notification and return the normalized verdict text."""
        return self.check(parameters, encoding).verdict
