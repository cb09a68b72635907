"""
PayPal NVP API client.

Builds authenticated NVP requests, sends them through an `HttpTransport`
and decodes the `ACK`/`L_*` response fields. Each call returns an
`NVPResponse`; the client also keeps the most recent one in
`last_response` for callers that check status after the fact.
"""

import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from core import metrics
from core.dependencies import get_settings
from core.logging import BusinessEvents
from core.settings import Settings
from paypal_nvp.errors import PayPalAPIError, TransportError
from paypal_nvp.fields import decode_nvp, encode_nvp, extract_errors
from paypal_nvp.transport import HttpTransport

log = structlog.get_logger(__name__)

VERSION = "124.0"
ENDPOINT_SIGNATURE = "https://api-3t.paypal.com/nvp"
ENDPOINT_SIGNATURE_SANDBOX = "https://api-3t.sandbox.paypal.com/nvp"
ENDPOINT_CERTIFICATE = "https://api.paypal.com/nvp"
ENDPOINT_CERTIFICATE_SANDBOX = "https://api.sandbox.paypal.com/nvp"

ACK_SUCCESS = ("Success", "SuccessWithWarning")
ACK_FAILURE = ("Failure", "FailureWithWarning")

# Fields the client always writes itself
RESERVED_FIELDS = ("USER", "PWD", "VERSION", "SIGNATURE", "CERTIFICATE", "METHOD")


def resolve_endpoint(live: bool, has_certificate: bool) -> str:
    """Pick the NVP endpoint for the auth family and environment."""
    if live:
        return ENDPOINT_CERTIFICATE if has_certificate else ENDPOINT_SIGNATURE
    if has_certificate:
        return ENDPOINT_CERTIFICATE_SANDBOX
    return ENDPOINT_SIGNATURE_SANDBOX


@dataclass
class NVPResponse(Mapping):
    """
    Decoded NVP response plus the error entries PayPal attached to it.

    Read-only mapping access goes to the decoded fields.
    """

    fields: dict[str, str]
    errors: list[str] = field(default_factory=list)
    method: str | None = None
    status_code: int | None = None

    @property
    def ack(self) -> str | None:
        return self.fields.get("ACK")

    @property
    def success(self) -> bool:
        return self.ack in ACK_SUCCESS

    @property
    def correlation_id(self) -> str | None:
        return self.fields.get("CORRELATIONID")

    @property
    def timestamp(self) -> str | None:
        return self.fields.get("TIMESTAMP")

    def __getitem__(self, key: str) -> str:
        return self.fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)


class NVPClient:
    """
    Client for the PayPal NVP API.

    Config keys: USER, PWD, SIGNATURE, CERTIFICATE, VERSION, URL. Unknown
    keys are ignored. When URL is empty the endpoint is resolved from the
    live flag and the presence of a certificate at call time.
    """

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        live: bool = True,
        transport: HttpTransport | None = None,
    ):
        self.live = live
        self.user: str | None = None
        self.password: str | None = None
        self.signature: str | None = None
        self.certificate: str | None = None
        self.version = VERSION
        self.url: str | None = None
        self.transport = transport or HttpTransport()

        self.last_response: NVPResponse | None = None
        self.errors: list[str] = []

        self.configure(config or {})

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, transport: HttpTransport | None = None
    ) -> "NVPClient":
        settings = settings or get_settings()
        return cls(
            settings.nvp_config(),
            live=settings.PAYPAL_LIVE,
            transport=transport or HttpTransport.from_settings(settings),
        )

    def configure(self, config: Mapping[str, Any]):
        """Apply a configuration mapping on top of the defaults."""
        config = {"VERSION": VERSION, "URL": None, **config}
        for name, value in config.items():
            if name == "USER":
                self.user = value
            elif name == "PWD":
                self.password = value
            elif name == "SIGNATURE":
                self.signature = value
            elif name == "CERTIFICATE":
                self.certificate = value
            elif name == "VERSION":
                self.version = value or VERSION
            # unknown keys are ignored, URL is applied below
        self.url = config["URL"] or None

    @property
    def endpoint(self) -> str:
        if self.url:
            return self.url
        return resolve_endpoint(self.live, bool(self.certificate))

    def credential_fields(self) -> dict[str, Any]:
        fields = {
            "USER": self.user,
            "PWD": self.password,
            "VERSION": self.version,
        }
        if self.certificate:
            fields["CERTIFICATE"] = self.certificate
        else:
            fields["SIGNATURE"] = self.signature
        return fields

    def build_request(
        self, method: str, parameters: Mapping[str, Any] | None = None
    ) -> dict[str, Any]:
        """Credentials, VERSION and METHOD first, then the caller's fields."""
        request = self.credential_fields()
        request["METHOD"] = method
        for name, value in (parameters or {}).items():
            if name in RESERVED_FIELDS:
                log.warning(
                    "paypal.nvp.reserved_field_ignored", method=method, field=name
                )
                continue
            request[name] = value
        return request

    def execute(
        self, method: str, parameters: Mapping[str, Any] | None = None
    ) -> NVPResponse:
        """
        Send one NVP call and decode the response without checking ACK.

        Raises:
            TransportError: the request could not be completed.
        """
        self.last_response = None
        self.errors = []

        request = self.build_request(method, parameters)
        url = f"{self.endpoint}?{encode_nvp(request)}"

        log.info(BusinessEvents.NVP_REQUEST, method=method, endpoint=self.endpoint)
        started = time.perf_counter()
        try:
            result = self.transport.fetch(url)
        except TransportError as e:
            self.errors.append(e.message)
            raise
        metrics.nvp_latency.labels(method=method).observe(time.perf_counter() - started)

        fields = decode_nvp(result.text)
        response = NVPResponse(
            fields=fields,
            errors=extract_errors(fields),
            method=method,
            status_code=result.status_code,
        )
        self.last_response = response
        self.errors = response.errors

        metrics.nvp_calls.labels(method=method, ack=response.ack or "none").inc()
        if response.success:
            log.info(
                BusinessEvents.NVP_SUCCESS,
                method=method,
                ack=response.ack,
                correlation_id=response.correlation_id,
                warnings=response.errors or None,
            )
        else:
            log.warning(
                BusinessEvents.NVP_FAILURE,
                method=method,
                ack=response.ack,
                correlation_id=response.correlation_id,
                status_code=result.status_code,
                errors=response.errors,
            )
        return response

    def call(
        self, method: str, parameters: Mapping[str, Any] | None = None
    ) -> NVPResponse:
        """
        Send one NVP call and require a successful ACK.

        Raises:
            TransportError: the request could not be completed.
            PayPalAPIError: ACK is Failure/FailureWithWarning, missing or unknown.
        """
        response = self.execute(method, parameters)
        ack = response.ack
        if ack in ACK_SUCCESS:
            return response
        if ack in ACK_FAILURE:
            raise PayPalAPIError("API failure.", response)

        if ack is not None:
            response.errors.append(f"Unknown ACK: {ack}")
        raise PayPalAPIError("API failure, no ACK.", response)

    def last_was_successful(self) -> bool:
        return self.last_response is not None and self.last_response.success
