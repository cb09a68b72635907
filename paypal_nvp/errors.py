"""
PayPal client exceptions.

Transport faults and ACK failures are raised; list-level errors returned
by PayPal are carried on the response objects instead.
"""

from typing import Any


class PayPalError(Exception):
    """Base class for every error raised by the PayPal client."""

    pass


class TransportError(PayPalError):
    """The HTTP request could not be completed (DNS, connect, TLS, timeout)."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self):
        return f"{self.message} (transport error: {self.code})"


class PayPalAPIError(PayPalError):
    """An NVP response came back with a failing or missing ACK."""

    def __init__(self, reason: str, response: Any = None):
        super().__init__(reason)
        self.reason = reason
        self.response = response

    @property
    def errors(self) -> list[str]:
        if self.response is None:
            return []
        return list(self.response.errors)

    @property
    def correlation_id(self) -> str | None:
        if self.response is None:
            return None
        return self.response.correlation_id

    def __str__(self):
        if self.errors:
            return f"{self.reason} {'; '.join(self.errors)}"
        return self.reason
