"""
PayPal NVP and IPN client.

Exports the NVP client, IPN validator and Button Manager.
"""

from paypal_nvp.button_manager import ButtonManager, extract_button_variables
from paypal_nvp.errors import PayPalAPIError, PayPalError, TransportError
from paypal_nvp.ipn import IPNResult, IPNValidator
from paypal_nvp.nvp_client import NVPClient, NVPResponse, resolve_endpoint
from paypal_nvp.schemas import ButtonRecord
from paypal_nvp.transport import HttpTransport, TransportResponse

__all__ = [
    "ButtonManager",
    "ButtonRecord",
    "HttpTransport",
    "IPNResult",
    "IPNValidator",
    "NVPClient",
    "NVPResponse",
    "PayPalAPIError",
    "PayPalError",
    "TransportError",
    "TransportResponse",
    "extract_button_variables",
    "resolve_endpoint",
]
