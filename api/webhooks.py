"""
Webhook handlers for PayPal notifications
"""

from collections.abc import Iterator
from urllib.parse import parse_qsl

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from core.dependencies import get_settings
from core.settings import Settings
from paypal_nvp.errors import TransportError
from paypal_nvp.ipn import IPNValidator
from paypal_nvp.transport import HttpTransport

router = APIRouter()

log = structlog.get_logger(__name__)

# Maps every byte to one character, so any IPN charset round-trips unchanged
ECHO_ENCODING = "latin-1"


def get_ipn_validator(
    settings: Settings = Depends(get_settings),
) -> Iterator[IPNValidator]:
    """Dependency that provides an IPN validator and closes its transport."""
    transport = HttpTransport.from_settings(settings)
    try:
        yield IPNValidator.from_settings(settings, transport=transport)
    finally:
        transport.close()


@router.post("/webhook/paypal/ipn")
async def paypal_ipn(
    request: Request, validator: IPNValidator = Depends(get_ipn_validator)
):
    # PayPal requires the fields echoed back in their original order
    payload = (await request.body()).decode(ECHO_ENCODING)
    fields = parse_qsl(payload, keep_blank_values=True, encoding=ECHO_ENCODING)
    if not fields:
        raise HTTPException(status_code=400, detail="empty notification")

    try:
        result = await run_in_threadpool(validator.check, fields, ECHO_ENCODING)
    except TransportError as e:
        # A non-2xx answer makes PayPal redeliver the notification later
        log.error("paypal.ipn.unreachable", code=e.code, error=e.message)
        raise HTTPException(status_code=502, detail="IPN validation unavailable")

    if result.validated:
        return {"status": "verified"}
    return {"status": "invalid", "verdict": result.verdict}
