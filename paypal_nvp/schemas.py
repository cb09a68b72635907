"""
Pydantic models for records decoded from NVP list fields.
"""

from pydantic import BaseModel, ConfigDict


class ButtonRecord(BaseModel):
    """A hosted button as listed by BMButtonSearch."""

    id: str
    type: str | None = None  # e.g. "BUYNOW", "CART", "SUBSCRIBE"
    item_name: str | None = None
    modify_date: str | None = None  # as sent by PayPal, e.g. "2015-01-31T18:04:05Z"

    model_config = ConfigDict(frozen=True)
