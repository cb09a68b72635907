"""
PayPal Button Manager

Hosted button operations built on the NVP client:
- Button creation and update
- Button deletion
- Button search and detail lookup
- Decoding of L_BUTTONVARn button variables

A declined call (ACK other than Success/SuccessWithWarning) returns None
or False; the reasons are in `last_errors`. Transport failures raise.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from core.logging import BusinessEvents
from paypal_nvp.fields import group_indexed, indexed_values
from paypal_nvp.nvp_client import NVPClient
from paypal_nvp.schemas import ButtonRecord

log = structlog.get_logger(__name__)

START_DATE = "1999-01-01T00:00:00Z"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

SEARCH_FIELDS = {
    "HOSTEDBUTTONID": "id",
    "BUTTONTYPE": "type",
    "ITEMNAME": "item_name",
    "MODIFYDATE": "modify_date",
}


def format_date(value: str | datetime) -> str:
    """Render a datetime as a PayPal UTC timestamp; strings pass through."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.strftime(DATE_FORMAT)
    return value


def extract_button_variables(button_fields: Mapping[str, str]) -> dict[str, str]:
    """
    Decode the L_BUTTONVARn fields of a button into a name -> value mapping.

    PayPal returns each variable quoted, e.g. `"amount=9.99"`.
    """
    variables = {}
    for raw in indexed_values(button_fields, "BUTTONVAR").values():
        name, _, value = raw.strip("\"'").partition("=")
        if not name:
            continue
        variables[name] = value
    return variables


def decode_button_search(fields: Mapping[str, str]) -> dict[int, ButtonRecord]:
    """Build one ButtonRecord per L_HOSTEDBUTTONIDn index."""
    grouped = group_indexed(fields, SEARCH_FIELDS)
    return {
        index: ButtonRecord(
            **{SEARCH_FIELDS[name]: value for name, value in entry.items()}
        )
        for index, entry in grouped.items()
        if "HOSTEDBUTTONID" in entry
    }


class ButtonManager:
    """Hosted button operations on top of an NVPClient."""

    def __init__(self, client: NVPClient):
        self.client = client

    @classmethod
    def from_settings(cls, settings=None) -> "ButtonManager":
        return cls(NVPClient.from_settings(settings))

    @property
    def last_errors(self) -> list[str]:
        return self.client.errors

    def _call(self, method: str, parameters: dict[str, Any]) -> dict[str, str] | None:
        response = self.client.execute(method, parameters)
        if not self.client.last_was_successful():
            log.warning(
                BusinessEvents.BUTTON_DECLINED,
                method=method,
                ack=response.ack,
                errors=response.errors,
            )
            return None
        return dict(response.fields)

    @staticmethod
    def _button_parameters(
        name: str, amount: Any, button_type: str, sub_type: str
    ) -> dict[str, Any]:
        return {
            "BUTTONTYPE": button_type,
            "BUTTONSUBTYPE": sub_type,
            "L_BUTTONVAR0": f"item_name={name}",
            "L_BUTTONVAR1": f"amount={amount}",
        }

    def create_button(
        self,
        name: str,
        amount: Any,
        button_type: str = "BUYNOW",
        sub_type: str = "PRODUCTS",
    ) -> dict[str, str] | None:
        """Create a hosted button; returns the response fields or None."""
        result = self._call(
            "BMCreateButton",
            self._button_parameters(name, amount, button_type, sub_type),
        )
        if result is not None:
            log.info(
                BusinessEvents.BUTTON_CREATED,
                button_id=result.get("HOSTEDBUTTONID"),
                button_type=button_type,
            )
        return result

    def update_button(
        self,
        button_id: str,
        name: str,
        amount: Any,
        button_type: str = "BUYNOW",
        sub_type: str = "PRODUCTS",
    ) -> dict[str, str] | None:
        """Replace the variables of an existing hosted button."""
        parameters = {"HOSTEDBUTTONID": button_id}
        parameters.update(self._button_parameters(name, amount, button_type, sub_type))
        result = self._call("BMUpdateButton", parameters)
        if result is not None:
            log.info(BusinessEvents.BUTTON_UPDATED, button_id=button_id)
        return result

    def delete_button(self, button_id: str) -> bool:
        result = self._call(
            "BMManageButtonStatus",
            {"HOSTEDBUTTONID": button_id, "BUTTONSTATUS": "DELETE"},
        )
        if result is None:
            return False
        log.info(BusinessEvents.BUTTON_DELETED, button_id=button_id)
        return True

    def search_buttons(
        self,
        start_date: str | datetime = START_DATE,
        end_date: str | datetime | None = None,
    ) -> dict[int, ButtonRecord] | None:
        """
        List hosted buttons modified within a date range.

        Args:
            start_date: PayPal timestamp or datetime, defaults to 1999-01-01.
            end_date: Optional upper bound.

        Returns:
            Mapping of list index to ButtonRecord, or None if PayPal declined.
        """
        parameters = {"STARTDATE": format_date(start_date)}
        if end_date:
            parameters["ENDDATE"] = format_date(end_date)

        result = self._call("BMButtonSearch", parameters)
        if result is None:
            return None
        buttons = decode_button_search(result)
        log.info(BusinessEvents.BUTTON_SEARCH, count=len(buttons))
        return buttons

    def get_button(self, button_id: str) -> dict[str, str] | None:
        """Fetch all fields of one hosted button, including L_BUTTONVARn."""
        return self._call("BMGetButtonDetails", {"HOSTEDBUTTONID": button_id})
