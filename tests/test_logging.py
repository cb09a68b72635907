import logging
import sys
from unittest.mock import MagicMock

import pytest
import requests
import structlog
from opentelemetry.instrumentation.logging import LoggingInstrumentor

from core.logging import BusinessEvents, configure_logging
from paypal_nvp.button_manager import ButtonManager
from paypal_nvp.errors import TransportError
from paypal_nvp.ipn import IPNValidator
from paypal_nvp.nvp_client import NVPClient
from paypal_nvp.transport import HttpTransport


class _TestLogger:
    def __init__(self):
        self.output = []

    def __call__(self, logger, method_name, event_dict):
        """Process log events and store them for test assertions"""
        self.output.append(event_dict.copy())
        return event_dict


@pytest.fixture
def test_logger():
    test_logger = _TestLogger()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            test_logger,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,  # Don't cache to ensure fresh config
    )
    root_logger = logging.getLogger()
    original_level = root_logger.level
    root_logger.setLevel(logging.DEBUG)
    yield test_logger
    root_logger.setLevel(original_level)
    structlog.reset_defaults()


def events(test_logger, name):
    return [log for log in test_logger.output if log.get("event") == name]


def test_nvp_call_logs_without_credentials(test_logger, nvp_client, transport):
    transport.queue("ACK=Success&CORRELATIONID=abc123")

    nvp_client.call("GetBalance")

    request_log = events(test_logger, BusinessEvents.NVP_REQUEST)[0]
    assert request_log["method"] == "GetBalance"
    assert request_log["endpoint"] == "https://api-3t.sandbox.paypal.com/nvp"
    assert request_log["level"] == "info"

    success_log = events(test_logger, BusinessEvents.NVP_SUCCESS)[0]
    assert success_log["correlation_id"] == "abc123"
    assert "timestamp" in success_log

    rendered = str(test_logger.output)
    assert "test_password" not in rendered
    assert "test_signature" not in rendered


def test_nvp_failure_logged_as_warning(test_logger, nvp_client, transport):
    transport.queue("ACK=Failure&L_LONGMESSAGE0=Bad")

    nvp_client.execute("GetBalance")

    failure_log = events(test_logger, BusinessEvents.NVP_FAILURE)[0]
    assert failure_log["level"] == "warning"
    assert failure_log["ack"] == "Failure"
    assert failure_log["errors"] == ["Bad."]


def test_ipn_events(test_logger, transport):
    validator = IPNValidator(live=False, transport=transport)
    transport.queue("VERIFIED", "INVALID")

    validator.validate({"txn_id": "T1"})
    validator.validate({"txn_id": "T2"})

    assert events(test_logger, BusinessEvents.IPN_VERIFIED)[0]["txn_id"] == "T1"
    rejected = events(test_logger, BusinessEvents.IPN_REJECTED)[0]
    assert rejected["txn_id"] == "T2"
    assert rejected["verdict"] == "INVALID"


def test_button_decline_logged(test_logger, nvp_client, transport):
    transport.queue("ACK=Failure&L_LONGMESSAGE0=Denied")

    ButtonManager(nvp_client).delete_button("HB1")

    declined = events(test_logger, BusinessEvents.BUTTON_DECLINED)[0]
    assert declined["method"] == "BMManageButtonStatus"
    assert declined["errors"] == ["Denied."]


def test_transport_failure_logged_without_query(test_logger):
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = requests.ConnectionError("refused")
    transport = HttpTransport(session=session)

    with pytest.raises(TransportError):
        transport.execute("https://api-3t.paypal.com/nvp?PWD=secret")

    failure = events(test_logger, BusinessEvents.TRANSPORT_FAILURE)[0]
    assert failure["url"] == "https://api-3t.paypal.com/nvp"
    assert failure["code"] == "connection"
    assert "secret" not in str(failure)


def test_refused_nvp_call_keeps_credentials_out_of_logs(test_logger):
    client = NVPClient(
        {
            "USER": "merchant_api1.example.com",
            "PWD": "SUPERSECRETPWD",
            "SIGNATURE": "SIGXYZ",
            "URL": "http://127.0.0.1:9/nvp",
        },
        transport=HttpTransport(connect_timeout=2, timeout=2),
    )

    with pytest.raises(TransportError) as exc_info:
        client.call("GetBalance")
    client.transport.close()

    for leaked in (str(exc_info.value), str(client.errors), str(test_logger.output)):
        assert "SUPERSECRETPWD" not in leaked
        assert "SIGXYZ" not in leaked
    failure = events(test_logger, BusinessEvents.TRANSPORT_FAILURE)[0]
    assert failure["code"] == "connection"


def test_configure_logging_json_in_test_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    try:
        configure_logging()

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        assert root_logger.level == logging.DEBUG
        assert len(root_logger.handlers) == 1
        assert root_logger.handlers[0].stream is sys.stdout
    finally:
        LoggingInstrumentor().uninstrument()
        structlog.reset_defaults()
        root_logger.handlers = original_handlers
        root_logger.setLevel(original_level)
