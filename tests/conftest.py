"""Test configuration and fixtures."""

import os
from urllib.parse import parse_qsl, urlsplit

import pytest

from core.dependencies import clear_settings
from core.settings import Settings
from paypal_nvp.nvp_client import NVPClient
from paypal_nvp.transport import TransportResponse


class FakeTransport:
    """Stands in for HttpTransport; replays queued bodies or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.urls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def fetch(self, url):
        self.urls.append(url)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, TransportResponse):
            return item
        return TransportResponse(url=url, status_code=200, text=item)

    def execute(self, url):
        return self.fetch(url).text

    @property
    def last_endpoint(self):
        return self.urls[-1].split("?", 1)[0]

    @property
    def last_query(self):
        """Query of the last request as ordered (name, value) pairs."""
        return parse_qsl(urlsplit(self.urls[-1]).query, keep_blank_values=True)


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables before each test."""
    original_env = dict(os.environ)

    os.environ.update(
        {
            "ENVIRONMENT": "test",
            "PAYPAL_USER": "merchant_api1.example.com",
            "PAYPAL_PWD": "test_password",
            "PAYPAL_SIGNATURE": "test_signature",
            "PAYPAL_LIVE": "false",
        }
    )
    os.environ.pop("PAYPAL_CERTIFICATE", None)
    os.environ.pop("PAYPAL_URL", None)
    clear_settings()

    yield

    clear_settings()
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_settings():
    return Settings(
        PAYPAL_USER="merchant_api1.example.com",
        PAYPAL_PWD="test_password",
        PAYPAL_SIGNATURE="test_signature",
        PAYPAL_LIVE=False,
        ENVIRONMENT="test",
    )


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def nvp_client(transport):
    """Sandbox client with signature credentials and a fake transport."""
    return NVPClient(
        {
            "USER": "merchant_api1.example.com",
            "PWD": "test_password",
            "SIGNATURE": "test_signature",
        },
        live=False,
        transport=transport,
    )
