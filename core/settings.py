from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file automatically
load_dotenv()


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    # NVP credentials
    PAYPAL_USER: str = ""
    PAYPAL_PWD: str = ""
    PAYPAL_SIGNATURE: str = ""
    PAYPAL_CERTIFICATE: str = ""
    PAYPAL_VERSION: str = "124.0"

    # Endpoint selection; empty URLs fall back to the live/sandbox defaults
    PAYPAL_LIVE: bool = True
    PAYPAL_URL: str = ""
    PAYPAL_IPN_URL: str = ""

    # HTTP transport
    HTTP_USER_AGENT: str = "PayPalNVP Python Client"
    # Read timeout between response chunks, not a whole-request deadline
    HTTP_TIMEOUT: float = 30
    HTTP_CONNECT_TIMEOUT: float = 10
    HTTP_FOLLOW_REDIRECTS: bool = True
    HTTP_MAX_REDIRECTS: int = 10
    HTTP_CAPTURE_HEADERS: bool = True

    # App settings
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )

    def nvp_config(self) -> dict[str, str]:
        """Map settings onto the NVP client configuration keys."""
        return {
            "USER": self.PAYPAL_USER,
            "PWD": self.PAYPAL_PWD,
            "SIGNATURE": self.PAYPAL_SIGNATURE,
            "CERTIFICATE": self.PAYPAL_CERTIFICATE,
            "VERSION": self.PAYPAL_VERSION,
            "URL": self.PAYPAL_URL,
        }

    def ipn_config(self) -> dict[str, str]:
        return {"URL": self.PAYPAL_IPN_URL}
