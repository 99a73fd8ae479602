"""
Environment-sourced configuration for the approval flow connector.

Every option can be set through an environment variable of the same name
(upper-cased) or through a local ``.env`` file. Settings are read once per
process and cached; tests call ``reset_settings()`` after patching the
environment.

Design decisions:
- Commerce platform URLs default to the public endpoints of ``CTP_REGION``
  but can be overridden individually
- The three workflow state keys are required: the handlers cannot do
  anything useful without them
- ``ENVIRONMENT=development`` only changes error-message verbosity
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


class Settings(BaseSettings):
    """Connector settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Commerce platform API client
    ctp_project_key: str
    ctp_client_id: str
    ctp_client_secret: str
    ctp_scope: str = ""
    ctp_region: str = "europe-west1.gcp"
    ctp_api_url: Optional[str] = None
    ctp_auth_url: Optional[str] = None

    # Workflow states the order is moved between
    order_need_approval_state_key: str
    order_approved_state_key: str
    order_rejected_state_key: str

    # Transactional email provider
    sendgrid_api_key: str
    sendgrid_from_email: str

    environment: Literal["development", "production"] = "production"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Push destination, only needed at deploy time
    connect_gcp_topic_name: str = ""
    connect_gcp_project_id: str = ""

    @property
    def api_url(self) -> str:
        return self.ctp_api_url or f"https://api.{self.ctp_region}.commercetools.com"

    @property
    def auth_url(self) -> str:
        return self.ctp_auth_url or f"https://auth.{self.ctp_region}.commercetools.com"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Load and cache the settings.

    Raises:
        ConfigurationError: If a required variable is missing or invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        names = sorted({str(err["loc"][0]).upper() for err in e.errors() if err["loc"]})
        raise ConfigurationError(
            f"Invalid environment variables: {', '.join(names)}"
        ) from e


def reset_settings() -> None:
    """Drop the cached settings (useful for testing)."""
    get_settings.cache_clear()
