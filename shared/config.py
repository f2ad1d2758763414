"""
Environment configuration for the report handlers.
"""

import os
from typing import Iterable, Mapping, Optional

from pydantic import BaseModel

from shared.errors import ConfigurationError

INDEX_DB_NAME = "unotifi_com_index"

# environment variable -> Settings field
ENV_FIELDS = {
    "UNOTIFI_COM_INDEX_DB_HOST": "index_db_host",
    "UNOTIFI_COM_INDEX_DB_USER": "index_db_user",
    "UNOTIFI_COM_INDEX_DB_PASS": "index_db_password",
    "UNOTIFI_API_TOKEN": "api_token",
    "UNOTIFI_API_CLIENT_BASE_URL": "api_base_url",
    "UNOTIFI_REPORTS_BUCKET": "reports_bucket",
    "SENDGRID_API_KEY": "sendgrid_api_key",
    "SENDGRID_FROM_EMAIL": "sendgrid_from_email",
    "AWS_REGION": "aws_region",
    "DB_CONNECT_TIMEOUT": "db_connect_timeout",
    "DEALER_FAILURE_POLICY": "dealer_failure_policy",
    "MAX_DEALER_WORKERS": "max_dealer_workers",
    "LOG_LEVEL": "log_level",
}

INDEX_DB_ENV = (
    "UNOTIFI_COM_INDEX_DB_HOST",
    "UNOTIFI_COM_INDEX_DB_USER",
    "UNOTIFI_COM_INDEX_DB_PASS",
)
DEALER_API_ENV = ("UNOTIFI_API_TOKEN", "UNOTIFI_API_CLIENT_BASE_URL")
STORAGE_ENV = ("UNOTIFI_REPORTS_BUCKET",)
EMAIL_ENV = ("SENDGRID_API_KEY",)

FAILURE_POLICIES = ("isolate", "abort")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseModel):
    """
    Typed view of the environment.
    Attributes left as None were not set; callers declare what they need
    through load_settings(required=...).
    """

    index_db_host: Optional[str] = None
    index_db_user: Optional[str] = None
    index_db_password: Optional[str] = None
    api_token: Optional[str] = None
    api_base_url: Optional[str] = None
    reports_bucket: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    sendgrid_from_email: str = "reports@unotifi.com"
    aws_region: str = "us-east-1"
    db_connect_timeout: int = 60
    dealer_failure_policy: str = "isolate"
    max_dealer_workers: int = 8
    log_level: str = "INFO"

    def index_db_info(self) -> dict:
        """Connection parameters for the index database."""
        return {
            "host": self.index_db_host,
            "user": self.index_db_user,
            "password": self.index_db_password,
            "database": INDEX_DB_NAME,
        }


def missing_env(names: Iterable[str], environ: Mapping[str, str]) -> list:
    return [name for name in names if not environ.get(name)]


def load_settings(required: Iterable[str] = (), environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Read the environment into a Settings object.
    Args:
        required: Environment variable names that must be set and non-empty.
        environ: Mapping to read from (defaults to os.environ).
    Returns:
        Settings: Parsed configuration.
    Raises:
        ConfigurationError: Naming every missing variable at once, or an invalid value.
    """
    environ = os.environ if environ is None else environ
    missing = missing_env(required, environ)
    if missing:
        raise ConfigurationError(f"Missing env var(s): {', '.join(missing)}")

    values = {
        field: environ[name]
        for name, field in ENV_FIELDS.items()
        if environ.get(name)
    }
    try:
        settings = Settings(**values)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    if settings.dealer_failure_policy not in FAILURE_POLICIES:
        raise ConfigurationError(
            f"DEALER_FAILURE_POLICY must be one of {', '.join(FAILURE_POLICIES)}"
        )
    settings.log_level = settings.log_level.upper()
    if settings.log_level not in LOG_LEVELS:
        raise ConfigurationError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
    return settings
