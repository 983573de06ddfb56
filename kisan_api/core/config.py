"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "us-central1"
DEFAULT_SERVICE_ACCOUNT_FILE = "service-account.json"

PROJECT_ID_VARS = ("GCLOUD_PROJECT", "PROJECT_ID")

# Key names reported by the health check; values are never exposed.
REPORTED_ENV_KEYS = (
    "MONGO_URI",
    "GCLOUD_PROJECT",
    "PROJECT_ID",
    "GCLOUD_LOCATION",
    "SERVICE_ACCOUNT_JSON",
    "GOOGLE_MAPS_API_KEY",
    "PORT",
    "APP_ENV",
)


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    mongo_uri: str
    google_maps_api_key: str = ""
    service_account_json: Optional[str] = None
    service_account_file: str = DEFAULT_SERVICE_ACCOUNT_FILE
    gcloud_project: Optional[str] = None
    gcloud_location: str = DEFAULT_LOCATION
    gemini_model: str = "gemini-2.0-flash"
    port: int = 5000
    environment: str = "development"
    expose_errors: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.service_account_json) or os.path.isfile(self.service_account_file)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    mongo_uri = os.getenv("MONGO_URI", "")
    google_maps_api_key = os.getenv("GOOGLE_MAPS_API_KEY", "")
    service_account_json = os.getenv("SERVICE_ACCOUNT_JSON") or None
    service_account_file = os.getenv("SERVICE_ACCOUNT_FILE") or DEFAULT_SERVICE_ACCOUNT_FILE
    gcloud_project = os.getenv("GCLOUD_PROJECT") or os.getenv("PROJECT_ID") or None
    gcloud_location = os.getenv("GCLOUD_LOCATION") or DEFAULT_LOCATION
    gemini_model = os.getenv("GEMINI_MODEL") or "gemini-2.0-flash"
    port = int(os.getenv("PORT", "5000"))
    environment = os.getenv("APP_ENV") or "development"
    # Error details are shown only when APP_ENV is set to development explicitly.
    expose_errors = os.getenv("APP_ENV") == "development"

    if not google_maps_api_key:
        logger.warning("GOOGLE_MAPS_API_KEY is not configured; Google Places requests will fail.")

    return Settings(
        mongo_uri=mongo_uri,
        google_maps_api_key=google_maps_api_key,
        service_account_json=service_account_json,
        service_account_file=service_account_file,
        gcloud_project=gcloud_project,
        gcloud_location=gcloud_location,
        gemini_model=gemini_model,
        port=port,
        environment=environment,
        expose_errors=expose_errors,
    )


def validate_config() -> None:
    """Fail fast when any required setting is absent.

    Every missing setting is collected so a single error names all of them.
    A missing ``GCLOUD_LOCATION`` only produces a warning because a default
    region is substituted.
    """
    settings = get_settings()
    missing: List[str] = []

    if not settings.mongo_uri:
        missing.append("MONGO_URI")
    if not settings.has_credentials:
        missing.append(f"SERVICE_ACCOUNT_JSON or {settings.service_account_file}")
    if not settings.gcloud_project:
        missing.append(" or ".join(PROJECT_ID_VARS))

    if not os.getenv("GCLOUD_LOCATION"):
        logger.warning("GCLOUD_LOCATION not set. Defaulting to %r.", DEFAULT_LOCATION)

    if missing:
        message = "; ".join(f"Missing environment variable: {name}" for name in missing)
        logger.error("Configuration validation failed: %s", message)
        raise ConfigError(message)

    logger.info("Configuration validated successfully.")


def get_defined_env_keys() -> Dict[str, str]:
    return {key: "defined" if os.getenv(key) else "missing" for key in REPORTED_ENV_KEYS}


def is_development() -> bool:
    return get_settings().expose_errors
