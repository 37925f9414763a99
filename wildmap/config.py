# ABOUTME: Runtime settings for the map explorer, read from the environment and .env.
# ABOUTME: Covers the data directory, the geocoding contact, and outbound HTTP options.

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_USER_AGENT = "wildmap/0.1 (map explorer)"


class Settings(BaseModel):
    """Explorer configuration."""

    data_dir: Path = Path("data")
    nominatim_email: str = ""
    http_timeout: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT


def load_settings() -> Settings:
    """Build Settings from WILDMAP_* and NOMINATIM_EMAIL environment variables."""
    settings = Settings(
        data_dir=Path(os.environ.get("WILDMAP_DATA_DIR", "data")),
        nominatim_email=os.environ.get("NOMINATIM_EMAIL", ""),
        http_timeout=float(os.environ.get("WILDMAP_HTTP_TIMEOUT", "10")),
        user_agent=os.environ.get("WILDMAP_USER_AGENT", DEFAULT_USER_AGENT),
    )
    if not settings.nominatim_email:
        logger.warning("NOMINATIM_EMAIL is not set; place search requests may be rejected")
    return settings
