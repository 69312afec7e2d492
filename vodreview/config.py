"""Configuration and environment handling."""

import logging
import os
import sys
from functools import lru_cache
from typing import Optional

from .models import Identity

logger = logging.getLogger("vodreview.config")

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_TIMEOUT = 10.0

# Playback policy
MATCH_WINDOW_SECONDS = 5
HIGHLIGHT_EXPIRY_SECONDS = 3.0
SAMPLE_INTERVAL_SECONDS = 1.0
SCROLL_GUARD_SECONDS = 0.5

# Mention composer
SUGGESTION_LIMIT = 8

SETTINGS = {
    "VODREVIEW_API_URL": "Bot API base URL",
    "VODREVIEW_TOKEN": "Bearer token for write requests",
    "VODREVIEW_USER": "Username of the current operator",
    "VODREVIEW_ROLE": "Role of the current operator (admin may delete any comment)",
}


def load_env() -> None:
    """Load variables from a .env file into the environment."""
    from dotenv import load_dotenv

    load_dotenv()


@lru_cache
def get_api_url() -> str:
    """Get the bot API base URL.

    Set VODREVIEW_API_URL to override the local default.
    """
    load_env()
    return os.environ.get("VODREVIEW_API_URL", DEFAULT_API_URL).rstrip("/")


def get_timeout() -> float:
    """Per-request timeout in seconds (VODREVIEW_TIMEOUT)."""
    raw = os.environ.get("VODREVIEW_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid VODREVIEW_TIMEOUT=%r", raw)
        return DEFAULT_TIMEOUT


def load_token(required: bool = False) -> Optional[str]:
    """Load the API bearer token from the environment or .env file.

    Exits with status 1 when ``required`` and no token is configured.
    """
    load_env()

    token = os.environ.get("VODREVIEW_TOKEN")
    if token:
        return token

    if required:
        logger.error("VODREVIEW_TOKEN not found in environment or .env file")
        sys.exit(1)
    return None


def load_identity() -> Optional[Identity]:
    """Identity of the current operator, or None when no user is configured."""
    load_env()

    username = os.environ.get("VODREVIEW_USER")
    if not username:
        return None
    return Identity(username=username, role=os.environ.get("VODREVIEW_ROLE", "user"))


def check_configuration() -> dict:
    """Report which settings are present."""
    load_env()
    return {name: bool(os.environ.get(name)) for name in SETTINGS}
