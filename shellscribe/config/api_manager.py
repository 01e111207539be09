"""
API credential lookup for ShellScribe.

This module resolves the API key from the command line, the environment
or the settings file. Keys are never stored by ShellScribe itself.
"""

import logging
import os
from typing import Optional

from shellscribe.config.settings import settings

# Constants
ENV_VAR_NAME = "OPENAI_API_KEY"

logger = logging.getLogger(__name__)


def get_api_key(explicit: Optional[str] = None) -> Optional[str]:
    """
    Resolve the API key.

    Args:
        explicit (Optional[str]): Key passed on the command line; wins if set.

    Returns:
        str or None: The API key if found, None otherwise.
    """
    if explicit:
        return explicit

    api_key = os.environ.get(ENV_VAR_NAME)
    if api_key:
        logger.debug(f"Using API key from environment variable {ENV_VAR_NAME}")
        return api_key

    return settings.get("api", "api_key") or None


def is_api_key_valid(api_key: str) -> bool:
    """
    Validate the format of an API key.

    Compatible endpoints issue keys in many formats, so only obviously
    broken values are rejected.

    Args:
        api_key (str): The API key to validate.

    Returns:
        bool: True if the key format is valid, False otherwise.
    """
    if not api_key or not isinstance(api_key, str):
        return False

    # Leading/trailing whitespace usually means a copy-paste accident
    return api_key == api_key.strip() and " " not in api_key
