"""
Configuration management for imgedit.

This module handles the API key, model selection, and request settings.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from imgedit.logging_config import get_logger
from imgedit.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

# Default configuration constants
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_EDIT_MODEL = "gemini-2.5-flash-image"
DEFAULT_REQUEST_TIMEOUT = 120

# Checked in order; the first non-empty value wins
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY")


@dataclass
class Config:
    """Configuration for imgedit."""

    # API Configuration (api_key excluded from repr to avoid leaking secrets)
    api_key: str = field(default="", repr=False)
    base_url: str = DEFAULT_GEMINI_BASE_URL

    # Model Configuration
    edit_model: str = DEFAULT_EDIT_MODEL

    # Timeout Configuration (seconds)
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT

    # Debug: log raw API payload/response with image data truncated
    debug_api: bool = False

    _validated: bool = field(default=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            GEMINI_API_KEY: API key (GOOGLE_API_KEY and API_KEY are accepted as fallbacks)
            IMGEDIT_MODEL: Optional edit model id
            IMGEDIT_BASE_URL: Optional API base URL
            IMGEDIT_TIMEOUT: Optional request timeout in seconds
            IMGEDIT_DEBUG_API: Optional; 1/true/yes logs truncated request/response bodies

        A missing API key is not an error here: it is logged, and every
        edit request made with this config fails with TransportError.

        Returns:
            Config instance populated from environment

        Raises:
            ConfigurationError: If IMGEDIT_TIMEOUT is not an integer
        """
        api_key = ""
        for name in API_KEY_ENV_VARS:
            api_key = os.getenv(name, "").strip()
            if api_key:
                break
        if not api_key:
            logger.warning(
                "No API key found (set GEMINI_API_KEY). Edit requests will fail until one is set."
            )

        raw_timeout = os.getenv("IMGEDIT_TIMEOUT", "").strip()
        try:
            timeout = int(raw_timeout) if raw_timeout else DEFAULT_REQUEST_TIMEOUT
        except ValueError as e:
            raise ConfigurationError(
                f"IMGEDIT_TIMEOUT must be an integer number of seconds, got {raw_timeout!r}."
            ) from e

        debug_api = os.getenv("IMGEDIT_DEBUG_API", "").strip().lower() in ("1", "true", "yes")

        return cls(
            api_key=api_key,
            base_url=os.getenv("IMGEDIT_BASE_URL") or DEFAULT_GEMINI_BASE_URL,
            edit_model=os.getenv("IMGEDIT_MODEL") or DEFAULT_EDIT_MODEL,
            request_timeout=timeout,
            debug_api=debug_api,
        )

    def validate(self) -> None:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config")

        if not self.edit_model:
            raise ConfigurationError("Edit model cannot be empty.")
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"request_timeout must be positive, got {self.request_timeout}."
            )
        if not self.api_key:
            raise ConfigurationError(
                "An API key is required. Set GEMINI_API_KEY or provide it explicitly."
            )

        self._validated = True

    def is_valid(self) -> bool:
        """
        Check if configuration has been validated.

        Returns:
            True if validate() has been called successfully
        """
        return self._validated

    def set_api_key(self, api_key: str) -> None:
        """
        Set the API key.

        Args:
            api_key: The API key to use

        Raises:
            ConfigurationError: If API key is empty
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError("API key cannot be empty")

        self.api_key = api_key.strip()
        self._validated = False  # Need to revalidate

    def set_edit_model(self, model: str) -> None:
        """
        Set the edit model.

        Args:
            model: Model id, e.g. 'gemini-2.5-flash-image'

        Raises:
            ConfigurationError: If model is empty
        """
        if not model:
            raise ConfigurationError("Model ID cannot be empty")

        self.edit_model = model


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        The global Config instance
    """
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """
    Set the global configuration instance.

    Args:
        config: The Config instance to use globally
    """
    global _global_config
    _global_config = config
