"""Environment variable validation and management."""

import os
import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)

class EnvironmentError(Exception):
    """Raised when required environment variables are missing or invalid."""
    pass

def validate_environment() -> None:
    """Validate the adaptive engine environment variables.

    Raises EnvironmentError if validation fails.
    """
    # The generative-text service is only needed when AI enrichment is on.
    required_vars: Dict[str, str] = {}
    if get_env_bool("ADAPTIVE_AI_ENABLED"):
        required_vars["GENERATIVE_TEXT_URL"] = "Endpoint of the generative text service"

    defaults = {
        "ADAPTIVE_STORAGE_PATH": os.getenv("ADAPTIVE_STORAGE_PATH") or "adaptive_learning.db",
        "GENERATIVE_TEXT_MODEL": os.getenv("GENERATIVE_TEXT_MODEL") or "gemini-pro",
    }

    for var, value in defaults.items():
        if not os.getenv(var):
            os.environ[var] = value
            logger.info("Environment variable %s not set; using default '%s'", var, value)

    optional_vars = {
        "GENERATIVE_TEXT_API_KEY": "Bearer token for the generative text service",
    }

    missing = []
    for var, description in required_vars.items():
        if not os.getenv(var):
            missing.append(f"{var} ({description})")

    if missing:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    url_vars = {"GENERATIVE_TEXT_URL"}
    for var in url_vars:
        value = os.getenv(var)
        if value and not (value.startswith("http://") or value.startswith("https://")):
            raise EnvironmentError(f"Invalid URL format for {var}: {value}")

    numeric_vars = {
        "GENERATIVE_TEXT_TIMEOUT",
        "GENERATIVE_TEXT_MAX_RETRIES",
        "GENERATIVE_TEXT_RETRY_BACKOFF",
    }
    for var in numeric_vars:
        value = os.getenv(var)
        if value is None:
            continue
        try:
            number = float(value)
        except ValueError:
            raise EnvironmentError(f"Invalid numeric value for {var}: {value}") from None
        if number < 0:
            raise EnvironmentError(f"{var} must not be negative: {value}")

    if get_env_bool("ADAPTIVE_AI_ENABLED"):
        for var, description in optional_vars.items():
            if not os.getenv(var):
                logger.warning("Optional environment variable not set: %s (%s)", var, description)

def get_env_bool(name: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on", "enabled"}


def get_env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric value for %s", name)
        return default


def get_env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer value for %s", name)
        return default


@dataclass
class EngineSettings:
    """Runtime configuration collected from the environment."""

    storage_path: str = "adaptive_learning.db"
    generative_text_url: Optional[str] = None
    generative_text_api_key: Optional[str] = None
    generative_text_model: str = "gemini-pro"
    generative_text_timeout: float = 10.0
    generative_text_max_retries: int = 1
    generative_text_retry_backoff: float = 0.5
    ai_enabled: bool = False

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            storage_path=os.getenv("ADAPTIVE_STORAGE_PATH") or "adaptive_learning.db",
            generative_text_url=os.getenv("GENERATIVE_TEXT_URL") or None,
            generative_text_api_key=os.getenv("GENERATIVE_TEXT_API_KEY") or None,
            generative_text_model=os.getenv("GENERATIVE_TEXT_MODEL") or "gemini-pro",
            generative_text_timeout=max(0.1, get_env_float("GENERATIVE_TEXT_TIMEOUT", 10.0)),
            generative_text_max_retries=max(0, get_env_int("GENERATIVE_TEXT_MAX_RETRIES", 1)),
            generative_text_retry_backoff=max(0.0, get_env_float("GENERATIVE_TEXT_RETRY_BACKOFF", 0.5)),
            ai_enabled=get_env_bool("ADAPTIVE_AI_ENABLED"),
        )

    def model_config(self) -> Dict[str, object]:
        """Client configuration mapping consumed by the generative text client."""
        return {
            "api_url": self.generative_text_url,
            "api_key": self.generative_text_api_key,
            "model_id": self.generative_text_model,
            "timeout": self.generative_text_timeout,
            "max_retries": self.generative_text_max_retries,
            "retry_backoff": self.generative_text_retry_backoff,
        }
