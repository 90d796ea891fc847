# lockwatch/config.py
from dotenv import load_dotenv, find_dotenv
import os
import logging

from lockwatch.errors import ConfigurationError

# Load nearest .env from project tree, don't override existing process env
load_dotenv(find_dotenv(usecwd=True), override=False)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3001"
DEFAULT_WS_URL = "ws://localhost:3001/ws"


def _env_str(name: str, legacy: str = "", default: str = "") -> str:
    """Read a string setting, falling back to a deprecated dashboard variable."""
    value = (os.getenv(name) or "").strip()
    if value:
        return value
    if legacy and os.getenv(legacy):
        logger.warning(f"DEPRECATED: {legacy} is deprecated, use {name} instead")
        return os.getenv(legacy).strip()
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number", {"value": raw})
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive", {"value": raw})
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer", {"value": raw})
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive", {"value": raw})
    return value


class Settings:
    """Runtime configuration for the sync engine, read from the environment."""

    def __init__(self):
        # Transport endpoints
        self.API_URL = _env_str("LOCKWATCH_API_URL", "NEXT_PUBLIC_API_URL", DEFAULT_API_URL).rstrip("/")
        self.WS_URL = _env_str("LOCKWATCH_WS_URL", "NEXT_PUBLIC_WS_URL", DEFAULT_WS_URL)

        # Channel timing
        self.POLL_INTERVAL_S = _env_float("LOCKWATCH_POLL_INTERVAL_S", 5.0)
        self.RECONNECT_DELAY_S = _env_float("LOCKWATCH_RECONNECT_DELAY_S", 5.0)
        self.HTTP_TIMEOUT_S = _env_float("LOCKWATCH_HTTP_TIMEOUT_S", 10.0)

        # Poll query parameters
        self.HOT_ACCOUNTS_LIMIT = _env_int("LOCKWATCH_HOT_ACCOUNTS_LIMIT", 20)
        self.WINDOW_MINUTES = _env_int("LOCKWATCH_WINDOW_MINUTES", 5)

        # Logging
        self.LOG_LEVEL = _env_str("LOCKWATCH_LOG_LEVEL", default="INFO").upper()
        self.LOG_FILE = _env_str("LOCKWATCH_LOG_FILE")


settings = Settings()
