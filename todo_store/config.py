"""Settings for todo-store, loaded from environment variables.

- TODO_PRINCIPAL: identity used as the caller for "mine" queries
- TODO_LOG_LEVEL: console log level name (DEBUG, INFO, WARNING, ...)
"""

import logging
import os
from dataclasses import dataclass

DEFAULT_PRINCIPAL = "anonymous"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    principal: str = DEFAULT_PRINCIPAL
    log_level: str = DEFAULT_LOG_LEVEL


def parse_log_level(name: str, default: str = DEFAULT_LOG_LEVEL) -> str:
    """Normalize a log level name, falling back to default for unknown names."""
    candidate = name.strip().upper()
    if isinstance(logging.getLevelName(candidate), int):
        return candidate
    return default


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    principal = os.environ.get("TODO_PRINCIPAL", "").strip() or DEFAULT_PRINCIPAL
    log_level = parse_log_level(os.environ.get("TODO_LOG_LEVEL", DEFAULT_LOG_LEVEL))
    return Settings(principal=principal, log_level=log_level)
