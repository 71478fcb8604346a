"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var
from .errors import ConfigurationError
from .logging import LOG_LEVEL_ENV_VAR, configure_logging, get_log_level
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "LOG_LEVEL_ENV_VAR",
    "ConfigurationError",
    "DatabaseConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_log_level",
    "get_storage_config",
    "optional_env_var",
]
