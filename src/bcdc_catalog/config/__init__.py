"""Application configuration helpers."""

from __future__ import annotations

from .catalogue import (
    CATALOGUE_SEARCH_URL,
    CatalogueConfig,
    ScheduleConfig,
    get_catalogue_config,
    get_schedule_config,
    resolve_environment,
)
from .env import env_float, env_list, optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig
from .logging import configure_logging
from .storage import StorageConfig, get_storage_config, resolve_database_uri

__all__ = [
    "CATALOGUE_SEARCH_URL",
    "CacheConfig",
    "CatalogueConfig",
    "ConfigurationError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "ScheduleConfig",
    "StorageConfig",
    "configure_logging",
    "env_float",
    "env_list",
    "get_catalogue_config",
    "get_schedule_config",
    "get_storage_config",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
    "resolve_database_uri",
    "resolve_environment",
]
