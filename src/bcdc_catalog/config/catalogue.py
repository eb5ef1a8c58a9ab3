"""BC Data Catalogue configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_float, env_list, optional_env_var, require_env_var
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

CATALOGUE_SEARCH_URL: Final[str] = "https://catalogue.data.gov.bc.ca/api/3/action/package_search"
CATALOGUE_TIMEOUT_SECONDS: Final[float] = 30.0
DEFAULT_SYNC_FREQUENCY_SECONDS: Final[float] = 60.0
DEFAULT_SYNC_TIMEOUT_SECONDS: Final[float] = 45.0
DEV_ENVIRONMENT: Final[str] = "dev"
PROD_ENVIRONMENT: Final[str] = "prod"

_CACHE_MODES: Final[frozenset[str]] = frozenset({"memory", "off"})


def _is_definition_payload(payload: object) -> bool:
    # search envelopes carry "success"; only API definitions are worth caching
    return not (isinstance(payload, dict) and "success" in payload)


def _resilience_config(cache: CacheConfig | None) -> ResilienceConfig:
    return ResilienceConfig(
        name="bc-data-catalogue",
        timeout_seconds=CATALOGUE_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        cache=cache,
        default_headers={"Accept": "application/json"},
    )


def _default_resilience_config() -> ResilienceConfig:
    return _resilience_config(CacheConfig(backend="memory", should_cache=_is_definition_payload))


@dataclass(frozen=True, slots=True)
class CatalogueConfig:
    """Holds the settings one catalogue provider instance runs with."""

    environment: str
    allowed_hosts: tuple[str, ...] = ()
    search_url: str = CATALOGUE_SEARCH_URL
    resilience: ResilienceConfig = field(default_factory=_default_resilience_config)

    def __post_init__(self) -> None:
        lowered = tuple(host.lower() for host in self.allowed_hosts)
        object.__setattr__(self, "allowed_hosts", lowered)


@dataclass(frozen=True, slots=True)
class ScheduleConfig:
    frequency_seconds: float = DEFAULT_SYNC_FREQUENCY_SECONDS
    timeout_seconds: float = DEFAULT_SYNC_TIMEOUT_SECONDS


def resolve_environment(backend_base_url: str) -> str:
    return DEV_ENVIRONMENT if "dev" in backend_base_url else PROD_ENVIRONMENT


def _cache_config_from_environment() -> CacheConfig | None:
    mode = (optional_env_var("BCDC_HTTP_CACHE") or "memory").lower()
    if mode not in _CACHE_MODES:
        options = ", ".join(sorted(_CACHE_MODES))
        raise ConfigurationError(
            f"BCDC_HTTP_CACHE must be one of {options}, got {mode!r}", names=["BCDC_HTTP_CACHE"]
        )
    if mode == "off":
        return None
    return CacheConfig(backend="memory", should_cache=_is_definition_payload)


def get_catalogue_config(*, environment: str | None = None) -> CatalogueConfig:
    resolved = environment or optional_env_var("BCDC_ENVIRONMENT")
    if resolved is None:
        resolved = resolve_environment(require_env_var("BCDC_BACKEND_BASE_URL"))

    return CatalogueConfig(
        environment=resolved,
        allowed_hosts=env_list("BCDC_ALLOWED_HOSTS"),
        search_url=optional_env_var("BCDC_CATALOGUE_SEARCH_URL") or CATALOGUE_SEARCH_URL,
        resilience=_resilience_config(_cache_config_from_environment()),
    )


def get_schedule_config() -> ScheduleConfig:
    return ScheduleConfig(
        frequency_seconds=env_float("BCDC_SYNC_FREQUENCY_SECONDS", DEFAULT_SYNC_FREQUENCY_SECONDS),
        timeout_seconds=env_float("BCDC_SYNC_TIMEOUT_SECONDS", DEFAULT_SYNC_TIMEOUT_SECONDS),
    )
