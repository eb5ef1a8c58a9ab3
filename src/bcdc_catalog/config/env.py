"""Environment variable loaders for configuration."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the given environment variables or raise if any are missing/blank."""

    missing: list[str] = []
    values: dict[str, str] = {}
    for name in names:
        value = os.getenv(name)
        if value is None or not value.strip():
            missing.append(name)
            continue
        values[name] = value

    if missing:
        missing_list = ", ".join(sorted(missing))
        raise MissingConfigurationError(
            f"Missing configuration for: {missing_list}", names=sorted(missing)
        )

    return values


def require_env_var(name: str) -> str:
    """Return a required environment variable by name."""

    return require_env_vars([name])[name]


def optional_env_var(name: str) -> str | None:
    """Return a stripped environment variable, treating blank values as unset."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def env_float(name: str, default: float) -> float:
    value = optional_env_var(name)
    if value is None:
        return default
    try:
        result = float(value)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} must be a number, got {value!r}", names=[name]
        ) from exc
    if result <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}", names=[name])
    return result


def env_list(name: str) -> tuple[str, ...]:
    """Split a comma-separated variable into its non-blank entries."""

    value = optional_env_var(name)
    if value is None:
        return ()
    return tuple(entry.strip() for entry in value.split(",") if entry.strip())
