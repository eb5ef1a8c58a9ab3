"""Identifier helpers shared by every catalog entity kind.

Entity names end up in URLs, file names and DNS labels, so every generated
fragment goes through :func:`to_safe_name`. References follow the
``<kind>:default/<name>`` convention of the target catalog.
"""

from __future__ import annotations

import re
from typing import Final

from bcdc_catalog.domain.enums import EntityKind

MAX_NAME_LENGTH: Final[int] = 63
DEFAULT_NAMESPACE: Final[str] = "default"

_SEPARATORS: Final[str] = "-_."
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_YEAR = re.compile(r"\b(?:19|20)\d{2}\b")
_VERSION = re.compile(r"\b(?:v|version)[\s_-]?(\d+)\b", re.IGNORECASE)
_NUMBER = re.compile(r"\b\d{2,}\b")
_EMAIL_HOST = re.compile(r"@([\w.-]+)")

SUFFIX_STOP_WORDS: Final[frozenset[str]] = frozenset(
    {"service", "request", "getcapabilities", "wms", "kml", "arcgis", "rest", "online"}
)
_SUFFIX_FALLBACK_LENGTH: Final[int] = 10


def to_safe_name(text: str) -> str:
    """Return a lowercase, hyphen-delimited fragment of at most 63 characters."""

    name = _NON_ALNUM.sub("-", text.lower()).strip(_SEPARATORS)
    return name[:MAX_NAME_LENGTH].rstrip(_SEPARATORS)


def truncate_name(name: str, length: int) -> str:
    """Cut ``name`` to ``length`` characters without leaving a trailing separator."""

    if len(name) <= length:
        return name
    return name[: max(length, 0)].rstrip(_SEPARATORS)


def extract_distinguishing_suffix(resource_name: str) -> str:
    """Pick a short, human-recognisable token that tells similar resources apart.

    Years win over versions, versions over other numbers; names without any of
    those fall back to their last meaningful words. Uniqueness is not guaranteed.
    """

    if match := _YEAR.search(resource_name):
        return match.group(0)
    if match := _VERSION.search(resource_name):
        return f"v{match.group(1)}"
    if match := _NUMBER.search(resource_name):
        return match.group(0)

    safe_name = to_safe_name(resource_name)
    words = [word for word in safe_name.split("-") if word and word not in SUFFIX_STOP_WORDS]
    if len(words) >= 2:
        return "-".join(words[-2:])
    if words:
        return words[0]
    segments = [segment for segment in safe_name.split("-") if segment]
    return segments[-1][:_SUFFIX_FALLBACK_LENGTH] if segments else ""


def email_hostname(email: str) -> str | None:
    match = _EMAIL_HOST.search(email.strip().lower())
    return match.group(1) if match else None


def entity_ref(kind: EntityKind, name: str) -> str:
    return f"{kind.value.lower()}:{DEFAULT_NAMESPACE}/{name}"


def system_ref(organization_name: str) -> str:
    return entity_ref(EntityKind.SYSTEM, to_safe_name(organization_name))


def group_ref(hostname: str) -> str:
    return entity_ref(EntityKind.GROUP, to_safe_name(hostname))


def user_ref(email: str) -> str:
    return entity_ref(EntityKind.USER, email.lower())


def component_ref(name: str) -> str:
    return entity_ref(EntityKind.COMPONENT, name.lower())


def api_ref(name: str) -> str:
    return entity_ref(EntityKind.API, name.lower())
