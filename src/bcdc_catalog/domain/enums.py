"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    SYSTEM = "System"
    GROUP = "Group"
    USER = "User"
    COMPONENT = "Component"
    API = "API"


class LinkIcon(StrEnum):
    EMAIL = "email"
    EXTERNAL_LINK = "externalLink"
    CATALOG = "catalog"
    API = "api"
