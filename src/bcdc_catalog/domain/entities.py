"""Catalog entities produced by a sync run.

Entities are plain mutable dataclasses while the aggregator builds them and are
serialised with :meth:`CatalogEntity.to_dict` once a run hands them to a sink.
The dictionaries follow the ``backstage.io/v1alpha1`` descriptor format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Final

from bcdc_catalog.domain.enums import EntityKind
from bcdc_catalog.domain.naming import entity_ref, user_ref

API_VERSION: Final[str] = "backstage.io/v1alpha1"
MANAGED_BY_LOCATION: Final[str] = "backstage.io/managed-by-location"
MANAGED_BY_ORIGIN_LOCATION: Final[str] = "backstage.io/managed-by-origin-location"
DEFAULT_LIFECYCLE: Final[str] = "production"
GOVERNMENT_TYPE: Final[str] = "government"

type EntityDict = dict[str, object]


def managed_by_annotations(location: str) -> dict[str, str]:
    """Provenance annotations pointing at the query endpoint that produced an entity."""

    target = f"url:{location}"
    return {MANAGED_BY_LOCATION: target, MANAGED_BY_ORIGIN_LOCATION: target}


@dataclass(slots=True, frozen=True)
class EntityLink:
    url: str
    title: str
    icon: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "title": self.title, "icon": self.icon, "type": self.type}


@dataclass(slots=True)
class EntityMetadata:
    name: str
    title: str | None = None
    description: str | None = None
    annotations: dict[str, str] = field(default_factory=dict[str, str])
    links: list[EntityLink] = field(default_factory=list[EntityLink])
    tags: list[str] = field(default_factory=list[str])

    def to_dict(self) -> EntityDict:
        data: EntityDict = {"name": self.name}
        if self.title is not None:
            data["title"] = self.title
        if self.description is not None:
            data["description"] = self.description
        data["annotations"] = dict(self.annotations)
        if self.links:
            data["links"] = [link.to_dict() for link in self.links]
        if self.tags:
            data["tags"] = list(self.tags)
        return data


@dataclass(slots=True, kw_only=True)
class CatalogEntity(ABC):
    kind: ClassVar[EntityKind]

    metadata: EntityMetadata

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def ref(self) -> str:
        return entity_ref(self.kind, self.metadata.name.lower())

    @abstractmethod
    def spec(self) -> EntityDict: ...

    def to_dict(self) -> EntityDict:
        return {
            "apiVersion": API_VERSION,
            "kind": self.kind.value,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec(),
        }


@dataclass(slots=True, kw_only=True)
class GroupEntity(CatalogEntity):
    kind: ClassVar[EntityKind] = EntityKind.GROUP

    display_name: str
    parent: str | None = None
    type: str = GOVERNMENT_TYPE

    def spec(self) -> EntityDict:
        data: EntityDict = {"type": self.type, "profile": {"displayName": self.display_name}}
        if self.parent is not None:
            data["parent"] = self.parent
        data["children"] = []
        data["members"] = []
        return data


@dataclass(slots=True, kw_only=True)
class UserEntity(CatalogEntity):
    kind: ClassVar[EntityKind] = EntityKind.USER

    email: str
    display_name: str | None = None
    member_of: list[str] = field(default_factory=list[str])

    @property
    def ref(self) -> str:
        return user_ref(self.email)

    def join(self, group: str) -> None:
        if group not in self.member_of:
            self.member_of.append(group)

    def spec(self) -> EntityDict:
        profile: dict[str, str] = {"email": self.email}
        if self.display_name is not None:
            profile["displayName"] = self.display_name
        return {"profile": profile, "memberOf": list(self.member_of)}


@dataclass(slots=True, kw_only=True)
class SystemEntity(CatalogEntity):
    kind: ClassVar[EntityKind] = EntityKind.SYSTEM

    owner: str
    type: str = GOVERNMENT_TYPE

    def spec(self) -> EntityDict:
        return {"owner": self.owner, "type": self.type}


@dataclass(slots=True, kw_only=True)
class ComponentEntity(CatalogEntity):
    kind: ClassVar[EntityKind] = EntityKind.COMPONENT

    type: str
    owner: str
    system: str
    lifecycle: str = DEFAULT_LIFECYCLE
    provides_apis: list[str] = field(default_factory=list[str])

    def spec(self) -> EntityDict:
        return {
            "type": self.type,
            "lifecycle": self.lifecycle,
            "owner": self.owner,
            "system": self.system,
            "providesApis": list(self.provides_apis),
        }


@dataclass(slots=True, kw_only=True)
class ApiEntity(CatalogEntity):
    kind: ClassVar[EntityKind] = EntityKind.API

    type: str
    owner: str
    system: str
    definition: str
    lifecycle: str = DEFAULT_LIFECYCLE

    def spec(self) -> EntityDict:
        return {
            "type": self.type,
            "lifecycle": self.lifecycle,
            "owner": self.owner,
            "definition": self.definition,
            "system": self.system,
        }
