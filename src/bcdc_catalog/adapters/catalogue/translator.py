"""Translate validated catalogue packages into catalog entities.

One translator instance handles one run. It owns the five entity collections
and fills them in passes: organizations become systems, contacts become users
and hostname groups, and every package becomes a component providing the APIs
derived from its service-like resources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final
from urllib.parse import urlsplit

from bcdc_catalog.config.catalogue import CATALOGUE_SEARCH_URL
from bcdc_catalog.domain.entities import (
    ApiEntity,
    CatalogEntity,
    ComponentEntity,
    EntityLink,
    EntityMetadata,
    GroupEntity,
    SystemEntity,
    UserEntity,
    managed_by_annotations,
)
from bcdc_catalog.domain.enums import LinkIcon
from bcdc_catalog.domain.naming import (
    MAX_NAME_LENGTH,
    api_ref,
    email_hostname,
    extract_distinguishing_suffix,
    group_ref,
    system_ref,
    to_safe_name,
    truncate_name,
    user_ref,
)
from bcdc_catalog.domain.ports.fetching import FetchError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from bcdc_catalog.domain.ports.fetching import UrlReader

    from .schema import CataloguePackage, Organization, Resource

log = getLogger(__name__)

ROOT_GROUP_HOST: Final[str] = "gov.bc.ca"
ROOT_GROUP_DISPLAY_NAME: Final[str] = "Government of British Columbia"

WEBSERVICE_TYPE: Final[str] = "webservice"
GEOGRAPHIC_TYPE: Final[str] = "geographic"
KML_FORMAT: Final[str] = "kml"
ARCGIS_REST_FORMAT: Final[str] = "arcgis_rest"
OPENAPI_JSON_FORMAT: Final[str] = "openapi-json"
OPENAPI_API_TYPE: Final[str] = "openapi"
OPENAPI_PREFIX: Final[str] = "api"

NO_DESCRIPTION: Final[str] = "No description available"
UNKNOWN: Final[str] = "Unknown"
UNDEFINED: Final[str] = "Undefined"

ORGANIZATION_ANNOTATION: Final[str] = "bcdata.gov.bc.ca/organization-"
PACKAGE_ANNOTATION: Final[str] = "bcdata.gov.bc.ca/package-"
RESOURCE_ANNOTATION: Final[str] = "bcdata.gov.bc.ca/resource-"

SUFFIX_MAX_LENGTH: Final[int] = 31


def _annotation_value(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _prefixed(prefix: str, values: dict[str, object]) -> dict[str, str]:
    return {f"{prefix}{key}": _annotation_value(value) for key, value in values.items()}


def is_api_resource(resource: Resource) -> bool:
    if resource.bcdc_type == WEBSERVICE_TYPE and resource.format != KML_FORMAT:
        return True
    return resource.format in {ARCGIS_REST_FORMAT, OPENAPI_JSON_FORMAT}


def candidate_api_name(resource: Resource, component_name: str) -> str:
    """Natural API name before collision handling."""

    if resource.bcdc_type == WEBSERVICE_TYPE or resource.format == ARCGIS_REST_FORMAT:
        prefix = OPENAPI_PREFIX if resource.format == OPENAPI_JSON_FORMAT else resource.format
        return to_safe_name(f"{prefix}-{component_name}")
    return to_safe_name(resource.name)


def url_host(url: str) -> str:
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return ""
    host = (parts.hostname or "").lower()
    return f"{host}:{port}" if port is not None else host


class ApiRegistry:
    """Per-run map of API reference to entity, the sole authority on API name uniqueness."""

    def __init__(self) -> None:
        self._apis: dict[str, ApiEntity] = {}

    def __contains__(self, ref: object) -> bool:
        return ref in self._apis

    def __len__(self) -> int:
        return len(self._apis)

    def values(self) -> list[ApiEntity]:
        return list(self._apis.values())

    def resolve(self, candidate: str, resource: Resource) -> str:
        """Return ``candidate`` or the first free disambiguated variant of it.

        The variant appends the distinguishing suffix of the resource name and, while
        still taken, a counter. The base is cut so the result stays within 63 chars.
        """

        existing = self._apis.get(api_ref(candidate))
        if existing is None:
            return candidate

        suffix = truncate_name(extract_distinguishing_suffix(resource.name), SUFFIX_MAX_LENGTH)
        suffix_tail = f"-{suffix}"
        base = truncate_name(candidate, MAX_NAME_LENGTH - len(suffix_tail))
        name = to_safe_name(f"{base}{suffix_tail}")

        counter = 1
        while api_ref(name) in self._apis:
            counter_tail = f"-{counter}"
            base = truncate_name(candidate, MAX_NAME_LENGTH - len(suffix_tail) - len(counter_tail))
            name = to_safe_name(f"{base}{suffix_tail}{counter_tail}")
            counter += 1

        old = existing.metadata.annotations
        log.warning(
            'API name "%s" already taken; using "%s" for resource "%s". '
            'Existing API: format="%s", resource-id="%s", package-id="%s", url="%s". '
            'New API: format="%s", resource-id="%s", package-id="%s", url="%s".',
            candidate,
            name,
            resource.name,
            old.get(f"{RESOURCE_ANNOTATION}format"),
            old.get(f"{RESOURCE_ANNOTATION}id"),
            old.get(f"{RESOURCE_ANNOTATION}package_id"),
            old.get(f"{RESOURCE_ANNOTATION}url"),
            resource.format,
            resource.id,
            resource.package_id,
            resource.url,
        )
        return name

    def register(self, api: ApiEntity) -> None:
        ref = api.ref
        existing = self._apis.get(ref)
        if existing is not None:
            old = existing.metadata.annotations
            new = api.metadata.annotations
            log.warning(
                'Duplicate API name detected: "%s" (ID: %s). '
                'Existing API: format="%s", resource-id="%s", package-id="%s", url="%s". '
                'New API: format="%s", resource-id="%s", package-id="%s", url="%s". '
                "The new API will overwrite the existing one.",
                api.name,
                ref,
                old.get(f"{RESOURCE_ANNOTATION}format"),
                old.get(f"{RESOURCE_ANNOTATION}id"),
                old.get(f"{RESOURCE_ANNOTATION}package_id"),
                old.get(f"{RESOURCE_ANNOTATION}url"),
                new.get(f"{RESOURCE_ANNOTATION}format"),
                new.get(f"{RESOURCE_ANNOTATION}id"),
                new.get(f"{RESOURCE_ANNOTATION}package_id"),
                new.get(f"{RESOURCE_ANNOTATION}url"),
            )
        self._apis[ref] = api


@dataclass(slots=True)
class CatalogEntities:
    """Entity collections keyed by reference, in the order a sink receives them."""

    users: dict[str, UserEntity] = field(default_factory=dict[str, UserEntity])
    groups: dict[str, GroupEntity] = field(default_factory=dict[str, GroupEntity])
    systems: dict[str, SystemEntity] = field(default_factory=dict[str, SystemEntity])
    components: dict[str, ComponentEntity] = field(default_factory=dict[str, ComponentEntity])
    apis: dict[str, ApiEntity] = field(default_factory=dict[str, ApiEntity])

    def all_entities(self) -> list[CatalogEntity]:
        return [
            *self.users.values(),
            *self.groups.values(),
            *self.systems.values(),
            *self.components.values(),
            *self.apis.values(),
        ]

    def __len__(self) -> int:
        return (
            len(self.users)
            + len(self.groups)
            + len(self.systems)
            + len(self.components)
            + len(self.apis)
        )


class CatalogueTranslator:
    def __init__(
        self,
        *,
        reader: UrlReader,
        allowed_hosts: Iterable[str] = (),
        managed_by: str = CATALOGUE_SEARCH_URL,
    ) -> None:
        self._reader = reader
        self._allowed_hosts = frozenset(host.lower() for host in allowed_hosts)
        self._managed_by = managed_by
        self._root_group = group_ref(ROOT_GROUP_HOST)

    async def translate(self, packages: Sequence[CataloguePackage]) -> CatalogEntities:
        entities = CatalogEntities()
        root = self._group(ROOT_GROUP_HOST, ROOT_GROUP_DISPLAY_NAME, parent=None)
        entities.groups[root.ref] = root

        self._add_systems(entities, packages)
        self._add_users(entities, packages)

        registry = ApiRegistry()
        for package in packages:
            await self._add_component(entities, registry, package)
        entities.apis = {api.ref: api for api in registry.values()}

        log.info(
            "Translated %s packages: users=%s, groups=%s, systems=%s, components=%s, apis=%s",
            len(packages),
            len(entities.users),
            len(entities.groups),
            len(entities.systems),
            len(entities.components),
            len(entities.apis),
        )
        return entities

    def _add_systems(self, entities: CatalogEntities, packages: Sequence[CataloguePackage]) -> None:
        organizations: dict[str, Organization] = {}
        for package in packages:
            organizations.setdefault(package.organization.id, package.organization)
        log.info(f"Organizations {len(organizations)}")

        for organization in organizations.values():
            system = self._system(organization)
            existing = entities.systems.get(system.ref)
            if existing is not None:
                log.warning(
                    "Organizations %s and %s both map to %s; keeping the first",
                    existing.metadata.annotations[f"{ORGANIZATION_ANNOTATION}id"],
                    organization.id,
                    system.ref,
                )
                continue
            entities.systems[system.ref] = system

    def _system(self, organization: Organization) -> SystemEntity:
        annotations = managed_by_annotations(self._managed_by)
        annotations.update(
            {
                f"{ORGANIZATION_ANNOTATION}id": organization.id,
                f"{ORGANIZATION_ANNOTATION}type": organization.type,
                f"{ORGANIZATION_ANNOTATION}created": organization.created,
                f"{ORGANIZATION_ANNOTATION}approval-status": organization.approval_status,
                f"{ORGANIZATION_ANNOTATION}state": organization.state,
            }
        )
        return SystemEntity(
            metadata=EntityMetadata(
                name=to_safe_name(organization.name),
                title=organization.title,
                description=organization.description,
                annotations=annotations,
            ),
            owner=self._root_group,
        )

    def _add_users(self, entities: CatalogEntities, packages: Sequence[CataloguePackage]) -> None:
        for package in packages:
            for contact in package.contacts:
                email = contact.email.lower()
                ref = user_ref(email)
                user = entities.users.get(ref)
                if user is None:
                    user = UserEntity(
                        metadata=EntityMetadata(
                            name=to_safe_name(email),
                            annotations=managed_by_annotations(self._managed_by),
                        ),
                        email=email,
                    )
                    entities.users[ref] = user

                if not user.display_name and contact.name:
                    user.display_name = contact.name

                hostname = email_hostname(email)
                if hostname is None:
                    log.warning(f"Failed to extract hostname from email address {email}")
                    continue

                group_id = group_ref(hostname)
                if group_id not in entities.groups:
                    entities.groups[group_id] = self._group(
                        hostname, hostname, parent=self._root_group
                    )
                user.join(group_id)

    def _group(self, hostname: str, display_name: str, *, parent: str | None) -> GroupEntity:
        return GroupEntity(
            metadata=EntityMetadata(
                name=to_safe_name(hostname),
                annotations=managed_by_annotations(self._managed_by),
            ),
            display_name=display_name,
            parent=parent,
        )

    async def _add_component(
        self,
        entities: CatalogEntities,
        registry: ApiRegistry,
        package: CataloguePackage,
    ) -> None:
        component_name = to_safe_name(package.name)
        system = system_ref(package.organization.name)

        links = [
            EntityLink(
                url=f"mailto:{contact.email.lower()}",
                title=f"Contact: {contact.name}",
                icon=LinkIcon.EMAIL,
                type="contact",
            )
            for contact in package.contacts
        ]
        links.extend(
            EntityLink(
                url=more_info.url,
                title=more_info.description or more_info.url,
                icon=LinkIcon.EXTERNAL_LINK,
                type="more_info",
            )
            for more_info in package.more_info or ()
            if more_info.url
        )

        api_resources: list[Resource] = []
        for resource in package.resources or ():
            if is_api_resource(resource):
                api_resources.append(resource)
            elif resource.bcdc_type == GEOGRAPHIC_TYPE:
                continue
            elif resource.url:
                links.append(
                    EntityLink(
                        url=resource.url,
                        title=resource.name,
                        icon=LinkIcon.CATALOG,
                        type=resource.bcdc_type,
                    )
                )
            else:
                log.info(f"Missing URL {resource.bcdc_type} {resource.format} {package.name}")

        tags = [to_safe_name(tag.display_name) for tag in package.tags or ()]

        component = ComponentEntity(
            metadata=EntityMetadata(
                name=component_name,
                description=package.notes or NO_DESCRIPTION,
                annotations=self._package_annotations(package),
                links=links,
                tags=[tag for tag in tags if tag],
            ),
            type=package.type,
            owner=self._root_group,
            system=system,
        )
        entities.components[component.ref] = component

        for resource in api_resources:
            name = registry.resolve(candidate_api_name(resource, component_name), resource)
            api = await self._api(resource, name=name, system=system)
            registry.register(api)
            component.provides_apis.append(api.ref)

    async def _api(self, resource: Resource, *, name: str, system: str) -> ApiEntity:
        host = url_host(resource.url)
        if host not in self._allowed_hosts:
            log.warning(f'API definition host is NOT allowed: "{host}"')

        links: list[EntityLink] = []
        if resource.url:
            links.append(
                EntityLink(
                    url=resource.url,
                    title=resource.name,
                    icon=LinkIcon.API,
                    type=resource.bcdc_type,
                )
            )

        is_openapi = resource.format == OPENAPI_JSON_FORMAT
        definition = await self._fetch_definition(resource.url) if is_openapi else resource.url

        return ApiEntity(
            metadata=EntityMetadata(
                name=name,
                description=resource.description or NO_DESCRIPTION,
                annotations=self._resource_annotations(resource),
                links=links,
                tags=[to_safe_name(resource.format)],
            ),
            type=OPENAPI_API_TYPE if is_openapi else resource.bcdc_type,
            owner=self._root_group,
            system=system,
            definition=definition,
        )

    async def _fetch_definition(self, url: str) -> str:
        try:
            body = await self._reader.read_url(url)
        except FetchError as exc:
            log.warning(f"Failed to fetch OpenAPI definition from {url}: {exc}")
            return url
        return body.decode("utf-8", errors="replace")

    def _package_annotations(self, package: CataloguePackage) -> dict[str, str]:
        values: dict[str, object] = {
            "author": package.author or UNKNOWN,
            "author_email": package.author_email or UNKNOWN,
            "creator_user_id": package.creator_user_id,
            "download_audience": package.download_audience,
            "id": package.id,
            "isopen": package.isopen,
            "license_id": package.license_id,
            "license_title": package.license_title or UNKNOWN,
            "license_url": package.license_url,
            "maintainer": package.maintainer or UNKNOWN,
            "maintainer_email": package.maintainer_email or UNKNOWN,
            "metadata_created": package.metadata_created,
            "metadata_modified": package.metadata_modified,
            "metadata_visibility": package.metadata_visibility,
            "name": package.name,
            "notes": package.notes or UNKNOWN,
            "owner_org": package.owner_org,
            "private": package.private,
            "publish_state": package.publish_state,
            "record_create_date": package.record_create_date or UNKNOWN,
            "record_last_modified": package.record_last_modified,
            "record_publish_date": package.record_publish_date,
            "resource_status": package.resource_status,
            "security_class": package.security_class,
            "state": package.state,
            "title": package.title or UNKNOWN,
            "type": package.type,
            "url": package.url or UNKNOWN,
            "version": package.version or UNKNOWN,
            "view_audience": package.view_audience,
        }
        annotations = managed_by_annotations(self._managed_by)
        annotations.update(_prefixed(PACKAGE_ANNOTATION, values))
        return annotations

    def _resource_annotations(self, resource: Resource) -> dict[str, str]:
        values: dict[str, object] = {
            "bcdc_type": resource.bcdc_type,
            "cache_last_updated": resource.cache_last_updated or UNDEFINED,
            "cache_url": resource.cache_url or UNDEFINED,
            "created": resource.created,
            "datastore_active": resource.datastore_active,
            "description": resource.description or UNDEFINED,
            "format": resource.format,
            "hash": resource.hash,
            "id": resource.id,
            "metadata_modified": resource.metadata_modified,
            "mimetype": resource.mimetype or UNDEFINED,
            "name": resource.name,
            "package_id": resource.package_id,
            "position": resource.position,
            "projection_name": resource.projection_name or UNDEFINED,
            "resource_access_method": resource.resource_access_method,
            "resource_storage_location": resource.resource_storage_location,
            "resource_type": resource.resource_type,
            "resource_update_cycle": resource.resource_update_cycle,
            "size": resource.size,
            "spatial_datatype": resource.spatial_datatype or UNDEFINED,
            "state": resource.state,
            "url": resource.url,
            "url_type": resource.url_type or UNDEFINED,
        }
        annotations = managed_by_annotations(self._managed_by)
        annotations.update(_prefixed(RESOURCE_ANNOTATION, values))
        return annotations
