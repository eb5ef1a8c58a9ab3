from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import pytest

from bcdc_catalog.adapters.catalogue import (
    ApiRegistry,
    CatalogEntities,
    CatalogueTranslator,
    parse_package,
    select_packages,
)
from bcdc_catalog.adapters.catalogue.translator import candidate_api_name, is_api_resource, url_host
from bcdc_catalog.domain.entities import ApiEntity, EntityMetadata
from bcdc_catalog.domain.enums import EntityKind, LinkIcon
from bcdc_catalog.domain.naming import MAX_NAME_LENGTH
from tests.helpers.catalogue import (
    SEARCH_URL,
    FakeUrlReader,
    make_contact,
    make_organization,
    make_package,
    make_resource,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from tests.helpers.catalogue import Payload

ROOT_GROUP = "group:default/gov-bc-ca"
OPENAPI_URL = "https://openapi.apps.gov.bc.ca/roads/openapi.json"


def _translate(
    payloads: Iterable[Payload],
    *,
    documents: Mapping[str, bytes | Exception] | None = None,
    allowed_hosts: Iterable[str] = ("openapi.apps.gov.bc.ca",),
) -> CatalogEntities:
    reader = FakeUrlReader(documents=documents)
    translator = CatalogueTranslator(
        reader=reader, allowed_hosts=allowed_hosts, managed_by=SEARCH_URL
    )
    return asyncio.run(translator.translate(select_packages(payloads)))


def test_translate_builds_every_entity_kind() -> None:
    entities = _translate(
        [make_package()],
        documents={OPENAPI_URL: b'{"openapi": "3.0.0"}'},
    )

    assert list(entities.systems) == ["system:default/ministry-of-transportation"]
    assert list(entities.components) == ["component:default/roads-dataset"]
    assert list(entities.apis) == ["api:default/api-roads-dataset"]
    assert list(entities.users) == ["user:default/roads.data@gov.bc.ca"]
    assert list(entities.groups) == [ROOT_GROUP]

    kinds = [entity.kind for entity in entities.all_entities()]
    assert kinds == [
        EntityKind.USER,
        EntityKind.GROUP,
        EntityKind.SYSTEM,
        EntityKind.COMPONENT,
        EntityKind.API,
    ]
    assert len(entities) == 5

    root = entities.groups[ROOT_GROUP]
    assert root.display_name == "Government of British Columbia"
    assert root.parent is None

    component = entities.components["component:default/roads-dataset"]
    assert component.system == "system:default/ministry-of-transportation"
    assert component.owner == ROOT_GROUP
    assert component.provides_apis == ["api:default/api-roads-dataset"]
    assert component.metadata.tags == ["road-network"]
    assert component.metadata.description == "Notes for roads-dataset"
    annotations = component.metadata.annotations
    assert annotations["bcdata.gov.bc.ca/package-isopen"] == "true"
    assert annotations["bcdata.gov.bc.ca/package-private"] == "false"
    assert annotations["bcdata.gov.bc.ca/package-author"] == "Unknown"
    assert annotations["backstage.io/managed-by-location"] == f"url:{SEARCH_URL}"

    api = entities.apis["api:default/api-roads-dataset"]
    assert api.type == "openapi"
    assert api.definition == '{"openapi": "3.0.0"}'
    assert api.metadata.tags == ["openapi-json"]
    assert api.metadata.annotations["bcdata.gov.bc.ca/resource-size"] == "null"
    assert api.metadata.annotations["bcdata.gov.bc.ca/resource-position"] == "0"
    assert api.metadata.annotations["bcdata.gov.bc.ca/resource-cache_url"] == "Undefined"


def test_inactive_packages_are_excluded_everywhere() -> None:
    entities = _translate(
        [
            make_package(
                "retired",
                state="deleted",
                organization=make_organization("retired-ministry"),
                contacts=[make_contact("old@retired.example.ca")],
            ),
            make_package(
                "harvested",
                type="harvested_dataset",
                organization=make_organization("harvest-office"),
                contacts=[make_contact("harvest@harvest.example.ca")],
            ),
        ]
    )

    assert entities.components == {}
    assert entities.apis == {}
    assert entities.systems == {}
    assert entities.users == {}
    assert list(entities.groups) == [ROOT_GROUP]


def test_contacts_with_same_email_produce_one_user() -> None:
    entities = _translate(
        [
            make_package(
                "first",
                contacts=[make_contact("Roads.Data@Example.ca", name="")],
                resources=[],
            ),
            make_package(
                "second",
                contacts=[
                    make_contact("roads.data@example.CA", name="Roads Team"),
                    make_contact("ROADS.DATA@example.ca", name="Other Name"),
                ],
                resources=[],
            ),
        ]
    )

    assert list(entities.users) == ["user:default/roads.data@example.ca"]
    user = entities.users["user:default/roads.data@example.ca"]
    assert user.member_of == ["group:default/example-ca"]
    assert user.display_name == "Roads Team"

    group = entities.groups["group:default/example-ca"]
    assert group.parent == ROOT_GROUP
    assert group.display_name == "example.ca"


def test_contact_links_use_lowercase_mailto() -> None:
    entities = _translate(
        [make_package(contacts=[make_contact("Roads.Data@Gov.BC.ca")], resources=[])]
    )

    component = entities.components["component:default/roads-dataset"]
    contact_links = [link for link in component.metadata.links if link.type == "contact"]
    assert [link.url for link in contact_links] == ["mailto:roads.data@gov.bc.ca"]
    assert contact_links[0].icon == LinkIcon.EMAIL
    assert contact_links[0].title == "Contact: Roads Data"


def test_colliding_api_name_gets_distinguishing_suffix() -> None:
    second_url = "https://openapi.apps.gov.bc.ca/roads-2023/openapi.json"
    package = make_package(
        resources=[
            make_resource("Roads Service"),
            make_resource("Roads Service 2023", url=second_url),
        ]
    )

    entities = _translate(
        [package],
        documents={OPENAPI_URL: b"{}", second_url: b'{"info": {"version": "2023"}}'},
    )

    assert list(entities.apis) == [
        "api:default/api-roads-dataset",
        "api:default/api-roads-dataset-2023",
    ]
    component = entities.components["component:default/roads-dataset"]
    assert component.provides_apis == list(entities.apis)


def test_collision_log_names_existing_and_new_api(caplog: pytest.LogCaptureFixture) -> None:
    second_url = "https://openapi.apps.gov.bc.ca/roads-2023/openapi.json"
    package = make_package(
        resources=[
            make_resource("Roads Service", id="res-first"),
            make_resource("Roads Service 2023", url=second_url, id="res-second"),
        ]
    )

    with caplog.at_level(logging.WARNING):
        _translate([package], documents={OPENAPI_URL: b"{}", second_url: b"{}"})

    collisions = [record for record in caplog.records if "already taken" in record.getMessage()]
    assert len(collisions) == 1
    message = collisions[0].getMessage()
    assert 'using "api-roads-dataset-2023"' in message
    assert (
        'Existing API: format="openapi-json", resource-id="res-first", '
        f'package-id="pkg-roads-dataset", url="{OPENAPI_URL}"'
    ) in message
    assert (
        'New API: format="openapi-json", resource-id="res-second", '
        f'package-id="pkg-roads-dataset", url="{second_url}"'
    ) in message


def test_colliding_non_webservice_openapi_resources_are_disambiguated() -> None:
    first_url = "https://openapi.apps.gov.bc.ca/network/v1/openapi.json"
    second_url = "https://openapi.apps.gov.bc.ca/network/v2/openapi.json"
    resources = [
        make_resource(
            "Road Network API 2023", bcdc_type="document", url=url, id=f"res-network-{index}"
        )
        for index, url in enumerate([first_url, second_url])
    ]

    entities = _translate(
        [make_package(resources=resources)],
        documents={
            first_url: b'{"info": {"version": "1"}}',
            second_url: b'{"info": {"version": "2"}}',
        },
    )

    assert list(entities.apis) == [
        "api:default/road-network-api-2023",
        "api:default/road-network-api-2023-2023",
    ]
    first, second = entities.apis.values()
    assert first.definition == '{"info": {"version": "1"}}'
    assert second.definition == '{"info": {"version": "2"}}'
    assert second.metadata.annotations["bcdata.gov.bc.ca/resource-id"] == "res-network-1"


def test_repeated_collisions_stay_unique_and_bounded() -> None:
    long_name = "provincial-" + "road-network-" * 4 + "inventory"
    resources = [
        make_resource(
            "Road Service 2023",
            format="arcgis_rest",
            url=f"https://maps.gov.bc.ca/arcgis/rest/services/roads/{index}",
            id=f"res-{index}",
        )
        for index in range(15)
    ]

    entities = _translate([make_package(long_name, resources=resources)])

    names = [api.name for api in entities.apis.values()]
    assert len(names) == 15
    assert len(set(names)) == 15
    assert all(len(name) <= MAX_NAME_LENGTH for name in names)
    assert names[1].endswith("-2023")
    assert names[2].endswith("-2023-1")
    assert names[14].endswith("-2023-13")


def test_arcgis_definition_is_resource_url() -> None:
    url = "https://maps.gov.bc.ca/arcgis/rest/services/roads"
    entities = _translate(
        [make_package(resources=[make_resource("Roads", format="arcgis_rest", url=url)])],
        allowed_hosts=("maps.gov.bc.ca",),
    )

    api = entities.apis["api:default/arcgis-rest-roads-dataset"]
    assert api.definition == url
    assert api.type == "webservice"
    assert [link.icon for link in api.metadata.links] == [LinkIcon.API]


def test_integral_float_annotations_render_without_fraction() -> None:
    url = "https://maps.gov.bc.ca/arcgis/rest/services/roads"
    resource = make_resource("Roads", format="arcgis_rest", url=url, position=1000.0, size=2048.5)

    entities = _translate([make_package(resources=[resource])])

    annotations = entities.apis["api:default/arcgis-rest-roads-dataset"].metadata.annotations
    assert annotations["bcdata.gov.bc.ca/resource-position"] == "1000"
    assert annotations["bcdata.gov.bc.ca/resource-size"] == "2048.5"


def test_geographic_resource_without_url_is_skipped() -> None:
    package = make_package(
        resources=[
            make_resource("Road Layer", bcdc_type="geographic", format="shp", url=""),
            make_resource(
                "Road Guide",
                bcdc_type="document",
                format="pdf",
                url="https://www2.gov.bc.ca/roads/guide.pdf",
            ),
        ]
    )

    entities = _translate([package])

    assert entities.apis == {}
    component = entities.components["component:default/roads-dataset"]
    assert component.provides_apis == []
    titles = [link.title for link in component.metadata.links]
    assert "Road Layer" not in titles
    resource_links = [link for link in component.metadata.links if link.icon == LinkIcon.CATALOG]
    assert [(link.title, link.type) for link in resource_links] == [("Road Guide", "document")]


def test_openapi_fetch_failure_falls_back_to_url(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        entities = _translate([make_package()], documents={})

    api = entities.apis["api:default/api-roads-dataset"]
    assert api.definition == OPENAPI_URL
    assert "Failed to fetch OpenAPI definition" in caplog.text


def test_untrusted_host_is_logged_but_kept(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        entities = _translate(
            [make_package()],
            documents={OPENAPI_URL: b"{}"},
            allowed_hosts=("OpenAPI.apps.gov.bc.ca",),
        )
    assert "NOT allowed" not in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING):
        entities = _translate([make_package()], documents={OPENAPI_URL: b"{}"}, allowed_hosts=())

    assert 'API definition host is NOT allowed: "openapi.apps.gov.bc.ca"' in caplog.text
    assert "api:default/api-roads-dataset" in entities.apis


def test_organizations_mapping_to_one_system_keep_the_first(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.WARNING):
        entities = _translate(
            [
                make_package("a", organization=make_organization("Roads Office", id="org-1")),
                make_package("b", organization=make_organization("roads-office", id="org-2")),
            ],
            documents={OPENAPI_URL: b"{}"},
        )

    system = entities.systems["system:default/roads-office"]
    assert system.metadata.annotations["bcdata.gov.bc.ca/organization-id"] == "org-1"
    assert "keeping the first" in caplog.text


def test_registry_overwrite_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    def api(resource_id: str) -> ApiEntity:
        return ApiEntity(
            metadata=EntityMetadata(
                name="api-roads",
                annotations={"bcdata.gov.bc.ca/resource-id": resource_id},
            ),
            type="openapi",
            owner=ROOT_GROUP,
            system="system:default/roads",
            definition="{}",
        )

    registry = ApiRegistry()
    with caplog.at_level(logging.WARNING):
        registry.register(api("res-1"))
        registry.register(api("res-2"))

    assert len(registry) == 1
    assert registry.values()[0].metadata.annotations["bcdata.gov.bc.ca/resource-id"] == "res-2"
    assert "Duplicate API name detected" in caplog.text


def test_registry_resolve_returns_free_candidate() -> None:
    resources = parse_package(make_package(resources=[make_resource("Roads 2023")])).resources
    assert resources is not None
    registry = ApiRegistry()

    assert registry.resolve("api-roads", resources[0]) == "api-roads"


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({"bcdc_type": "webservice", "format": "wms"}, True),
        ({"bcdc_type": "webservice", "format": "kml"}, False),
        ({"bcdc_type": "geographic", "format": "arcgis_rest"}, True),
        ({"bcdc_type": "document", "format": "openapi-json"}, True),
        ({"bcdc_type": "document", "format": "csv"}, False),
    ],
)
def test_is_api_resource(overrides: dict[str, str], expected: bool) -> None:
    resource = parse_package(make_package(resources=[make_resource(**overrides)])).resources
    assert resource is not None

    assert is_api_resource(resource[0]) is expected


def test_candidate_api_name_for_non_webservice_uses_resource_name() -> None:
    package = parse_package(
        make_package(
            resources=[make_resource("Roads OpenAPI Spec", bcdc_type="document")],
        )
    )
    assert package.resources is not None

    assert candidate_api_name(package.resources[0], "roads-dataset") == "roads-openapi-spec"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://OpenAPI.apps.gov.bc.ca/x", "openapi.apps.gov.bc.ca"),
        ("https://maps.gov.bc.ca:8443/arcgis", "maps.gov.bc.ca:8443"),
        ("not a url", ""),
        ("https://bad:port/", ""),
    ],
)
def test_url_host(url: str, expected: str) -> None:
    assert url_host(url) == expected
