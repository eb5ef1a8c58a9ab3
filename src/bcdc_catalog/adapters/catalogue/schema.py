"""Pydantic models describing BC Data Catalogue (CKAN ``package_search``) payloads.

Field types are strict on purpose: a number where a string is expected means the
upstream contract changed, and the run must stop rather than guess.
"""

from __future__ import annotations

import json
import re
from logging import getLogger
from typing import Annotated, Any, Final, Literal

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
)

log = getLogger(__name__)

DATASET_TYPE: Final[str] = "bcdc_dataset"
ACTIVE_STATE: Final[str] = "active"

_URL_ADAPTER: Final[TypeAdapter[AnyUrl]] = TypeAdapter(AnyUrl)
_EMAIL: Final[re.Pattern[str]] = re.compile(
    r"^(?!\.)(?!.*\.\.)[a-z0-9_'+\-.]*[a-z0-9_+\-]@([a-z0-9][a-z0-9\-]*\.)+[a-z]{2,}$",
    re.IGNORECASE,
)


def _require_url(value: str) -> str:
    _URL_ADAPTER.validate_python(value)
    return value


def _require_email(value: str) -> str:
    if not _EMAIL.fullmatch(value):
        msg = "value is not a valid email address"
        raise ValueError(msg)
    return value


type Number = StrictInt | StrictFloat
type UrlStr = Annotated[StrictStr, AfterValidator(_require_url)]
type EmailText = Annotated[StrictStr, AfterValidator(_require_email)]


class CatalogueBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class MoreInfo(CatalogueBaseModel):
    url: StrictStr
    description: StrictStr | None = None


class Tag(CatalogueBaseModel):
    display_name: StrictStr
    id: StrictStr
    name: StrictStr
    state: StrictStr
    vocabulary_id: StrictStr | None


class PackageGroup(CatalogueBaseModel):
    description: StrictStr
    display_name: StrictStr
    id: StrictStr
    image_display_url: StrictStr
    name: StrictStr
    title: StrictStr


class Contact(CatalogueBaseModel):
    displayed: list[StrictStr] | None = None
    email: StrictStr
    name: StrictStr
    org: StrictStr
    role: StrictStr


class Organization(CatalogueBaseModel):
    id: StrictStr
    name: StrictStr
    title: StrictStr
    type: StrictStr
    description: StrictStr
    image_url: StrictStr
    created: StrictStr
    is_organization: Literal[True]
    approval_status: StrictStr
    state: StrictStr


class GeographicExtent(CatalogueBaseModel):
    east_bound_longitude: StrictStr
    north_bound_latitude: StrictStr
    south_bound_latitude: StrictStr
    west_bound_longitude: StrictStr


class ResourceDetails(CatalogueBaseModel):
    column_comments: StrictStr | None = None
    column_name: StrictStr
    data_precision: Number | StrictStr
    data_type: StrictStr
    short_name: StrictStr | None = None


class ResourcePreviewInfo(CatalogueBaseModel):
    layer_name: StrictStr | None = None
    name: StrictStr | None = None
    preview_latitude: StrictStr | None = None
    preview_longitude: StrictStr | None = None
    preview_zoom_level: StrictStr | None = None
    link_to_imap: StrictStr | None = None
    preview_map_service_url: StrictStr | None = None


class Resource(CatalogueBaseModel):
    bcdc_type: StrictStr
    cache_last_updated: StrictStr | None
    cache_url: StrictStr | None
    created: StrictStr
    datastore_active: StrictStr | StrictBool
    description: StrictStr | None = None
    details: list[ResourceDetails] | None = None
    format: StrictStr
    geographic_extent: list[GeographicExtent] | None = None
    hash: StrictStr
    id: StrictStr
    iso_topic_category: list[StrictStr] | None = None
    metadata_modified: StrictStr
    mimetype: StrictStr | None
    name: StrictStr
    package_id: StrictStr
    position: Number
    preview_info: list[ResourcePreviewInfo] | None = None
    projection_name: StrictStr | None = None
    resource_access_method: StrictStr
    resource_storage_location: StrictStr
    resource_type: StrictStr
    resource_update_cycle: StrictStr
    size: Number | None
    spatial_datatype: StrictStr | None = None
    state: StrictStr
    url: StrictStr
    url_type: StrictStr | None


class PackageDate(CatalogueBaseModel):
    date: StrictStr
    type: StrictStr


class CataloguePackage(CatalogueBaseModel):
    author: StrictStr | None
    author_email: EmailText | None
    creator_user_id: StrictStr
    download_audience: StrictStr
    id: StrictStr
    isopen: StrictBool
    license_id: StrictStr
    license_title: StrictStr | None
    license_url: UrlStr
    maintainer: StrictStr | None
    maintainer_email: EmailText | None
    metadata_created: StrictStr
    metadata_modified: StrictStr
    metadata_visibility: StrictStr
    name: StrictStr
    notes: StrictStr | None
    num_resources: Number
    num_tags: Number
    organization: Organization
    owner_org: StrictStr
    private: StrictBool | None
    publish_state: StrictStr
    record_create_date: StrictStr | None = None
    record_last_modified: StrictStr
    record_publish_date: StrictStr
    resource_status: StrictStr
    security_class: StrictStr
    state: StrictStr
    title: StrictStr | None
    type: StrictStr
    url: StrictStr | None
    version: StrictStr | None
    view_audience: StrictStr

    contacts: list[Contact]
    dates: list[PackageDate]
    groups: list[PackageGroup]
    more_info: list[MoreInfo] | None = None
    resources: list[Resource] | None
    tags: list[Tag] | None

    relationships_as_subject: list[StrictStr]
    relationships_as_object: list[StrictStr]

    @property
    def is_active_dataset(self) -> bool:
        return self.type == DATASET_TYPE and self.state == ACTIVE_STATE


class PackageSearchResult(CatalogueBaseModel):
    results: list[Any]


class PackageSearchResponse(CatalogueBaseModel):
    """Envelope of one ``package_search`` page; the packages stay raw until validated."""

    success: StrictBool
    result: PackageSearchResult


class CataloguePackageValidationError(RuntimeError):
    """Raised when a catalogue package no longer matches the expected schema."""

    def __init__(self, message: str, *, first_issue: str) -> None:
        super().__init__(message)
        self.first_issue = first_issue

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> CataloguePackageValidationError:
        issues = error.errors(include_url=False)
        if issues:
            location = ".".join(str(part) for part in issues[0]["loc"]) or "<root>"
            first_issue = f"{location}: {issues[0]['msg']}"
        else:
            first_issue = str(error)
        return cls(
            "BC Data Catalogue package validation failed. "
            f"See logs for details. First issue: {first_issue}",
            first_issue=first_issue,
        )


def parse_package(item: object) -> CataloguePackage:
    """Validate one raw ``package_search`` result."""

    try:
        return CataloguePackage.model_validate(item)
    except ValidationError as exc:
        log.warning(json.dumps(item, default=str))
        log.warning("Invalid catalogue package: %s", exc)
        raise CataloguePackageValidationError.from_validation_error(exc) from exc
