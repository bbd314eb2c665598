"""Pydantic models for Dashboard records and desired network configuration.

These models provide:
1. Tolerant decoding of API responses (unknown fields ignored, nulls coerced)
2. Validation of desired configuration at the boundary
3. Wire payloads for create and update requests
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from .config import MAX_NETWORK_NAME_LENGTH, MAX_NOTES_LENGTH, MAX_TAG_LENGTH


class ProductType(str, Enum):
    """Capabilities a network can be created with."""

    WIRELESS = "wireless"
    APPLIANCE = "appliance"
    SWITCH = "switch"
    SYSTEMS_MANAGER = "systemsManager"
    CAMERA = "camera"
    CELLULAR_GATEWAY = "cellularGateway"
    SENSOR = "sensor"


class LicensingModel(str, Enum):
    """Organization licensing models reported by the API."""

    CO_TERM = "co-term"
    PER_DEVICE = "per-device"
    SUBSCRIPTION = "subscription"


# Substituted at creation when the desired product types are empty or absent
ALL_PRODUCT_TYPES: frozenset[str] = frozenset(p.value for p in ProductType)


def _none_to_empty(value: Any, empty: Any) -> Any:
    return empty if value is None else value


# =============================================================================
# Remote records
# =============================================================================


class Organization(BaseModel):
    """Organization as returned by GET /organizations[/{id}].

    The nested api/licensing/cloud/management objects are flattened on decode.
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    id: Annotated[str, Field(min_length=1)]
    name: str = ""
    url: str = ""
    api_enabled: bool = False
    licensing_model: str = ""
    cloud_region_name: str = ""
    management_details: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def flatten_nested(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        flat = dict(data)
        api = flat.pop("api", None) or {}
        licensing = flat.pop("licensing", None) or {}
        cloud = flat.pop("cloud", None) or {}
        management = flat.pop("management", None) or {}

        if isinstance(api, dict):
            flat.setdefault("api_enabled", bool(api.get("enabled", False)))
        if isinstance(licensing, dict):
            flat.setdefault("licensing_model", licensing.get("model") or "")
        if isinstance(cloud, dict):
            region = cloud.get("region") or {}
            if isinstance(region, dict):
                flat.setdefault("cloud_region_name", region.get("name") or "")
        if isinstance(management, dict):
            flat.setdefault("management_details", management.get("details") or [])
        if flat.get("name") is None:
            flat["name"] = ""
        if flat.get("url") is None:
            flat["url"] = ""
        return flat

    @field_validator("management_details", mode="before")
    @classmethod
    def render_details(cls, v: Any) -> Any:
        # The API reports details as {name, value} objects
        if not isinstance(v, list):
            return v
        rendered = []
        for detail in v:
            if isinstance(detail, dict):
                rendered.append(f"{detail.get('name', '')}: {detail.get('value', '')}")
            else:
                rendered.append(detail)
        return rendered


class Network(BaseModel):
    """Network as returned by the network endpoints."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    id: Annotated[str, Field(min_length=1)]
    organization_id: str = Field("", alias="organizationId")
    name: str = ""
    product_types: frozenset[str] = Field(default_factory=frozenset, alias="productTypes")
    time_zone: str = Field("", alias="timeZone")
    tags: frozenset[str] = Field(default_factory=frozenset)
    enrollment_string: str | None = Field(None, alias="enrollmentString")
    url: str = ""
    notes: str = ""
    is_bound_to_config_template: bool = Field(False, alias="isBoundToConfigTemplate")

    @field_validator("organization_id", "name", "time_zone", "url", "notes", mode="before")
    @classmethod
    def null_string(cls, v: Any) -> Any:
        return _none_to_empty(v, "")

    @field_validator("product_types", "tags", mode="before")
    @classmethod
    def null_collection(cls, v: Any) -> Any:
        return _none_to_empty(v, frozenset())

    @field_validator("is_bound_to_config_template", mode="before")
    @classmethod
    def null_flag(cls, v: Any) -> Any:
        return _none_to_empty(v, False)


# =============================================================================
# Request payloads
# =============================================================================


class NetworkCreateRequest(BaseModel):
    """Body of POST /organizations/{orgId}/networks."""

    name: Annotated[str, Field(min_length=1)]
    product_types: tuple[str, ...] = Field(alias="productTypes")
    time_zone: Annotated[str, Field(min_length=1, alias="timeZone")]
    tags: tuple[str, ...] | None = None
    notes: str | None = None

    model_config = {"populate_by_name": True}

    def to_payload(self) -> dict[str, Any]:
        """Wire form; absent tags/notes are left out."""
        payload: dict[str, Any] = {
            "name": self.name,
            "productTypes": list(self.product_types),
            "timeZone": self.time_zone,
        }
        if self.tags:
            payload["tags"] = list(self.tags)
        if self.notes:
            payload["notes"] = self.notes
        return payload


class NetworkUpdateRequest(BaseModel):
    """Body of PUT /networks/{id}. Only changed fields are set."""

    name: str | None = None
    time_zone: str | None = Field(None, alias="timeZone")
    notes: str | None = None
    tags: tuple[str, ...] | None = None

    model_config = {"populate_by_name": True}

    def to_payload(self) -> dict[str, Any]:
        """Wire form with zero-valued fields omitted."""
        payload: dict[str, Any] = {}
        if self.name:
            payload["name"] = self.name
        if self.time_zone:
            payload["timeZone"] = self.time_zone
        if self.notes:
            payload["notes"] = self.notes
        if self.tags:
            payload["tags"] = list(self.tags)
        return payload

    def is_empty(self) -> bool:
        return not self.to_payload()


# =============================================================================
# Desired configuration and observed state
# =============================================================================


class NetworkSpec(BaseModel):
    """Desired configuration (plan) for one network."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    org_id: Annotated[str, Field(min_length=1, alias="orgId")]
    name: Annotated[str, Field(min_length=1, max_length=MAX_NETWORK_NAME_LENGTH)]
    time_zone: Annotated[str, Field(min_length=1, alias="timeZone")]

    # None means "not specified"; at creation that expands to all product types
    product_types: frozenset[str] | None = Field(None, alias="productTypes")
    tags: frozenset[str] | None = None
    notes: str | None = Field(None, max_length=MAX_NOTES_LENGTH)

    @field_validator("org_id", mode="before")
    @classmethod
    def coerce_org_id(cls, v: Any) -> Any:
        # Organization ids are numeric strings; unquoted YAML yields an int
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"timeZone must be an IANA time zone name: {v}") from e
        return v

    @field_validator("product_types")
    @classmethod
    def validate_product_types(cls, v: frozenset[str] | None) -> frozenset[str] | None:
        if v is None:
            return v
        unknown = sorted(v - ALL_PRODUCT_TYPES)
        if unknown:
            raise ValueError(
                f"productTypes must be drawn from {sorted(ALL_PRODUCT_TYPES)}: {unknown}"
            )
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: frozenset[str] | None) -> frozenset[str] | None:
        if v is None:
            return v
        for tag in v:
            if not tag or len(tag) > MAX_TAG_LENGTH:
                raise ValueError(f"tags must be 1-{MAX_TAG_LENGTH} characters: {tag!r}")
        return v

    @property
    def effective_product_types(self) -> frozenset[str]:
        """Product types the network is (or will be) created with."""
        return self.product_types or ALL_PRODUCT_TYPES


@dataclass(frozen=True)
class NetworkState:
    """Observed state for one network, as recorded after the last operation.

    None marks a value that is unknown (never observed or not reported).
    """

    id: str
    org_id: str = ""
    name: str | None = None
    time_zone: str | None = None
    product_types: frozenset[str] | None = None
    tags: frozenset[str] | None = None
    notes: str | None = None
    url: str | None = None
    enrollment_string: str | None = None
    is_bound_to_config_template: bool | None = None
