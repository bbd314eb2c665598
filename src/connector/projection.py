"""Mapping between observed state records and their persisted form.

Persisted state is a JSON-compatible mapping keyed by snake_case attribute
names. Unordered collections are written as sorted lists so the persisted
form is stable, unknown values are written as null, and keys the connector
does not own are carried over from the previous document untouched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .models import NetworkState, Organization

NETWORK_STATE_FIELDS: tuple[str, ...] = (
    "id",
    "org_id",
    "name",
    "time_zone",
    "product_types",
    "tags",
    "notes",
    "url",
    "enrollment_string",
    "is_bound_to_config_template",
)

UNORDERED_FIELDS: frozenset[str] = frozenset({"product_types", "tags"})
BOOLEAN_FIELDS: frozenset[str] = frozenset({"is_bound_to_config_template"})


class StateProjectionError(Exception):
    """Raised when persisted state cannot be mapped to a state record."""

    pass


def network_to_persisted(
    state: NetworkState,
    previous: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Serialize observed network state.

    Args:
        state: Observed state record.
        previous: Previously persisted document whose foreign keys are kept.

    Returns:
        JSON-compatible mapping.
    """
    document: dict[str, Any] = dict(previous or {})
    for name in NETWORK_STATE_FIELDS:
        value = getattr(state, name)
        if name in UNORDERED_FIELDS and value is not None:
            value = sorted(value)
        document[name] = value
    return document


def network_from_persisted(document: Mapping[str, Any]) -> NetworkState:
    """Deserialize observed network state.

    Raises:
        StateProjectionError: If the document is not a mapping, has no id,
            or holds a value of the wrong type.
    """
    if not isinstance(document, Mapping):
        raise StateProjectionError(
            f"Persisted network state must be a mapping, got {type(document).__name__}"
        )

    identifier = document.get("id")
    if not isinstance(identifier, str) or not identifier:
        raise StateProjectionError("Persisted network state has no id")

    values: dict[str, Any] = {}
    for name in NETWORK_STATE_FIELDS[1:]:
        raw = document.get(name)
        if raw is None:
            continue
        if name in UNORDERED_FIELDS:
            if not isinstance(raw, list) or not all(isinstance(v, str) for v in raw):
                raise StateProjectionError(f"{name} must be a list of strings")
            values[name] = frozenset(raw)
        elif name in BOOLEAN_FIELDS:
            if not isinstance(raw, bool):
                raise StateProjectionError(f"{name} must be a boolean")
            values[name] = raw
        else:
            if not isinstance(raw, str):
                raise StateProjectionError(f"{name} must be a string")
            values[name] = raw

    return NetworkState(id=identifier, **values)


def organization_to_persisted(organization: Organization) -> dict[str, Any]:
    """Serialize an organization data source read."""
    return {
        "id": organization.id,
        "name": organization.name,
        "api_enabled": organization.api_enabled,
        "licensing_model": organization.licensing_model,
        "cloud_region_name": organization.cloud_region_name,
        # Order-insignificant
        "management_details": sorted(organization.management_details),
    }


def organization_ids_to_persisted(ids: Iterable[str]) -> dict[str, Any]:
    """Serialize an organizations data source read."""
    return {"ids": list(ids)}
