"""In-memory Dashboard state: organizations, networks and injected faults."""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from typing import Any

KNOWN_PRODUCT_TYPES = (
    "appliance",
    "camera",
    "cellularGateway",
    "sensor",
    "switch",
    "systemsManager",
    "wireless",
)


@dataclass
class MockOrganization:
    """Represents a mock organization."""

    id: str
    name: str
    api_enabled: bool = True
    licensing_model: str = "co-term"
    region: str = "North America"
    details: list[dict[str, str]] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "url": f"https://n1.meraki.com/o/{self.id}/manage/organization/overview",
            "api": {"enabled": self.api_enabled},
            "licensing": {"model": self.licensing_model},
            "cloud": {"region": {"name": self.region, "host": {"name": "United States"}}},
            "management": {"details": copy.deepcopy(self.details)},
        }


@dataclass
class MockNetwork:
    """Represents a mock network."""

    id: str
    organization_id: str
    name: str
    time_zone: str
    product_types: list[str]
    tags: list[str] = field(default_factory=list)
    notes: str = ""
    url: str = ""
    enrollment_string: str | None = None
    is_bound_to_config_template: bool = False

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "organizationId": self.organization_id,
            "name": self.name,
            "productTypes": list(self.product_types),
            "timeZone": self.time_zone,
            "tags": list(self.tags),
            "enrollmentString": self.enrollment_string,
            "url": self.url,
            "notes": self.notes,
            "isBoundToConfigTemplate": self.is_bound_to_config_template,
        }


@dataclass
class _Fault:
    method: str
    path: str
    error: Exception | None = None
    status: int | None = None
    body: Any = None
    raw_text: str | None = None


class MockMerakiState:
    """In-memory remote state.

    All operations are synchronous since this is test code.
    """

    def __init__(self, api_key: str | None = None) -> None:
        """Initialize empty state.

        Args:
            api_key: If set, requests must carry this bearer token.
        """
        self.api_key = api_key
        self.organizations: dict[str, MockOrganization] = {}
        self.networks: dict[str, MockNetwork] = {}
        self._faults: deque[_Fault] = deque()
        self._counter = 0
        self._url_generation = 0

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def add_organization(self, org_id: str, name: str = "", **kwargs: Any) -> MockOrganization:
        org = MockOrganization(id=org_id, name=name or f"Org {org_id}", **kwargs)
        self.organizations[org_id] = org
        return org

    def add_network(
        self,
        org_id: str,
        name: str,
        time_zone: str = "UTC",
        product_types: list[str] | None = None,
        **kwargs: Any,
    ) -> MockNetwork:
        network_id = self._next_id()
        url = kwargs.pop("url", None) or self._url_for(name, network_id)
        network = MockNetwork(
            id=network_id,
            organization_id=org_id,
            name=name,
            time_zone=time_zone,
            product_types=list(product_types or KNOWN_PRODUCT_TYPES),
            url=url,
            **kwargs,
        )
        self.networks[network_id] = network
        return network

    def _next_id(self) -> str:
        self._counter += 1
        return f"N_{1000 + self._counter}"

    def _url_for(self, name: str, network_id: str) -> str:
        slug = name.lower().replace(" ", "-")
        return f"https://n{1 + self._url_generation}.meraki.com/{slug}/n/{network_id}/manage/usage/list"

    # -------------------------------------------------------------------------
    # Server-side behaviour
    # -------------------------------------------------------------------------

    def drift_url(self, network_id: str) -> str:
        """Move a network's dashboard link, as the server does unprompted."""
        self._url_generation += 1
        network = self.networks[network_id]
        network.url = self._url_for(network.name, network_id)
        return network.url

    def fail_next(self, method: str, path: str, error: Exception) -> None:
        """Raise error on the next matching request instead of answering it."""
        self._faults.append(_Fault(method=method, path=path, error=error))

    def respond_next(
        self,
        method: str,
        path: str,
        status: int,
        body: Any = None,
        raw_text: str | None = None,
    ) -> None:
        """Answer the next matching request with a canned response."""
        self._faults.append(
            _Fault(method=method, path=path, status=status, body=body, raw_text=raw_text)
        )

    def pop_fault(self, method: str, path: str) -> _Fault | None:
        for fault in list(self._faults):
            if fault.method == method and fault.path == path:
                self._faults.remove(fault)
                return fault
        return None

    # -------------------------------------------------------------------------
    # Endpoint handlers: return (status, body)
    # -------------------------------------------------------------------------

    def handle(self, method: str, path: str, body: dict[str, Any] | None) -> tuple[int, Any]:
        segments = [s for s in path.split("/") if s]

        match (method, segments):
            case ("GET", ["organizations"]):
                return 200, [org.to_json() for org in self.organizations.values()]
            case ("GET", ["organizations", org_id]):
                org = self.organizations.get(org_id)
                return (200, org.to_json()) if org else _not_found()
            case ("POST", ["organizations", org_id, "networks"]):
                return self._create_network(org_id, body or {})
            case ("GET", ["organizations", org_id, "networks", network_id]):
                network = self.networks.get(network_id)
                if network is None or network.organization_id != org_id:
                    return _not_found()
                return 200, network.to_json()
            case ("GET", ["networks", network_id]):
                network = self.networks.get(network_id)
                return (200, network.to_json()) if network else _not_found()
            case ("PUT", ["networks", network_id]):
                return self._update_network(network_id, body or {})
            case ("DELETE", ["networks", network_id]):
                if self.networks.pop(network_id, None) is None:
                    return _not_found()
                return 204, None
            case _:
                return 404, {"errors": [f"No route for {method} {path}"]}

    def _create_network(self, org_id: str, body: dict[str, Any]) -> tuple[int, Any]:
        if org_id not in self.organizations:
            return _not_found()

        errors = []
        if not body.get("name"):
            errors.append("'name' must be specified")
        if not body.get("timeZone"):
            errors.append("'timeZone' must be specified")
        product_types = body.get("productTypes") or []
        if not product_types:
            errors.append("'productTypes' must be specified")
        unknown = [p for p in product_types if p not in KNOWN_PRODUCT_TYPES]
        if unknown:
            errors.append(f"Unknown product types: {unknown}")
        if errors:
            return 400, {"errors": errors}

        network = self.add_network(
            org_id,
            body["name"],
            time_zone=body["timeZone"],
            product_types=product_types,
            tags=list(body.get("tags") or []),
            notes=body.get("notes") or "",
        )
        return 201, network.to_json()

    def _update_network(self, network_id: str, body: dict[str, Any]) -> tuple[int, Any]:
        network = self.networks.get(network_id)
        if network is None:
            return _not_found()
        if "productTypes" in body:
            return 400, {"errors": ["productTypes cannot be changed"]}

        if "name" in body:
            network.name = body["name"]
        if "timeZone" in body:
            network.time_zone = body["timeZone"]
        if "notes" in body:
            network.notes = body["notes"]
        if "tags" in body:
            network.tags = list(body["tags"])
        return 200, network.to_json()


def _not_found() -> tuple[int, Any]:
    return 404, {"errors": ["Not found"]}
