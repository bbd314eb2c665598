"""Read-only organization data sources.

Organizations are never created, changed or destroyed by the connector.
Both data sources are pure projections of remote truth, re-queried on
every read.
"""

from __future__ import annotations

import logging

from .gateway import MerakiGateway
from .models import Organization

logger = logging.getLogger(__name__)


class OrganizationDataSource:
    """A single organization, looked up by identifier."""

    def __init__(self, gateway: MerakiGateway) -> None:
        self._gateway = gateway

    def read(self, org_id: str) -> Organization:
        """Fetch the organization.

        Raises:
            NotFoundError: If the organization is not visible to the credential.
            GatewayError: On any other remote failure.
        """
        organization = self._gateway.get_organization(org_id)
        logger.debug(
            "Read organization",
            extra={"org_id": organization.id, "licensing_model": organization.licensing_model},
        )
        return organization


class OrganizationsDataSource:
    """Identifiers of every organization visible to the credential."""

    def __init__(self, gateway: MerakiGateway) -> None:
        self._gateway = gateway

    def read(self) -> list[str]:
        organizations = self._gateway.list_organizations()
        logger.info("Listed organizations", extra={"count": len(organizations)})
        return [org.id for org in organizations]
