"""Session wiring: one credential, one gateway, shared by every resource.

The gateway and credential are built once from validated configuration and
passed by reference into each resource and data source. Nothing here is
mutated after construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

from .config import Config
from .gateway import MerakiGateway
from .organizations import OrganizationDataSource, OrganizationsDataSource
from .reconciler import NetworkResource, Reconciler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Provider:
    """Configured resources and data sources for one session."""

    config: Config
    gateway: MerakiGateway
    networks: NetworkResource
    organization: OrganizationDataSource
    organizations: OrganizationsDataSource

    def network_reconciler(self, name: str = "") -> Reconciler:
        """Reconciler for a single network instance."""
        return Reconciler(self.networks, name=name)

    def close(self) -> None:
        self.gateway.close()


def configure_provider(config: Config, session: requests.Session | None = None) -> Provider:
    """Build the provider for a session.

    Args:
        config: Validated configuration.
        session: Optional HTTP session to reuse.

    Raises:
        CredentialError: If the configured API key is malformed.
    """
    gateway = MerakiGateway.from_config(config, session=session)
    logger.info(
        "Configured provider",
        extra={
            "base_url": gateway.base_url,
            "request_timeout_seconds": config.request_timeout_seconds,
        },
    )
    return Provider(
        config=config,
        gateway=gateway,
        networks=NetworkResource(gateway),
        organization=OrganizationDataSource(gateway),
        organizations=OrganizationsDataSource(gateway),
    )
