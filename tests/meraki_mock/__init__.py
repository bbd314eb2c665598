"""Dashboard API Mock for Integration Testing.

This module provides an in-memory stand-in for the Dashboard REST API that
plugs into the gateway in place of a requests.Session.

Key Features:
- In-memory organizations and networks
- Status codes matching the real endpoints (201 create, 204 delete, 404 missing)
- Server-side URL drift simulation
- Fault injection: transport errors and canned responses
- Call recording for asserting which requests were (not) made

Usage:
    from meraki_mock import MockMerakiState, MockSession

    state = MockMerakiState()
    state.add_organization("123", name="Acme")
    gateway = MerakiGateway(credential, session=MockSession(state))
"""

from .session import MockCall, MockResponse, MockSession
from .state import MockMerakiState, MockNetwork, MockOrganization

__all__ = [
    "MockCall",
    "MockMerakiState",
    "MockNetwork",
    "MockOrganization",
    "MockResponse",
    "MockSession",
]
