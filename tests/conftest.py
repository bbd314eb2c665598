"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for meraki_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from meraki_mock import MockMerakiState, MockSession  # noqa: E402

from connector.gateway import MerakiGateway  # noqa: E402
from connector.reconciler import NetworkResource, Reconciler  # noqa: E402
from connector.security import ApiKeyCredential  # noqa: E402

TEST_API_KEY = "0123456789abcdef0123456789abcdef01234567"
TEST_ORG_ID = "549236"


@pytest.fixture
def api_key() -> str:
    return TEST_API_KEY


@pytest.fixture
def mock_state() -> MockMerakiState:
    """Remote state with a single organization."""
    state = MockMerakiState(api_key=TEST_API_KEY)
    state.add_organization(TEST_ORG_ID, name="DevNet Sandbox")
    return state


@pytest.fixture
def mock_session(mock_state: MockMerakiState) -> MockSession:
    return MockSession(mock_state)


@pytest.fixture
def gateway(mock_session: MockSession) -> MerakiGateway:
    return MerakiGateway(ApiKeyCredential(TEST_API_KEY), session=mock_session)


@pytest.fixture
def network_resource(gateway: MerakiGateway) -> NetworkResource:
    return NetworkResource(gateway)


@pytest.fixture
def reconciler(network_resource: NetworkResource) -> Reconciler:
    return Reconciler(network_resource, name="branch-01")
