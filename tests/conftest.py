"""
Shared fixtures over the simulated registry.
"""

import pytest

from chainresync.application import RegistryValueGateway
from chainresync.domain import AccessMethod, GatewaySettings
from chainresync.infrastructure.registry import (
    DirectRegistryStrategy,
    ManagementQueryStrategy,
    RemoteExecStrategy,
)

from tests.fakes import FakePowerShellRunner, FakeSessionFactory, FakeWinreg, RegistryStore


@pytest.fixture
def store() -> RegistryStore:
    return RegistryStore()


@pytest.fixture
def fake_winreg(store) -> FakeWinreg:
    return FakeWinreg(store)


@pytest.fixture
def fake_runner(store) -> FakePowerShellRunner:
    return FakePowerShellRunner(store)


@pytest.fixture
def session_factory(store) -> FakeSessionFactory:
    return FakeSessionFactory(store)


@pytest.fixture
def strategies(fake_winreg, fake_runner, session_factory):
    return {
        AccessMethod.DIRECT: DirectRegistryStrategy(fake_winreg),
        AccessMethod.MANAGEMENT_QUERY: ManagementQueryStrategy(fake_runner),
        AccessMethod.REMOTE_EXEC: RemoteExecStrategy(session_factory=session_factory),
    }


@pytest.fixture
def gateway(strategies) -> RegistryValueGateway:
    """Gateway over the simulated store; only 'localhost' counts as local."""
    return RegistryValueGateway(
        GatewaySettings(timeout_seconds=5),
        strategies=strategies,
        local_host_check=lambda host: host.lower() in {"localhost", "127.0.0.1", "workstation01"},
    )
