"""
Ledger Test Fixtures - Shared infrastructure for registry tests.

Provides:
    - Isolated registry instances with explicit config
    - A LedgerHost that supplies the caller principal
    - Named principals for owners, devices and strangers
"""

from __future__ import annotations

import pytest

from device_ledger import DeviceRegistry, InMemoryStorage, RegistryConfig
from device_ledger.testing import LedgerHost


@pytest.fixture
def config() -> RegistryConfig:
    """Default config, pinned so environment variables cannot leak in."""
    return RegistryConfig(read_policy="public", verify_invariants=True)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def registry(storage: InMemoryStorage, config: RegistryConfig) -> DeviceRegistry:
    """Create an isolated registry deployed by 'deployer'."""
    return DeviceRegistry(admin="deployer", storage=storage, config=config)


@pytest.fixture
def host(registry: DeviceRegistry) -> LedgerHost:
    """Host around the isolated registry."""
    return LedgerHost(registry)


@pytest.fixture
def owner_a() -> str:
    return "alice"


@pytest.fixture
def owner_b() -> str:
    return "bob"


@pytest.fixture
def device(registry: DeviceRegistry, owner_a: str) -> str:
    """A device 'd1' registered by itself and claimed by alice."""
    registry.register_device(caller="d1", owner=owner_a)
    return "d1"
