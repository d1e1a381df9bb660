"""
Ledger Host - In-process stand-in for the hosting execution environment.

The registry's operations take the caller principal explicitly. A real
ledger supplies that principal from the signed transaction; LedgerHost
supplies it from a caller stack so tests read like transactions:

    host = LedgerHost.deploy(admin="deployer")

    with host.as_caller("thermostat"):
        host.register_device(owner="alice")

    with host.as_caller("alice"):
        result = host.change_state("thermostat", True)

    assert result.ok
    assert host.events_for("thermostat")[-1].new_state is True
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from device_ledger.config import RegistryConfig
from device_ledger.registry import (
    CallRequest,
    CallResult,
    DeviceRegistry,
    RegistryEvent,
    RegistryStorage,
)
from device_ledger.registry.states import PrincipalId


class LedgerHost:
    """
    Host that routes every call through DeviceRegistry.submit().

    The current caller is the top of the caller stack; the deploying
    admin is at the bottom and is never popped.
    """

    def __init__(self, registry: DeviceRegistry):
        self.registry = registry
        self._callers: list[PrincipalId] = [registry.admin]

    @classmethod
    def deploy(
        cls,
        admin: PrincipalId = "admin",
        storage: RegistryStorage | None = None,
        config: RegistryConfig | None = None,
    ) -> LedgerHost:
        """Construct a fresh registry as admin and host it."""
        return cls(DeviceRegistry(admin=admin, storage=storage, config=config))

    @property
    def caller(self) -> PrincipalId:
        return self._callers[-1]

    def push_caller(self, caller: PrincipalId) -> None:
        self._callers.append(caller)

    def pop_caller(self) -> PrincipalId:
        if len(self._callers) == 1:
            raise RuntimeError("Cannot pop the deploying caller")
        return self._callers.pop()

    @contextmanager
    def as_caller(self, caller: PrincipalId) -> Iterator[LedgerHost]:
        self.push_caller(caller)
        try:
            yield self
        finally:
            self.pop_caller()

    def register_device(self, owner: PrincipalId) -> CallResult:
        return self.registry.submit(CallRequest.register_device(self.caller, owner))

    def change_state(self, device_id: PrincipalId, new_state: bool) -> CallResult:
        return self.registry.submit(
            CallRequest.change_state(self.caller, device_id, new_state)
        )

    def get_state(self, device_id: PrincipalId) -> CallResult:
        return self.registry.submit(CallRequest.get_state(self.caller, device_id))

    def device_count(self, owner: PrincipalId) -> CallResult:
        return self.registry.submit(CallRequest.device_count(self.caller, owner))

    def enroll(self, device_id: PrincipalId, owner: PrincipalId) -> CallResult:
        """Register device_id as a self-registering device owned by owner."""
        with self.as_caller(device_id):
            return self.register_device(owner)

    def events_for(self, device_id: PrincipalId) -> list[RegistryEvent]:
        return self.registry.events.query(device=device_id)
