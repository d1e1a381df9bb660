"""
Device Ledger - Ownership-gated device state registry.

Public API (stable):
    DeviceRegistry  - Register devices, change and read their state, count per owner.
    RegistryConfig  - Read policy, invariant verification, registration events.
    CallRequest     - Ledger-style call envelope for DeviceRegistry.submit().
    StateChange     - Event emitted on every successful state change.

Testing:
    device_ledger.testing.LedgerHost - In-process host that supplies the caller.

Example:
    from device_ledger import DeviceRegistry

    registry = DeviceRegistry(admin="deployer")
    registry.register_device(caller="thermostat", owner="alice")
    registry.change_state(caller="alice", device_id="thermostat", new_state=True)
    registry.get_state("thermostat")   # True
"""

__version__ = "0.3.0"

from device_ledger.config import RegistryConfig
from device_ledger.registry import (
    UNCLAIMED,
    AuditRecord,
    CallRequest,
    CallResult,
    ClaimedBy,
    DecisionKind,
    Device,
    DeviceDoesNotExistError,
    DeviceExistsError,
    DeviceRegistered,
    DeviceRegistry,
    ErrorCode,
    InMemoryStorage,
    InvalidArgumentError,
    InvariantViolationError,
    NotOwnerError,
    Operation,
    RegistryError,
    RegistryStorage,
    StateChange,
    Unclaimed,
)

__all__ = [
    "__version__",
    "DeviceRegistry",
    "RegistryConfig",
    "RegistryStorage",
    "InMemoryStorage",
    "Device",
    "Unclaimed",
    "ClaimedBy",
    "UNCLAIMED",
    "CallRequest",
    "CallResult",
    "DecisionKind",
    "Operation",
    "AuditRecord",
    "StateChange",
    "DeviceRegistered",
    "RegistryError",
    "ErrorCode",
    "DeviceExistsError",
    "DeviceDoesNotExistError",
    "NotOwnerError",
    "InvalidArgumentError",
    "InvariantViolationError",
]
