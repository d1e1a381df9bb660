"""
Device Registry Module

Tracks ownership of uniquely identified devices, records a boolean
state per device, and lets only the recorded owner change it.

The registry runs as the state-transition logic of a replicated
ledger:
- Deterministic: same calls in the same order give the same tables
- All-or-nothing: a rejected call writes nothing
- Auditable: every state change emits a StateChange event and every
  submitted call leaves an AuditRecord

Tables (behind an explicit storage handle):
    devices        device id -> Device(state, ownership)
    owner index    (owner, ordinal) -> device id
    owner counts   owner -> number of devices
"""

from .calls import CallRequest, CallResult, DecisionKind, Operation
from .errors import (
    DeviceDoesNotExistError,
    DeviceExistsError,
    ErrorCode,
    InvalidArgumentError,
    InvariantViolationError,
    NotOwnerError,
    RegistryError,
)
from .events import DeviceRegistered, EventLog, RegistryEvent, StateChange
from .invariants import (
    REGISTRY_INVARIANTS,
    ContiguousOrdinalsInvariant,
    CountMatchesIndexInvariant,
    IndexedDeviceExistsInvariant,
    InvariantViolation,
    RegistryInvariant,
    SingleIndexEntryInvariant,
    check_invariants,
    list_invariants,
)
from .registry import AuditLog, AuditRecord, DeviceRegistry
from .states import UNCLAIMED, ClaimedBy, Device, Ownership, PrincipalId, Unclaimed
from .storage import InMemoryStorage, RegistryStorage, StagedStorage, StorageBatch

__all__ = [
    # Registry
    "DeviceRegistry",
    "AuditLog",
    "AuditRecord",
    # Data model
    "Device",
    "Ownership",
    "Unclaimed",
    "ClaimedBy",
    "UNCLAIMED",
    "PrincipalId",
    # Storage
    "RegistryStorage",
    "InMemoryStorage",
    "StorageBatch",
    "StagedStorage",
    # Calls
    "CallRequest",
    "CallResult",
    "DecisionKind",
    "Operation",
    # Events
    "StateChange",
    "DeviceRegistered",
    "RegistryEvent",
    "EventLog",
    # Invariants
    "RegistryInvariant",
    "InvariantViolation",
    "CountMatchesIndexInvariant",
    "ContiguousOrdinalsInvariant",
    "IndexedDeviceExistsInvariant",
    "SingleIndexEntryInvariant",
    "REGISTRY_INVARIANTS",
    "check_invariants",
    "list_invariants",
    # Errors
    "RegistryError",
    "ErrorCode",
    "DeviceExistsError",
    "DeviceDoesNotExistError",
    "NotOwnerError",
    "InvalidArgumentError",
    "InvariantViolationError",
]
