"""
Device Registry — Single authority for device ownership and state.

Every mutating call comes from a caller principal supplied by the
hosting ledger. The registry validates first and writes second, so a
rejected call leaves all tables unchanged.

Architecture:
    1. Host submits a CallRequest (or calls an operation directly)
    2. Registry validates against the current tables
    3. Writes go through one storage batch (device, index, counter),
       checked against the invariants before it is applied when enabled
    4. Events are emitted after the batch is applied
    5. An AuditRecord is kept for every submitted call

Replaying the accepted audit records into a fresh registry rebuilds
identical tables.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ..config import RegistryConfig
from .calls import CallRequest, CallResult, DecisionKind, Operation
from .errors import (
    DeviceDoesNotExistError,
    DeviceExistsError,
    InvalidArgumentError,
    InvariantViolationError,
    NotOwnerError,
)
from .events import DeviceRegistered, EventLog, StateChange
from .invariants import check_invariants
from .states import ClaimedBy, Device, Ownership, PrincipalId
from .storage import InMemoryStorage, RegistryStorage

logger = logging.getLogger(__name__)

# Failures that reject a call without touching the tables
VALIDATION_ERRORS = (
    DeviceExistsError,
    DeviceDoesNotExistError,
    NotOwnerError,
    InvalidArgumentError,
)


@dataclass(frozen=True)
class AuditRecord:
    """
    Record of one submitted call and its decision.

    Sequence numbers start at 0 and have no gaps.
    """
    sequence: int
    request: CallRequest
    decision: DecisionKind
    error: str | None = None
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.decision == DecisionKind.ACCEPTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "request": self.request.to_dict(),
            "decision": self.decision.value,
            "error": self.error,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditRecord:
        return cls(
            sequence=data["sequence"],
            request=CallRequest.from_dict(data["request"]),
            decision=DecisionKind(data["decision"]),
            error=data.get("error"),
            message=data.get("message", ""),
        )


class AuditLog:
    """Append-only store of audit records."""

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []

    def record(self, result: CallResult) -> AuditRecord:
        entry = AuditRecord(
            sequence=len(self._records),
            request=result.request,
            decision=result.kind,
            error=result.error.value if result.error else None,
            message=result.message,
        )
        self._records.append(entry)
        return entry

    def query(
        self,
        caller: PrincipalId | None = None,
        operation: Operation | None = None,
        decision: DecisionKind | None = None,
    ) -> list[AuditRecord]:
        results = self._records
        if caller is not None:
            results = [r for r in results if r.request.caller == caller]
        if operation is not None:
            results = [r for r in results if r.request.operation == operation]
        if decision is not None:
            results = [r for r in results if r.decision == decision]
        return list(results)

    def all(self) -> list[AuditRecord]:
        return list(self._records)

    def count(self) -> int:
        return len(self._records)


class DeviceRegistry:
    """
    The device registry.

    Usage:
        registry = DeviceRegistry(admin="deployer")

        # A device registers itself and names its owner
        registry.register_device(caller="device_1", owner="alice")

        # Only the owner may write state
        registry.change_state(caller="alice", device_id="device_1", new_state=True)

        registry.get_state("device_1")     # True
        registry.device_count("alice")     # 1

    Hosts that want result values instead of exceptions use submit():

        result = registry.submit(CallRequest.change_state("bob", "device_1", False))
        result.ok        # False
        result.error     # ErrorCode.NOT_OWNER
    """

    def __init__(
        self,
        admin: PrincipalId,
        storage: RegistryStorage | None = None,
        config: RegistryConfig | None = None,
    ) -> None:
        self.config = config or RegistryConfig()
        self._admin = admin
        self._storage = storage if storage is not None else InMemoryStorage()
        self._events = EventLog()
        self._audit = AuditLog()
        self._lock = threading.RLock()

    @property
    def admin(self) -> PrincipalId:
        """Principal that deployed this registry."""
        return self._admin

    @property
    def events(self) -> EventLog:
        return self._events

    @property
    def audit_log(self) -> AuditLog:
        return self._audit

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register_device(self, caller: PrincipalId, owner: PrincipalId) -> None:
        """
        Register the calling principal as a device claimed by owner.

        Raises:
            DeviceExistsError: caller is already a registered device.
        """
        with self._lock:
            if self._storage.has_device(caller):
                raise DeviceExistsError(caller, details={"owner": owner})

            ordinal = self._storage.owner_count(owner)
            with self._storage.batch(check=self._verify) as batch:
                batch.put_device(Device(id=caller, state=False, ownership=ClaimedBy(owner)))
                batch.put_index(owner, ordinal, caller)
                batch.put_count(owner, ordinal + 1)

            logger.debug("Registered device %s for owner %s at ordinal %d", caller, owner, ordinal)

            if self.config.emit_registration_events:
                self._events.emit(DeviceRegistered(device=caller, owner=owner, ordinal=ordinal))

    def change_state(
        self,
        caller: PrincipalId,
        device_id: PrincipalId,
        new_state: bool,
    ) -> None:
        """
        Overwrite a device's state and emit StateChange.

        Writing the current value again still succeeds and still emits.

        Raises:
            DeviceDoesNotExistError: no device under device_id.
            NotOwnerError: caller is not the device's owner.
            InvalidArgumentError: new_state is not a bool.
        """
        with self._lock:
            if not isinstance(new_state, bool):
                raise InvalidArgumentError("new_state", new_state, expected="a bool")
            device = self._require_device(device_id)
            if not device.ownership.permits(caller):
                raise NotOwnerError(device_id, caller, current_owner=device.owner)

            with self._storage.batch(check=self._verify) as batch:
                batch.put_device(device.with_state(new_state))

            logger.debug("Device %s state set to %s by %s", device_id, new_state, caller)
            self._events.emit(StateChange(device=device_id, new_state=new_state))

    def get_state(self, device_id: PrincipalId, caller: PrincipalId | None = None) -> bool:
        """
        Read a device's state.

        With the "public" read policy any caller (or none) may read.
        With the "owner" policy the caller must be the device's owner.

        Raises:
            DeviceDoesNotExistError: no device under device_id.
            NotOwnerError: owner-only reads and caller is not the owner.
        """
        with self._lock:
            device = self._require_device(device_id)
            if self.config.read_policy == "owner" and (
                caller is None or not device.ownership.permits(caller)
            ):
                raise NotOwnerError(device_id, caller, current_owner=device.owner)
            return device.state

    def device_count(self, owner: PrincipalId) -> int:
        """Number of devices registered with owner; 0 if none."""
        with self._lock:
            return self._storage.owner_count(owner)

    # ------------------------------------------------------------------
    # Index reads
    # ------------------------------------------------------------------

    def device_at(self, owner: PrincipalId, ordinal: int) -> PrincipalId | None:
        """Device registered as owner's ordinal-th device, or None."""
        with self._lock:
            return self._storage.indexed_device(owner, ordinal)

    def devices_of(self, owner: PrincipalId) -> list[PrincipalId]:
        """Owner's devices in registration order."""
        with self._lock:
            return [
                self._storage.indexed_device(owner, ordinal)
                for ordinal in range(self._storage.owner_count(owner))
            ]

    def owner_of(self, device_id: PrincipalId) -> Ownership:
        """Ownership of a device. Raises DeviceDoesNotExistError if absent."""
        with self._lock:
            return self._require_device(device_id).ownership

    # ------------------------------------------------------------------
    # Ledger dispatch
    # ------------------------------------------------------------------

    def submit(self, request: CallRequest) -> CallResult:
        """
        Execute a call on behalf of request.caller.

        Validation failures come back as rejected results instead of
        exceptions. Every call is recorded in the audit log.
        """
        handler = self._handlers()[request.operation]
        with self._lock:
            try:
                value = handler(request)
            except VALIDATION_ERRORS as e:
                result = CallResult.from_error(request, e)
                logger.info(
                    "Rejected %s from %s: %s",
                    request.operation.value, request.caller, e.message,
                )
            else:
                result = CallResult.accepted(request, value)

            if self.config.audit_enabled:
                result.sequence = self._audit.record(result).sequence
            return result

    def _handlers(self) -> dict[Operation, Callable[[CallRequest], Any]]:
        return {
            Operation.REGISTER_DEVICE: lambda r: self.register_device(
                r.caller, r.args["owner"]
            ),
            Operation.CHANGE_STATE: lambda r: self.change_state(
                r.caller, r.args["device_id"], r.args["new_state"]
            ),
            Operation.GET_STATE: lambda r: self.get_state(
                r.args["device_id"], caller=r.caller
            ),
            Operation.DEVICE_COUNT: lambda r: self.device_count(r.args["owner"]),
        }

    def replay(
        self,
        records: Iterable[AuditRecord | dict[str, Any]],
        storage: RegistryStorage | None = None,
    ) -> DeviceRegistry:
        """
        Rebuild a registry from audit records.

        Accepted mutating calls are re-submitted in sequence order to a
        fresh registry with the same admin and config. Rejected calls
        and reads are skipped; they never changed any table.
        """
        entries = [
            r if isinstance(r, AuditRecord) else AuditRecord.from_dict(r)
            for r in records
        ]
        replayed = DeviceRegistry(admin=self._admin, storage=storage, config=self.config)
        for entry in sorted(entries, key=lambda r: r.sequence):
            if entry.accepted and entry.request.operation.mutating:
                replayed.submit(entry.request)
        return replayed

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """
        Plain-dict view of every table.

        Used for debugging and for comparing registries; it is not a
        persistence format.
        """
        with self._lock:
            devices = {}
            for device_id in sorted(self._storage.device_ids()):
                devices[device_id] = self._storage.get_device(device_id).to_dict()
            index = sorted(
                [owner, ordinal, device_id]
                for (owner, ordinal), device_id in self._storage.index_entries()
            )
            counts = {
                owner: self._storage.owner_count(owner)
                for owner in sorted(self._storage.counted_owners())
            }
            return {
                "admin": self._admin,
                "devices": devices,
                "index": index,
                "counts": counts,
                "event_count": self._events.count(),
                "audit_count": self._audit.count(),
            }

    def _require_device(self, device_id: PrincipalId) -> Device:
        device = self._storage.get_device(device_id)
        if device is None:
            raise DeviceDoesNotExistError(device_id)
        return device

    def _verify(self, staged: RegistryStorage) -> None:
        """Check the tables as they would be after a batch is applied."""
        if not self.config.verify_invariants:
            return
        violations = check_invariants(staged)
        if violations:
            first = violations[0]
            logger.error("Registry invariant violated: %s", first.message)
            raise InvariantViolationError(
                first.invariant_id,
                first.message,
                details={"violations": [v.to_dict() for v in violations]},
            )
