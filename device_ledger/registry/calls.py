"""
Registry Calls - Ledger-style request/result envelopes.

A hosting ledger submits one CallRequest at a time:
    {
        operation: Operation,   # which registry operation
        caller: PrincipalId,    # implicit caller, supplied by the host
        args: {...}             # explicit arguments
    }

and gets back a CallResult:
    - Accepted: {kind: "accepted", value}
    - Rejected: {kind: "rejected", error}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import ErrorCode, RegistryError
from .states import PrincipalId


class Operation(Enum):
    """Registry operations reachable through submit()."""
    REGISTER_DEVICE = "register_device"
    CHANGE_STATE = "change_state"
    GET_STATE = "get_state"
    DEVICE_COUNT = "device_count"

    @property
    def mutating(self) -> bool:
        return self in (Operation.REGISTER_DEVICE, Operation.CHANGE_STATE)


@dataclass(frozen=True)
class CallRequest:
    """One call submitted by the host on behalf of a caller."""
    operation: Operation
    caller: PrincipalId
    args: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Own copy, so later edits to the caller's dict cannot reach the audit log
        object.__setattr__(self, "args", dict(self.args))

    @classmethod
    def register_device(cls, caller: PrincipalId, owner: PrincipalId) -> CallRequest:
        return cls(Operation.REGISTER_DEVICE, caller, {"owner": owner})

    @classmethod
    def change_state(
        cls, caller: PrincipalId, device_id: PrincipalId, new_state: bool
    ) -> CallRequest:
        return cls(
            Operation.CHANGE_STATE,
            caller,
            {"device_id": device_id, "new_state": new_state},
        )

    @classmethod
    def get_state(cls, caller: PrincipalId, device_id: PrincipalId) -> CallRequest:
        return cls(Operation.GET_STATE, caller, {"device_id": device_id})

    @classmethod
    def device_count(cls, caller: PrincipalId, owner: PrincipalId) -> CallRequest:
        return cls(Operation.DEVICE_COUNT, caller, {"owner": owner})

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.value,
            "caller": self.caller,
            "args": dict(self.args),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CallRequest:
        return cls(
            operation=Operation(data["operation"]),
            caller=data["caller"],
            args=dict(data.get("args", {})),
        )


class DecisionKind(Enum):
    """Call outcomes."""
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class CallResult:
    """Result of a submitted call."""
    kind: DecisionKind
    request: CallRequest

    # On acceptance
    value: Any = None

    # On rejection
    error: ErrorCode | None = None
    message: str = ""

    # Position in the audit log, when audited
    sequence: int | None = None

    @property
    def ok(self) -> bool:
        return self.kind == DecisionKind.ACCEPTED

    @property
    def rejected(self) -> bool:
        return self.kind == DecisionKind.REJECTED

    def unwrap(self) -> Any:
        """Return the value, or raise if the call was rejected."""
        if self.ok:
            return self.value
        raise ValueError(f"Call rejected with {self.error.value}: {self.message}")

    @classmethod
    def accepted(cls, request: CallRequest, value: Any = None) -> CallResult:
        return cls(kind=DecisionKind.ACCEPTED, request=request, value=value)

    @classmethod
    def from_error(cls, request: CallRequest, error: RegistryError) -> CallResult:
        return cls(
            kind=DecisionKind.REJECTED,
            request=request,
            error=error.code,
            message=error.message,
        )
