"""
Device State Models — Registry table records

The registry stores three tables:
    devices        device id -> Device
    owner index    (owner, ordinal) -> device id
    owner counts   owner -> number of indexed devices

A Device maps to a record with:
    - id: the principal that registered itself (unique, immutable)
    - state: boolean flag, writable only by the owner
    - ownership: Unclaimed or ClaimedBy(principal)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Union


# Opaque principal identifier supplied by the hosting environment
PrincipalId = str


@dataclass(frozen=True)
class Unclaimed:
    """
    Ownership case for a device nobody has claimed.

    Only reads are valid on an unclaimed device; every mutation
    is rejected because no caller can match a missing owner.
    """

    def permits(self, caller: PrincipalId) -> bool:
        return False

    @property
    def owner(self) -> PrincipalId | None:
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "unclaimed"}


@dataclass(frozen=True)
class ClaimedBy:
    """Ownership case for a device claimed by a principal."""
    principal: PrincipalId

    def permits(self, caller: PrincipalId) -> bool:
        return self.principal == caller

    @property
    def owner(self) -> PrincipalId | None:
        return self.principal

    def to_dict(self) -> dict[str, Any]:
        return {"kind": "claimed", "principal": self.principal}


Ownership = Union[Unclaimed, ClaimedBy]

UNCLAIMED = Unclaimed()


def ownership_from_dict(data: dict[str, Any]) -> Ownership:
    """Rebuild an Ownership value from its dict form."""
    if data.get("kind") == "claimed":
        return ClaimedBy(principal=data["principal"])
    return UNCLAIMED


@dataclass(frozen=True)
class Device:
    """
    One enrolled device.

    Records are immutable values; a state change stores a new
    record under the same id rather than mutating in place.
    """
    id: PrincipalId
    state: bool = False
    ownership: Ownership = field(default=UNCLAIMED)

    @property
    def owner(self) -> PrincipalId | None:
        return self.ownership.owner

    def with_state(self, new_state: bool) -> Device:
        return replace(self, state=new_state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state,
            "ownership": self.ownership.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Device:
        state = data.get("state", False)
        if not isinstance(state, bool):
            raise TypeError(f"Device state must be a bool, got {state!r}")
        return cls(
            id=data["id"],
            state=state,
            ownership=ownership_from_dict(data.get("ownership", {})),
        )
