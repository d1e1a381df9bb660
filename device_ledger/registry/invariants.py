"""
Ownership Index Invariants

The registry keeps three tables that must agree with each other:
    Counting:
        - registry.index.count_matches
    Ordering:
        - registry.index.contiguous
    Referential:
        - registry.index.device_exists
        - registry.index.single_entry

Invariants check a storage handle as a whole. They are not needed for
normal operation (the registry writes all three tables in one batch);
they are run after each mutation when verification is enabled, and by
tests against arbitrary storage contents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .states import ClaimedBy, PrincipalId
from .storage import RegistryStorage


@dataclass(frozen=True)
class InvariantViolation:
    """Record of one broken invariant."""
    invariant_id: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"invariant_id": self.invariant_id, "message": self.message}


@runtime_checkable
class RegistryInvariant(Protocol):
    """
    Protocol for table invariants.

    Each invariant has a namespaced id, a description, and a check
    that returns an empty list when it holds.
    """

    @property
    def id(self) -> str:
        ...

    @property
    def description(self) -> str:
        ...

    def check(self, storage: RegistryStorage) -> list[InvariantViolation]:
        ...


class BaseInvariant(ABC):
    """Base class with the violation helper."""

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        ...

    @abstractmethod
    def check(self, storage: RegistryStorage) -> list[InvariantViolation]:
        ...

    def _violation(self, message: str) -> InvariantViolation:
        return InvariantViolation(invariant_id=self.id, message=message)


def _ordinals_by_owner(storage: RegistryStorage) -> dict[PrincipalId, list[int]]:
    ordinals: dict[PrincipalId, list[int]] = defaultdict(list)
    for (owner, ordinal), _ in storage.index_entries():
        ordinals[owner].append(ordinal)
    return ordinals


class CountMatchesIndexInvariant(BaseInvariant):
    """
    An owner's counter equals the number of index entries for that owner.

    Owners with index entries but no counter are reported too.
    """

    @property
    def id(self) -> str:
        return "registry.index.count_matches"

    @property
    def description(self) -> str:
        return "Owner counter equals the owner's index entry count"

    def check(self, storage: RegistryStorage) -> list[InvariantViolation]:
        ordinals = _ordinals_by_owner(storage)
        owners = set(ordinals) | set(storage.counted_owners())
        violations = []
        for owner in sorted(owners):
            counted = storage.owner_count(owner)
            indexed = len(ordinals.get(owner, []))
            if counted != indexed:
                violations.append(self._violation(
                    f"Owner {owner} has count {counted} but {indexed} index entries"
                ))
        return violations


class ContiguousOrdinalsInvariant(BaseInvariant):
    """Ordinals for each owner run 0..count-1 with no gaps."""

    @property
    def id(self) -> str:
        return "registry.index.contiguous"

    @property
    def description(self) -> str:
        return "Per-owner ordinals are contiguous from zero"

    def check(self, storage: RegistryStorage) -> list[InvariantViolation]:
        violations = []
        for owner, ordinals in sorted(_ordinals_by_owner(storage).items()):
            expected = list(range(len(ordinals)))
            if sorted(ordinals) != expected:
                violations.append(self._violation(
                    f"Owner {owner} has ordinals {sorted(ordinals)}, expected {expected}"
                ))
        return violations


class IndexedDeviceExistsInvariant(BaseInvariant):
    """Every index entry points at a device claimed by that owner."""

    @property
    def id(self) -> str:
        return "registry.index.device_exists"

    @property
    def description(self) -> str:
        return "Indexed devices exist and are claimed by the indexing owner"

    def check(self, storage: RegistryStorage) -> list[InvariantViolation]:
        violations = []
        for (owner, ordinal), device_id in storage.index_entries():
            device = storage.get_device(device_id)
            if device is None:
                violations.append(self._violation(
                    f"Index ({owner}, {ordinal}) points at missing device {device_id}"
                ))
            elif device.ownership != ClaimedBy(owner):
                violations.append(self._violation(
                    f"Index ({owner}, {ordinal}) points at {device_id}, "
                    f"which is owned by {device.owner}"
                ))
        return violations


class SingleIndexEntryInvariant(BaseInvariant):
    """A device id appears at most once in the index."""

    @property
    def id(self) -> str:
        return "registry.index.single_entry"

    @property
    def description(self) -> str:
        return "Each device is indexed at most once"

    def check(self, storage: RegistryStorage) -> list[InvariantViolation]:
        seen: dict[PrincipalId, tuple[PrincipalId, int]] = {}
        violations = []
        for key, device_id in storage.index_entries():
            if device_id in seen:
                violations.append(self._violation(
                    f"Device {device_id} indexed at both {seen[device_id]} and {key}"
                ))
            else:
                seen[device_id] = key
        return violations


REGISTRY_INVARIANTS: list[RegistryInvariant] = [
    CountMatchesIndexInvariant(),
    ContiguousOrdinalsInvariant(),
    IndexedDeviceExistsInvariant(),
    SingleIndexEntryInvariant(),
]


def check_invariants(
    storage: RegistryStorage,
    invariants: list[RegistryInvariant] | None = None,
) -> list[InvariantViolation]:
    """Run every invariant against a storage handle."""
    violations = []
    for invariant in invariants or REGISTRY_INVARIANTS:
        violations.extend(invariant.check(storage))
    return violations


def list_invariants() -> list[dict[str, Any]]:
    """List all registry invariants with their metadata."""
    return [
        {"id": inv.id, "description": inv.description}
        for inv in REGISTRY_INVARIANTS
    ]
