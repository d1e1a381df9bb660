"""
Registry Storage - Explicit storage handle for the registry tables.

The registry never keeps its tables in module state. It is handed a
storage object and reads/writes only through it, so each harness or
host can build isolated instances.

Writes are staged in a StorageBatch and applied together when the
batch block exits without an exception:

    with storage.batch() as batch:
        batch.put_device(device)
        batch.put_index(owner, ordinal, device.id)
        batch.put_count(owner, ordinal + 1)

An exception inside the block discards every staged write. A check
passed to batch() sees the tables as they would be after the batch;
if it raises, the batch is discarded as well.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from .states import Device, PrincipalId

logger = logging.getLogger(__name__)


IndexKey = tuple[PrincipalId, int]


@dataclass
class StorageBatch:
    """Staged writes for one atomic unit."""
    devices: dict[PrincipalId, Device] = field(default_factory=dict)
    index: dict[IndexKey, PrincipalId] = field(default_factory=dict)
    counts: dict[PrincipalId, int] = field(default_factory=dict)

    def put_device(self, device: Device) -> None:
        self.devices[device.id] = device

    def put_index(self, owner: PrincipalId, ordinal: int, device_id: PrincipalId) -> None:
        self.index[(owner, ordinal)] = device_id

    def put_count(self, owner: PrincipalId, count: int) -> None:
        self.counts[owner] = count

    @property
    def empty(self) -> bool:
        return not (self.devices or self.index or self.counts)


class RegistryStorage(ABC):
    """Abstract base for registry storage handles."""

    @abstractmethod
    def get_device(self, device_id: PrincipalId) -> Device | None:
        """Device record or None."""
        ...

    @abstractmethod
    def device_ids(self) -> list[PrincipalId]:
        """All device ids in insertion order."""
        ...

    @abstractmethod
    def owner_count(self, owner: PrincipalId) -> int:
        """Counter value, 0 for owners with no entry."""
        ...

    @abstractmethod
    def counted_owners(self) -> list[PrincipalId]:
        """Owners that have a counter entry."""
        ...

    @abstractmethod
    def indexed_device(self, owner: PrincipalId, ordinal: int) -> PrincipalId | None:
        """Device id stored at (owner, ordinal), or None."""
        ...

    @abstractmethod
    def index_entries(self) -> Iterator[tuple[IndexKey, PrincipalId]]:
        """Every ((owner, ordinal), device_id) entry."""
        ...

    @abstractmethod
    def _apply(self, batch: StorageBatch) -> None:
        """Apply all writes of a batch. Must not fail halfway."""
        ...

    def has_device(self, device_id: PrincipalId) -> bool:
        return self.get_device(device_id) is not None

    def batch(self, check: BatchCheck | None = None) -> _BatchContext:
        """Open an atomic write batch, optionally checked before it applies."""
        return _BatchContext(self, check)


BatchCheck = Callable[[RegistryStorage], None]


class StagedStorage(RegistryStorage):
    """
    Read-only view of a storage handle with a batch laid over it.

    Reads return staged values first, then the underlying tables.
    """

    def __init__(self, base: RegistryStorage, batch: StorageBatch):
        self._base = base
        self._batch = batch

    def get_device(self, device_id: PrincipalId) -> Device | None:
        if device_id in self._batch.devices:
            return self._batch.devices[device_id]
        return self._base.get_device(device_id)

    def device_ids(self) -> list[PrincipalId]:
        ids = self._base.device_ids()
        return ids + [d for d in self._batch.devices if d not in ids]

    def owner_count(self, owner: PrincipalId) -> int:
        if owner in self._batch.counts:
            return self._batch.counts[owner]
        return self._base.owner_count(owner)

    def counted_owners(self) -> list[PrincipalId]:
        owners = self._base.counted_owners()
        return owners + [o for o in self._batch.counts if o not in owners]

    def indexed_device(self, owner: PrincipalId, ordinal: int) -> PrincipalId | None:
        if (owner, ordinal) in self._batch.index:
            return self._batch.index[(owner, ordinal)]
        return self._base.indexed_device(owner, ordinal)

    def index_entries(self) -> Iterator[tuple[IndexKey, PrincipalId]]:
        merged = dict(self._base.index_entries())
        merged.update(self._batch.index)
        return iter(list(merged.items()))

    def _apply(self, batch: StorageBatch) -> None:
        raise TypeError("StagedStorage is read-only")


class _BatchContext:
    def __init__(self, storage: RegistryStorage, check: BatchCheck | None = None):
        self._storage = storage
        self._check = check
        self._batch = StorageBatch()

    def __enter__(self) -> StorageBatch:
        return self._batch

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.debug("Discarding storage batch after %s", exc_type.__name__)
            return False
        if self._batch.empty:
            return False
        if self._check is not None:
            # Raising here discards the batch
            self._check(StagedStorage(self._storage, self._batch))
        self._storage._apply(self._batch)
        return False


class InMemoryStorage(RegistryStorage):
    """
    Dict-backed storage.

    Used for tests, development, and hosts that persist the tables
    themselves between calls.
    """

    def __init__(self) -> None:
        self._devices: dict[PrincipalId, Device] = {}
        self._index: dict[IndexKey, PrincipalId] = {}
        self._counts: dict[PrincipalId, int] = {}

    def get_device(self, device_id: PrincipalId) -> Device | None:
        return self._devices.get(device_id)

    def device_ids(self) -> list[PrincipalId]:
        return list(self._devices)

    def owner_count(self, owner: PrincipalId) -> int:
        return self._counts.get(owner, 0)

    def counted_owners(self) -> list[PrincipalId]:
        return list(self._counts)

    def indexed_device(self, owner: PrincipalId, ordinal: int) -> PrincipalId | None:
        return self._index.get((owner, ordinal))

    def index_entries(self) -> Iterator[tuple[IndexKey, PrincipalId]]:
        return iter(list(self._index.items()))

    def _apply(self, batch: StorageBatch) -> None:
        self._devices.update(batch.devices)
        self._index.update(batch.index)
        self._counts.update(batch.counts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "devices": {k: d.to_dict() for k, d in self._devices.items()},
            "index": [
                {"owner": owner, "ordinal": ordinal, "device": device_id}
                for (owner, ordinal), device_id in self._index.items()
            ],
            "counts": dict(self._counts),
        }
