"""
Storage Handle Tests

Goal: Writes land together or not at all, and each registry instance
works only against the handle it was given.
"""

import pytest

from device_ledger import ClaimedBy, Device, DeviceRegistry, InMemoryStorage
from device_ledger.registry import StagedStorage, StorageBatch


class TestStorageBatch:
    """Atomic batches."""

    def test_batch_applies_on_exit(self):
        storage = InMemoryStorage()

        with storage.batch() as batch:
            batch.put_device(Device(id="d1", ownership=ClaimedBy("alice")))
            batch.put_index("alice", 0, "d1")
            batch.put_count("alice", 1)
            assert storage.get_device("d1") is None  # Not visible until exit

        assert storage.get_device("d1") == Device(id="d1", ownership=ClaimedBy("alice"))
        assert storage.indexed_device("alice", 0) == "d1"
        assert storage.owner_count("alice") == 1

    def test_batch_discarded_on_error(self):
        """An exception inside the block discards every staged write."""
        storage = InMemoryStorage()

        with pytest.raises(RuntimeError):
            with storage.batch() as batch:
                batch.put_device(Device(id="d1", ownership=ClaimedBy("alice")))
                batch.put_index("alice", 0, "d1")
                raise RuntimeError("host aborted")

        assert storage.device_ids() == []
        assert list(storage.index_entries()) == []
        assert storage.owner_count("alice") == 0

    def test_empty_batch(self):
        storage = InMemoryStorage()

        with storage.batch() as batch:
            assert batch.empty

        assert storage.to_dict() == {"devices": {}, "index": [], "counts": {}}

    def test_check_sees_staged_tables(self):
        """The check reads staged writes laid over the stored tables."""
        storage = InMemoryStorage()
        with storage.batch() as batch:
            batch.put_count("alice", 1)
        seen = []

        def check(staged):
            assert isinstance(staged, StagedStorage)
            seen.append(
                (staged.get_device("d1"), staged.owner_count("alice"), staged.owner_count("bob"))
            )

        with storage.batch(check=check) as batch:
            batch.put_device(Device(id="d1", ownership=ClaimedBy("bob")))
            batch.put_count("bob", 1)

        assert seen == [(Device(id="d1", ownership=ClaimedBy("bob")), 1, 1)]
        assert storage.owner_count("bob") == 1

    def test_failing_check_discards_batch(self):
        storage = InMemoryStorage()

        def check(staged):
            raise ValueError("rejected")

        with pytest.raises(ValueError):
            with storage.batch(check=check) as batch:
                batch.put_device(Device(id="d1", ownership=ClaimedBy("alice")))
                batch.put_count("alice", 1)

        assert storage.device_ids() == []
        assert storage.owner_count("alice") == 0

    def test_staged_view_is_read_only(self):
        staged = StagedStorage(InMemoryStorage(), StorageBatch())

        with pytest.raises(TypeError):
            staged._apply(StorageBatch())


class TestIsolation:
    """Registries never share tables."""

    def test_separate_storage(self):
        """Two registries with their own handles are independent."""
        first = DeviceRegistry(admin="deployer")
        second = DeviceRegistry(admin="deployer")

        first.register_device(caller="d1", owner="alice")

        assert first.device_count("alice") == 1
        assert second.device_count("alice") == 0

    def test_registry_writes_to_given_handle(self, storage: InMemoryStorage, registry: DeviceRegistry):
        registry.register_device(caller="d1", owner="alice")

        assert storage.to_dict() == {
            "devices": {
                "d1": {
                    "id": "d1",
                    "state": False,
                    "ownership": {"kind": "claimed", "principal": "alice"},
                },
            },
            "index": [{"owner": "alice", "ordinal": 0, "device": "d1"}],
            "counts": {"alice": 1},
        }

    def test_device_roundtrip_dict(self):
        device = Device(id="d1", state=True, ownership=ClaimedBy("alice"))

        assert Device.from_dict(device.to_dict()) == device
