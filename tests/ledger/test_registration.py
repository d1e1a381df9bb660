"""
Registration Tests

Goal: A device registers itself once, names its owner, and the three
tables move together.

Required Tests:
    ✓ Registered device starts off, claimed by the named owner
    ✓ Second registration of the same id → DeviceExists
    ✓ Failed registration writes nothing
    ✓ Registration is silent unless enabled in config
"""

import pytest

from device_ledger import (
    ClaimedBy,
    DeviceExistsError,
    DeviceRegistered,
    DeviceRegistry,
    RegistryConfig,
)


class TestRegisterDevice:
    """Registration semantics."""

    def test_new_device_starts_false(self, registry: DeviceRegistry, owner_a: str):
        """New device has state False."""
        registry.register_device(caller="d1", owner=owner_a)

        assert registry.get_state("d1") is False

    def test_device_id_is_caller(self, registry: DeviceRegistry, owner_a: str):
        """The caller's own principal becomes the device id."""
        registry.register_device(caller="sensor-7", owner=owner_a)

        assert registry.owner_of("sensor-7") == ClaimedBy(owner_a)
        assert registry.devices_of(owner_a) == ["sensor-7"]

    def test_owner_is_not_registered_as_device(self, registry: DeviceRegistry, owner_a: str):
        """Naming an owner does not create a device for the owner."""
        registry.register_device(caller="d1", owner=owner_a)

        assert registry.device_count(owner_a) == 1
        assert registry.snapshot()["devices"].keys() == {"d1"}

    def test_device_may_own_itself(self, registry: DeviceRegistry):
        """A device naming itself as owner may change its own state."""
        registry.register_device(caller="d1", owner="d1")
        registry.change_state(caller="d1", device_id="d1", new_state=True)

        assert registry.get_state("d1") is True

    def test_admin_is_captured(self, registry: DeviceRegistry):
        """The deploying principal is kept as admin."""
        assert registry.admin == "deployer"


class TestDuplicateRegistration:
    """Registration is not idempotent."""

    def test_second_registration_fails(self, registry: DeviceRegistry, owner_a: str):
        """Registering the same id twice → DeviceExists."""
        registry.register_device(caller="d1", owner=owner_a)

        with pytest.raises(DeviceExistsError) as exc_info:
            registry.register_device(caller="d1", owner=owner_a)

        assert exc_info.value.device_id == "d1"
        assert registry.device_count(owner_a) == 1

    def test_reregistration_under_new_owner_fails(
        self, registry: DeviceRegistry, owner_a: str, owner_b: str
    ):
        """A registered device cannot re-register to a different owner."""
        registry.register_device(caller="d1", owner=owner_a)

        with pytest.raises(DeviceExistsError):
            registry.register_device(caller="d1", owner=owner_b)

        assert registry.owner_of("d1") == ClaimedBy(owner_a)
        assert registry.device_count(owner_b) == 0
        assert registry.devices_of(owner_b) == []

    def test_failed_registration_keeps_state(self, registry: DeviceRegistry, owner_a: str):
        """A rejected duplicate does not reset the device's state."""
        registry.register_device(caller="d1", owner=owner_a)
        registry.change_state(caller=owner_a, device_id="d1", new_state=True)
        before = registry.snapshot()

        with pytest.raises(DeviceExistsError):
            registry.register_device(caller="d1", owner=owner_a)

        assert registry.snapshot() == before


class TestRegistrationEvents:
    """Registration emits nothing unless configured."""

    def test_silent_by_default(self, registry: DeviceRegistry, owner_a: str):
        """No event on registration."""
        registry.register_device(caller="d1", owner=owner_a)

        assert registry.events.count() == 0

    def test_enabled_registration_event(self, owner_a: str):
        """emit_registration_events adds DeviceRegistered with the ordinal."""
        registry = DeviceRegistry(
            admin="deployer",
            config=RegistryConfig(read_policy="public", emit_registration_events=True),
        )

        registry.register_device(caller="d1", owner=owner_a)
        registry.register_device(caller="d2", owner=owner_a)

        assert registry.events.all() == [
            DeviceRegistered(device="d1", owner=owner_a, ordinal=0),
            DeviceRegistered(device="d2", owner=owner_a, ordinal=1),
        ]
