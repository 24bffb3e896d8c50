"""Test device registry merge semantics."""

import pytest

from gattsession import ConnectionState, Device, DeviceRegistry
from gattsession.exceptions import InvalidStateError
from gattsession.models import Advertisement


class TestUpsert:
    """Test insert and merge behaviour."""

    def test_upsert_inserts_new_device(self):
        registry = DeviceRegistry()

        device = registry.upsert(Device("aa:bb:cc:dd:ee:ff", Advertisement(name="Tag", rssi=-60)))

        assert registry.lookup("AA:BB:CC:DD:EE:FF") is device
        assert device.state == ConnectionState.DISCONNECTED
        assert len(registry) == 1

    def test_upsert_connected_device_keeps_state_and_object(self):
        """A scan result for a connected device only refreshes its advertisement."""
        registry = DeviceRegistry()
        original = registry.upsert(Device("AA:BB:CC:DD:EE:FF", Advertisement(name="Old", rssi=-80)))
        registry.mark_connecting(original.identity)
        registry.mark_connected(original.identity)

        merged = registry.upsert(
            Device("AA:BB:CC:DD:EE:FF", Advertisement(name="New", rssi=-40, service_uuids=("aa00",)))
        )

        assert merged is original
        assert merged.state == ConnectionState.CONNECTED
        assert merged.name == "New"
        assert merged.rssi == -40
        assert merged.advertisement.service_uuids == ("aa00",)
        assert len(registry) == 1

    def test_list_devices_in_insertion_order(self):
        registry = DeviceRegistry()
        registry.upsert(Device("11:11:11:11:11:11"))
        registry.upsert(Device("22:22:22:22:22:22"))

        assert [d.identity for d in registry.list_devices()] == [
            "11:11:11:11:11:11",
            "22:22:22:22:22:22",
        ]


class TestScanCycle:
    """Test pruning between scan cycles."""

    def test_begin_scan_cycle_keeps_connected_and_connecting(self):
        registry = DeviceRegistry()
        registry.upsert(Device("11:11:11:11:11:11"))
        registry.upsert(Device("22:22:22:22:22:22"))
        registry.upsert(Device("33:33:33:33:33:33"))
        registry.mark_connecting("22:22:22:22:22:22")
        registry.mark_connecting("33:33:33:33:33:33")
        registry.mark_connected("33:33:33:33:33:33")

        registry.begin_scan_cycle()

        assert "11:11:11:11:11:11" not in registry
        assert "22:22:22:22:22:22" in registry
        assert "33:33:33:33:33:33" in registry


class TestTransitions:
    """Test connection state transitions."""

    def test_full_lifecycle(self):
        registry = DeviceRegistry()
        registry.upsert(Device("AA:BB:CC:DD:EE:FF"))

        registry.mark_connecting("AA:BB:CC:DD:EE:FF")
        registry.mark_connected("AA:BB:CC:DD:EE:FF")
        registry.mark_disconnecting("AA:BB:CC:DD:EE:FF")
        device = registry.mark_disconnected("AA:BB:CC:DD:EE:FF")

        assert device.state == ConnectionState.DISCONNECTED

    def test_invalid_transition_raises(self):
        registry = DeviceRegistry()
        registry.upsert(Device("AA:BB:CC:DD:EE:FF"))

        with pytest.raises(InvalidStateError, match="disconnected -> connected"):
            registry.mark_connected("AA:BB:CC:DD:EE:FF")

    def test_mark_disconnected_is_idempotent(self):
        registry = DeviceRegistry()
        registry.upsert(Device("AA:BB:CC:DD:EE:FF"))

        device = registry.mark_disconnected("AA:BB:CC:DD:EE:FF")

        assert device.state == ConnectionState.DISCONNECTED

    def test_transition_on_unknown_identity_registers_device(self):
        registry = DeviceRegistry()

        device = registry.mark_connecting("aa:bb:cc:dd:ee:ff")

        assert registry.lookup("AA:BB:CC:DD:EE:FF") is device
        assert device.state == ConnectionState.CONNECTING


class TestDevice:
    """Test Device model."""

    def test_identity_is_normalized_and_immutable(self):
        device = Device(" aa:bb:cc:dd:ee:ff ")

        assert device.identity == "AA:BB:CC:DD:EE:FF"
        with pytest.raises(AttributeError):
            device.identity = "11:22:33:44:55:66"

    def test_empty_identity_rejected(self):
        with pytest.raises(ValueError):
            Device("  ")
