"""Test GATT snapshot models."""

from __future__ import annotations

import dataclasses

import pytest

from gattsession.models import (
    CharacteristicDescriptor,
    CharacteristicProperties,
    ServiceDescriptor,
    ServiceSnapshot,
)

BATTERY_SERVICE = ServiceDescriptor(uuid="180f", handle=0x10)
BATTERY_LEVEL = CharacteristicDescriptor(uuid="2a19", handle=0x11, properties=("read", "notify"))
CUSTOM_SERVICE = ServiceDescriptor(uuid="f000aa00-0451-4000-b000-000000000000", handle=0x20)
DUPLICATE_LEVEL = CharacteristicDescriptor(uuid="2A19", handle=0x21, properties=("write",))


def _snapshot():
    return ServiceSnapshot.from_descriptors(
        "AA:BB:CC:DD:EE:FF",
        [(BATTERY_SERVICE, [BATTERY_LEVEL]), (CUSTOM_SERVICE, [DUPLICATE_LEVEL])],
    )


def test_properties_from_names():
    flags = CharacteristicProperties.from_names(["read", "Write-Without-Response", "broadcast"])

    assert flags == CharacteristicProperties.READ | CharacteristicProperties.WRITE_WITHOUT_RESPONSE
    assert not flags.can_notify
    assert CharacteristicProperties.from_names(["indicate"]).can_notify


def test_first_uuid_in_discovery_order_wins():
    snapshot = _snapshot()

    characteristic = snapshot.find("2a19")

    assert characteristic.handle == 0x11
    assert characteristic.service_uuid == "0000180f-0000-1000-8000-00805f9b34fb"
    assert len(list(snapshot.characteristics())) == 2


def test_lookup_helpers():
    snapshot = _snapshot()

    assert "00002a19-0000-1000-8000-00805f9b34fb" in snapshot
    assert "2a1a" not in snapshot
    assert len(snapshot) == 2
    service = snapshot.get_service("f000aa00-0451-4000-b000-000000000000")
    assert service.get_characteristic("2a19").can_write
    assert snapshot.get_service("1800") is None


def test_snapshots_are_immutable_and_numbered():
    first = _snapshot()
    second = _snapshot()

    assert second.generation > first.generation
    with pytest.raises(dataclasses.FrozenInstanceError):
        first.services = ()
