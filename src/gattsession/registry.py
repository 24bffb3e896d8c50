"""Registry of discovered and connected peripherals."""

from __future__ import annotations

import logging
import time

from .exceptions import InvalidStateError
from .models.device import Device, normalize_identity
from .models.enums import CONNECTION_TRANSITIONS, ConnectionState

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Peripherals keyed by identity, merged across scan cycles.

    Entries are never replaced by a later scan result: an upsert for a known
    identity refreshes the advertisement of the existing Device object and
    leaves its connection state alone. Connected devices survive
    begin_scan_cycle(), so a rescan never drops an active session.
    """

    def __init__(self) -> None:
        self._devices: dict[str, Device] = {}

    def upsert(self, device: Device) -> Device:
        """Insert a device or refresh the advertisement of a known one.

        Returns:
            The Device of record for this identity
        """
        existing = self._devices.get(device.identity)
        if existing is None:
            self._devices[device.identity] = device
            _LOGGER.debug("New device %s (%s)", device.identity, device.name)
            return device

        existing.advertisement = device.advertisement
        existing.last_seen = time.monotonic()
        return existing

    def lookup(self, identity: str) -> Device | None:
        return self._devices.get(normalize_identity(identity))

    def list_devices(self) -> list[Device]:
        return list(self._devices.values())

    def remove(self, identity: str) -> Device | None:
        return self._devices.pop(normalize_identity(identity), None)

    def begin_scan_cycle(self) -> None:
        """Drop every device that is neither connected nor connecting."""
        kept = {
            identity: device
            for identity, device in self._devices.items()
            if device.is_active
        }
        dropped = len(self._devices) - len(kept)
        self._devices = kept
        if dropped:
            _LOGGER.debug("Scan cycle: dropped %d stale device(s), kept %d", dropped, len(kept))

    def mark_connecting(self, identity: str) -> Device:
        return self._transition(identity, ConnectionState.CONNECTING)

    def mark_connected(self, identity: str) -> Device:
        return self._transition(identity, ConnectionState.CONNECTED)

    def mark_disconnecting(self, identity: str) -> Device:
        return self._transition(identity, ConnectionState.DISCONNECTING)

    def mark_disconnected(self, identity: str) -> Device:
        """Mark a device disconnected.

        Always allowed; a device that is already disconnected is left as is.
        """
        device = self._require(identity)
        if device.state != ConnectionState.DISCONNECTED:
            self._transition(identity, ConnectionState.DISCONNECTED)
        return device

    def _require(self, identity: str) -> Device:
        device = self.lookup(identity)
        if device is None:
            # Connecting to an address that was never scanned
            device = self.upsert(Device(identity=identity))
        return device

    def _transition(self, identity: str, new_state: ConnectionState) -> Device:
        device = self._require(identity)
        if new_state not in CONNECTION_TRANSITIONS[device.state]:
            raise InvalidStateError(
                f"Invalid state transition for {device.identity}: "
                f"{device.state.value} -> {new_state.value}"
            )
        _LOGGER.debug(
            "State transition %s: %s -> %s", device.identity, device.state.value, new_state.value
        )
        device.state = new_state
        return device

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, identity: object) -> bool:
        return isinstance(identity, str) and normalize_identity(identity) in self._devices
