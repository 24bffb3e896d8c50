"""Per-device cache of discovered GATT services."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .exceptions import BLETimeoutError, CharacteristicNotFoundError
from .models.device import normalize_identity
from .models.gatt import (
    Characteristic,
    CharacteristicDescriptor,
    ServiceDescriptor,
    ServiceSnapshot,
)
from .protocol.uuids import normalize_uuid
from .transport.base import BaseTransport

_LOGGER = logging.getLogger(__name__)

RefreshListener = Callable[[str, ServiceSnapshot], None]


class GattCache:
    """Holds one ServiceSnapshot per device.

    discover() always runs a full discovery over the transport and swaps in
    the new snapshot only once it is complete. Refresh listeners run
    synchronously before the swap, so nothing can observe the new snapshot
    before they have processed it. Discovery for one device is serialized
    by that device's lock; a failed, timed out or cancelled discovery
    leaves the previous snapshot in place.
    """

    def __init__(self, transport: BaseTransport, timeout: float | None = None):
        """Initialize cache.

        Args:
            transport: Transport used for discovery
            timeout: Default discovery timeout in seconds (None: unbounded)
        """
        self._transport = transport
        self.timeout = timeout

        self._snapshots: dict[str, ServiceSnapshot] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._refresh_listeners: list[RefreshListener] = []

    def add_refresh_listener(self, listener: RefreshListener) -> None:
        """Register a callback run with (identity, new_snapshot) before each publish."""
        self._refresh_listeners.append(listener)

    def device_lock(self, identity: str) -> asyncio.Lock:
        """Lock serializing discovery and subscription changes for one device."""
        identity = normalize_identity(identity)
        lock = self._locks.get(identity)
        if lock is None:
            lock = self._locks[identity] = asyncio.Lock()
        return lock

    def snapshot(self, identity: str) -> ServiceSnapshot | None:
        """Return the current snapshot without touching the transport."""
        return self._snapshots.get(normalize_identity(identity))

    async def discover(self, identity: str, timeout: float | None = None) -> ServiceSnapshot:
        """Run a full service and characteristic discovery.

        Args:
            identity: Connected device identity
            timeout: Bound in seconds (default: cache timeout)

        Returns:
            The newly published snapshot

        Raises:
            TransportError: If any discovery call fails
            BLETimeoutError: If discovery exceeds the timeout
        """
        identity = normalize_identity(identity)
        timeout = self.timeout if timeout is None else timeout

        async with self.device_lock(identity):
            try:
                discovered = await asyncio.wait_for(self._run_discovery(identity), timeout)
            except asyncio.TimeoutError as e:
                _LOGGER.warning("Discovery on %s timed out, keeping previous snapshot", identity)
                raise BLETimeoutError(f"Discovery on {identity} timed out after {timeout}s") from e

            snapshot = ServiceSnapshot.from_descriptors(identity, discovered)
            for listener in self._refresh_listeners:
                listener(identity, snapshot)
            self._snapshots[identity] = snapshot

        _LOGGER.info(
            "Discovered %d service(s) on %s (generation %d)",
            len(snapshot),
            identity,
            snapshot.generation,
        )
        return snapshot

    async def _run_discovery(
            self,
            identity: str,
    ) -> list[tuple[ServiceDescriptor, list[CharacteristicDescriptor]]]:
        services = await self._transport.discover_services(identity)
        discovered = []
        for service in services:
            characteristics = await self._transport.discover_characteristics(identity, service.handle)
            _LOGGER.debug(
                "Service %s: %d characteristic(s)", service.uuid, len(characteristics)
            )
            discovered.append((service, characteristics))
        return discovered

    async def find_characteristic(
            self,
            identity: str,
            uuid: str,
    ) -> tuple[ServiceSnapshot, Characteristic]:
        """Resolve a characteristic by UUID.

        Discovers only when the device has no snapshot yet; an existing
        snapshot is never refreshed implicitly.

        Raises:
            CharacteristicNotFoundError: If the UUID is not in the snapshot
            TransportError: If the initial discovery fails
        """
        snapshot = self.snapshot(identity)
        if snapshot is None:
            snapshot = await self.discover(identity)

        characteristic = snapshot.find(uuid)
        if characteristic is None:
            raise CharacteristicNotFoundError(
                f"Characteristic {normalize_uuid(uuid)} not found on {snapshot.identity}"
            )
        return snapshot, characteristic

    def invalidate(self, identity: str) -> ServiceSnapshot | None:
        """Forget the snapshot of a device.

        Returns:
            The dropped snapshot, if there was one
        """
        dropped = self._snapshots.pop(normalize_identity(identity), None)
        if dropped is not None:
            _LOGGER.debug("Invalidated snapshot generation %d for %s", dropped.generation, identity)
        return dropped
