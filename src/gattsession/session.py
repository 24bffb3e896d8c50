"""Session orchestration: connect, discover, configure, read, subscribe, stream."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Iterable

from .config import SessionConfig
from .exceptions import BLEConnectionError, BLETimeoutError, UnsupportedOperationError
from .gatt_cache import GattCache
from .models.device import Device
from .models.events import StreamEvent
from .models.gatt import Characteristic, ServiceSnapshot
from .models.subscription import Subscription
from .protocol.uuids import normalize_uuid
from .registry import DeviceRegistry
from .scanner import ScanController
from .subscriptions import SubscriptionManager
from .transport.base import BaseTransport, DeviceDisconnected, TransportEvent

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigWrite:
    """Value written to a characteristic while preparing a session."""
    uuid: str
    value: bytes
    with_response: bool = True


class Session:
    """A connected peripheral prepared by SessionOrchestrator.

    Usage:
        async with await orchestrator.connect_and_prepare(address, writes) as session:
            async for event in session.stream(uuid):
                ...
    """

    def __init__(self, orchestrator: SessionOrchestrator, device: Device):
        self._orchestrator = orchestrator
        self.device = device
        self.values: dict[str, bytes] = {}

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def identity(self) -> str:
        return self.device.identity

    @property
    def is_connected(self) -> bool:
        return self.device.is_connected

    @property
    def snapshot(self) -> ServiceSnapshot | None:
        """Current service snapshot (None before discovery or after disconnect)."""
        return self._orchestrator.cache.snapshot(self.identity)

    async def read(self, uuid: str) -> bytes:
        return await self._orchestrator.read(self, uuid)

    async def write(self, uuid: str, data: bytes, with_response: bool = True) -> None:
        await self._orchestrator.write(self, uuid, data, with_response)

    async def subscribe(self, uuid: str) -> Subscription:
        return await self._orchestrator.subscribe(self, uuid)

    async def unsubscribe(self, uuid: str) -> None:
        await self._orchestrator.unsubscribe(self, uuid)

    def stream(self, uuid: str) -> AsyncIterator[StreamEvent]:
        return self._orchestrator.stream_notifications(self, uuid)

    async def refresh_discovery(self) -> ServiceSnapshot:
        return await self._orchestrator.refresh_discovery(self)

    async def close(self) -> None:
        await self._orchestrator.close(self)

    def __repr__(self) -> str:
        return f"Session({self.identity!r}, state={self.device.state.value})"


class SessionOrchestrator:
    """Public entry point tying the registry, scanner, cache and subscriptions together.

    One orchestrator drives any number of devices on one event loop. Work
    on different devices runs concurrently; discovery and subscription
    changes on one device are serialized by its cache lock.
    """

    def __init__(self, transport: BaseTransport, config: SessionConfig | None = None):
        """Initialize orchestrator.

        Args:
            transport: BLE transport adapter
            config: Timing and connection settings (default: SessionConfig())
        """
        self.config = config or SessionConfig()
        self.transport = transport

        self.registry = DeviceRegistry()
        self.scanner = ScanController(transport, self.registry, self.config.scan_duration)
        self.cache = GattCache(transport, timeout=self.config.operation_timeout)
        self.subscriptions = SubscriptionManager(
            transport, self.cache, timeout=self.config.operation_timeout
        )

        transport.add_listener(self._handle_event)

    def _handle_event(self, event: TransportEvent) -> None:
        if isinstance(event, DeviceDisconnected):
            device = self.registry.lookup(event.identity)
            if device is not None:
                self.registry.mark_disconnected(device.identity)
            self.cache.invalidate(event.identity)
            _LOGGER.info("Device %s disconnected", event.identity)

    # Scanning

    def scan(
            self,
            duration: float | None = None,
            service_uuids: list[str] | None = None,
    ) -> AsyncIterator[Device]:
        return self.scanner.scan(duration, service_uuids)

    async def scan_for(
            self,
            duration: float | None = None,
            service_uuids: list[str] | None = None,
    ) -> list[Device]:
        return await self.scanner.scan_for(duration, service_uuids)

    async def find_device(self, identity: str, duration: float | None = None) -> Device | None:
        return await self.scanner.find_device(identity, duration)

    # Connection lifecycle

    async def connect(self, identity: str) -> Device:
        """Connect to a device, or return it if already connected.

        Raises:
            BLEConnectionError: If the connection fails
            BLETimeoutError: If the connection times out
            InvalidStateError: If a connect or disconnect is already in progress
        """
        device = self.registry.lookup(identity)
        if device is not None and device.is_connected:
            return device

        device = self.registry.mark_connecting(identity)
        _LOGGER.info("Connecting to %s", device.identity)
        try:
            await self.transport.connect(device.identity, self.config.connect_timeout)
        except BaseException:
            self.registry.mark_disconnected(device.identity)
            raise

        self.registry.mark_connected(device.identity)
        _LOGGER.info("Connected to %s", device.identity)
        return device

    async def disconnect(self, identity: str) -> None:
        """Disconnect a device and end its subscriptions."""
        device = self.registry.lookup(identity)
        if device is None or not device.is_connected:
            return

        self.registry.mark_disconnecting(device.identity)
        try:
            await self.transport.disconnect(device.identity)
        finally:
            self.subscriptions.drop_device(device.identity)
            self.cache.invalidate(device.identity)
            self.registry.mark_disconnected(device.identity)
        _LOGGER.info("Disconnected from %s", device.identity)

    async def connect_and_prepare(
            self,
            identity: str,
            config_writes: Iterable[ConfigWrite] = (),
            *,
            read_uuids: Iterable[str] = (),
            subscribe_uuids: Iterable[str] = (),
            settle_delay: float | None = None,
    ) -> Session:
        """Connect, discover, write configuration, read and subscribe.

        The first failing step aborts the pipeline and its error propagates.
        The device stays connected in that case, so the caller can retry
        discovery or the remaining steps without reconnecting.

        Args:
            identity: Device address or platform identifier
            config_writes: Values written right after discovery
            read_uuids: Characteristics read after the settle delay; results
                end up in Session.values
            subscribe_uuids: Characteristics subscribed to last
            settle_delay: Pause after configuration writes in seconds
                (default: config.settle_delay)

        Returns:
            Prepared session
        """
        settle_delay = self.config.settle_delay if settle_delay is None else settle_delay
        config_writes = list(config_writes)

        device = await self.connect(identity)
        session = Session(self, device)

        await self.cache.discover(device.identity)

        for write in config_writes:
            await self.write(session, write.uuid, write.value, write.with_response)

        if config_writes and settle_delay > 0:
            _LOGGER.debug("Waiting %.1fs for configuration to settle", settle_delay)
            await asyncio.sleep(settle_delay)

        for uuid in read_uuids:
            session.values[normalize_uuid(uuid)] = await self.read(session, uuid)

        for uuid in subscribe_uuids:
            await self.subscribe(session, uuid)

        return session

    async def close(self, session: Session) -> None:
        await self.disconnect(session.identity)

    # GATT operations

    def _require_connected(self, session: Session) -> None:
        if not session.is_connected:
            raise BLEConnectionError(f"Not connected to {session.identity}")

    async def _resolve(self, session: Session, uuid: str) -> Characteristic:
        self._require_connected(session)
        _, characteristic = await self.cache.find_characteristic(session.identity, uuid)
        return characteristic

    async def _bounded(self, operation, description: str):
        timeout = self.config.operation_timeout
        try:
            return await asyncio.wait_for(operation, timeout)
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(f"{description} timed out after {timeout}s") from e

    async def read(self, session: Session, uuid: str) -> bytes:
        """Read a characteristic value.

        Raises:
            BLEConnectionError: If the session is not connected
            CharacteristicNotFoundError: If the UUID is not in the snapshot
            UnsupportedOperationError: If the characteristic is not readable
            TransportError: If the read fails
            BLETimeoutError: If the read times out
        """
        characteristic = await self._resolve(session, uuid)
        if not characteristic.can_read:
            raise UnsupportedOperationError(f"Characteristic {characteristic.uuid} is not readable")

        data = await self._bounded(
            self.transport.read_characteristic(session.identity, characteristic.handle),
            f"Read of {characteristic.uuid}",
        )
        _LOGGER.debug("Read %s from %s: %s", characteristic.uuid, session.identity, data.hex())
        return data

    async def write(
            self,
            session: Session,
            uuid: str,
            data: bytes,
            with_response: bool = True,
    ) -> None:
        """Write a characteristic value.

        Transport failures always propagate to the caller.

        Raises:
            BLEConnectionError: If the session is not connected
            CharacteristicNotFoundError: If the UUID is not in the snapshot
            UnsupportedOperationError: If the characteristic does not allow this write type
            TransportError: If the write fails
            BLETimeoutError: If the write times out
        """
        characteristic = await self._resolve(session, uuid)
        allowed = (
            characteristic.can_write if with_response else characteristic.can_write_without_response
        )
        if not allowed:
            kind = "write" if with_response else "write without response"
            raise UnsupportedOperationError(
                f"Characteristic {characteristic.uuid} does not support {kind}"
            )

        await self._bounded(
            self.transport.write_characteristic(
                session.identity, characteristic.handle, bytes(data), with_response
            ),
            f"Write to {characteristic.uuid}",
        )
        _LOGGER.debug("Wrote %s to %s on %s", bytes(data).hex(), characteristic.uuid, session.identity)

    async def subscribe(self, session: Session, uuid: str) -> Subscription:
        self._require_connected(session)
        return await self.subscriptions.subscribe(session.identity, uuid)

    async def unsubscribe(self, session: Session, uuid: str) -> None:
        await self.subscriptions.unsubscribe(session.identity, uuid)

    def stream_notifications(self, session: Session, uuid: str) -> AsyncIterator[StreamEvent]:
        """Infinite stream of Notification and SubscriptionLost events for one characteristic."""
        return self.subscriptions.stream(session.identity, uuid)

    async def refresh_discovery(self, session: Session, timeout: float | None = None) -> ServiceSnapshot:
        """Re-run discovery on a live session.

        Active subscriptions whose characteristic is still present keep
        streaming; the others emit SubscriptionLost.
        """
        self._require_connected(session)
        _LOGGER.info("Refreshing discovery on %s", session.identity)
        return await self.cache.discover(session.identity, timeout)

    def session_for(self, identity: str) -> Session | None:
        """Wrap an already connected device in a Session."""
        device = self.registry.lookup(identity)
        if device is None or not device.is_connected:
            return None
        return Session(self, device)
