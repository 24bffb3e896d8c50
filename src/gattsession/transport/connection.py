"""BLE transport backed by bleak."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..config import SessionConfig
from ..exceptions import BLEConnectionError, BLETimeoutError, TransportError
from ..models.advertisement import Advertisement
from ..models.device import Device, normalize_identity
from ..models.gatt import CharacteristicDescriptor, ServiceDescriptor
from ..protocol.uuids import normalize_uuid
from .base import (
    BaseTransport,
    DeviceDisconnected,
    DeviceDiscovered,
    NotificationReceived,
    ScanStarted,
    ScanStopped,
)

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

_LOGGER = logging.getLogger(__name__)


class BleakTransport(BaseTransport):
    """Transport adapter for the bleak BLE library.

    Features:
    - Scanning with a detection callback feeding DeviceDiscovered events
    - Automatic connect retries and service caching with bleak-retry-connector
    - One BleakClient per connected peripheral
    - Notification callbacks translated into NotificationReceived events
    """

    def __init__(
            self,
            max_attempts: int = 4,
            use_services_cache: bool = True,
            scan_timeout: float = 10.0,
    ):
        """Initialize bleak transport.

        Args:
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
            scan_timeout: Timeout for locating a device that was not seen in a scan (default: 10)
        """
        super().__init__()
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache
        self.scan_timeout = scan_timeout

        self._scanner: BleakScanner | None = None
        self._clients: dict[str, BleakClient] = {}
        self._seen: dict[str, BLEDevice] = {}

    @classmethod
    def from_config(cls, config: SessionConfig) -> BleakTransport:
        return cls(
            max_attempts=config.max_attempts,
            use_services_cache=config.use_services_cache,
            scan_timeout=config.connect_timeout,
        )

    async def scan_start(self, service_uuids: list[str] | None = None) -> None:
        """Start a BleakScanner.

        Raises:
            TransportError: If the scanner cannot be started
        """
        if self._scanner is not None:
            raise TransportError("Scan already running")

        scanner = BleakScanner(
            detection_callback=self._detection_callback,
            service_uuids=service_uuids or None,
        )
        try:
            await scanner.start()
        except Exception as e:
            raise TransportError(f"Failed to start scan: {e}") from e

        self._scanner = scanner
        _LOGGER.debug("Scan started (filter=%s)", service_uuids)
        self.emit(ScanStarted())

    async def scan_stop(self) -> None:
        """Stop the running scanner.

        Raises:
            TransportError: If stopping fails
        """
        scanner = self._scanner
        if scanner is None:
            self.emit(ScanStopped())
            return

        try:
            await scanner.stop()
        except Exception as e:
            raise TransportError(f"Failed to stop scan: {e}") from e
        finally:
            self._scanner = None

        _LOGGER.debug("Scan stopped")
        self.emit(ScanStopped())

    def _detection_callback(self, device: BLEDevice, advertisement_data: AdvertisementData) -> None:
        """Handle one advertisement from BleakScanner."""
        identity = normalize_identity(device.address)
        self._seen[identity] = device
        self.emit(
            DeviceDiscovered(
                Device(
                    identity=identity,
                    advertisement=Advertisement.from_bleak(advertisement_data, device.name),
                )
            )
        )

    async def connect(self, identity: str, timeout: float) -> None:
        """Establish a connection.

        Uses the BLEDevice from the last scan when available, otherwise scans
        for the address first.

        Raises:
            BLEConnectionError: If connection fails
            BLETimeoutError: If connection times out
        """
        identity = normalize_identity(identity)
        client = self._clients.get(identity)
        if client and client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                identity,
                self.max_attempts,
            )

            device = self._seen.get(identity)
            if device is None:
                device = await BleakScanner.find_device_by_address(
                    identity,
                    timeout=self.scan_timeout,
                )
                if device is None:
                    raise BLEConnectionError(f"Device {identity} not found during scan")

            self._clients[identity] = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or identity,
                disconnected_callback=lambda _client: self._on_disconnected(identity),
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(f"Connection timeout after {timeout}s") from e
        except BLEConnectionError:
            raise
        except Exception as e:
            raise BLEConnectionError(f"Failed to connect to {identity}: {e}") from e

        _LOGGER.debug("Connected to %s", identity)

    def _on_disconnected(self, identity: str) -> None:
        _LOGGER.debug("Disconnected from %s", identity)
        self._clients.pop(identity, None)
        self.emit(DeviceDisconnected(identity))

    async def disconnect(self, identity: str) -> None:
        """Disconnect from device.

        Raises:
            TransportError: If the host stack reports a failure
        """
        identity = normalize_identity(identity)
        client = self._clients.pop(identity, None)
        if client is None or not client.is_connected:
            return

        _LOGGER.debug("Disconnecting from %s", identity)
        try:
            await client.disconnect()
        except Exception as e:
            raise TransportError(f"Error during disconnect from {identity}: {e}") from e

    def _client_for(self, identity: str) -> BleakClient:
        client = self._clients.get(normalize_identity(identity))
        if not client or not client.is_connected:
            raise BLEConnectionError(f"Not connected to {identity}")
        return client

    async def discover_services(self, identity: str) -> list[ServiceDescriptor]:
        """List services resolved by bleak for this connection."""
        client = self._client_for(identity)
        try:
            return [
                ServiceDescriptor(uuid=service.uuid, handle=service.handle)
                for service in client.services
            ]
        except Exception as e:
            raise TransportError(f"Service discovery failed on {identity}: {e}") from e

    async def discover_characteristics(
            self,
            identity: str,
            service_handle: int,
    ) -> list[CharacteristicDescriptor]:
        client = self._client_for(identity)
        try:
            service = client.services.get_service(service_handle)
            characteristics = [
                CharacteristicDescriptor(
                    uuid=char.uuid,
                    handle=char.handle,
                    properties=tuple(char.properties),
                )
                for char in (service.characteristics if service is not None else ())
            ]
        except Exception as e:
            raise TransportError(f"Characteristic discovery failed on {identity}: {e}") from e

        if service is None:
            raise TransportError(f"Service handle {service_handle} not found on {identity}")
        return characteristics

    async def read_characteristic(self, identity: str, handle: int) -> bytes:
        client = self._client_for(identity)
        try:
            return bytes(await client.read_gatt_char(handle))
        except Exception as e:
            raise TransportError(f"Read of handle {handle} failed: {e}") from e

    async def write_characteristic(
            self,
            identity: str,
            handle: int,
            data: bytes,
            with_response: bool,
    ) -> None:
        client = self._client_for(identity)
        try:
            await client.write_gatt_char(handle, data, response=with_response)
        except Exception as e:
            raise TransportError(f"Write to handle {handle} failed: {e}") from e

    async def subscribe(self, identity: str, handle: int) -> None:
        client = self._client_for(identity)
        identity = normalize_identity(identity)

        def _notification_callback(sender: BleakGATTCharacteristic, data: bytearray) -> None:
            self.emit(NotificationReceived(identity, normalize_uuid(sender.uuid), bytes(data)))

        try:
            await client.start_notify(handle, _notification_callback)
        except Exception as e:
            raise TransportError(f"Enabling notifications on handle {handle} failed: {e}") from e

    async def unsubscribe(self, identity: str, handle: int) -> None:
        client = self._client_for(identity)
        try:
            await client.stop_notify(handle)
        except Exception as e:
            raise TransportError(f"Disabling notifications on handle {handle} failed: {e}") from e
