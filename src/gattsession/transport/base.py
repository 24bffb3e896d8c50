"""Transport adapter interface.

The session core never talks to a BLE host stack directly. It drives a
transport through the coroutine methods below and receives asynchronous
events (scan lifecycle, discovered devices, notifications, disconnects)
through listeners registered with add_listener().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Union

from ..models.device import Device
from ..models.gatt import CharacteristicDescriptor, ServiceDescriptor


@dataclass(frozen=True)
class ScanStarted:
    """Adapter confirmed that scanning has begun."""


@dataclass(frozen=True)
class ScanStopped:
    """Adapter confirmed that scanning has stopped."""


@dataclass(frozen=True)
class DeviceDiscovered:
    """Advertisement received while scanning."""
    device: Device


@dataclass(frozen=True)
class NotificationReceived:
    """Notification or indication value from a peripheral."""
    identity: str
    uuid: str
    data: bytes


@dataclass(frozen=True)
class DeviceDisconnected:
    """Link to a peripheral dropped or was closed."""
    identity: str


TransportEvent = Union[
    ScanStarted, ScanStopped, DeviceDiscovered, NotificationReceived, DeviceDisconnected
]
EventListener = Callable[[TransportEvent], None]


class BaseTransport(ABC):
    """Primitive BLE operations consumed by the session core.

    Characteristic I/O is addressed by attribute handle, which the caller
    resolves from the current service snapshot. Implementations raise
    TransportError (or a subclass) on adapter failures.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def add_listener(self, listener: EventListener) -> Callable[[], None]:
        """Register an event listener.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def emit(self, event: TransportEvent) -> None:
        """Deliver an event to every listener.

        Listeners are called synchronously and must not block.
        """
        for listener in list(self._listeners):
            listener(event)

    @abstractmethod
    async def scan_start(self, service_uuids: list[str] | None = None) -> None:
        """Begin scanning; emits ScanStarted, then DeviceDiscovered events."""

    @abstractmethod
    async def scan_stop(self) -> None:
        """Stop scanning; emits ScanStopped once the adapter confirms."""

    @abstractmethod
    async def connect(self, identity: str, timeout: float) -> None:
        """Connect to a peripheral."""

    @abstractmethod
    async def disconnect(self, identity: str) -> None:
        """Disconnect from a peripheral."""

    @abstractmethod
    async def discover_services(self, identity: str) -> list[ServiceDescriptor]:
        """Enumerate primary services."""

    @abstractmethod
    async def discover_characteristics(
            self,
            identity: str,
            service_handle: int,
    ) -> list[CharacteristicDescriptor]:
        """Enumerate characteristics of one service."""

    @abstractmethod
    async def read_characteristic(self, identity: str, handle: int) -> bytes:
        """Read a characteristic value."""

    @abstractmethod
    async def write_characteristic(
            self,
            identity: str,
            handle: int,
            data: bytes,
            with_response: bool,
    ) -> None:
        """Write a characteristic value."""

    @abstractmethod
    async def subscribe(self, identity: str, handle: int) -> None:
        """Enable notifications; values arrive as NotificationReceived events."""

    @abstractmethod
    async def unsubscribe(self, identity: str, handle: int) -> None:
        """Disable notifications."""
