"""BLE transport adapters."""

from .base import (
    BaseTransport,
    DeviceDisconnected,
    DeviceDiscovered,
    EventListener,
    NotificationReceived,
    ScanStarted,
    ScanStopped,
    TransportEvent,
)
from .connection import BleakTransport

__all__ = [
    "BaseTransport",
    "BleakTransport",
    "DeviceDisconnected",
    "DeviceDiscovered",
    "EventListener",
    "NotificationReceived",
    "ScanStarted",
    "ScanStopped",
    "TransportEvent",
]
