"""gattsession: BLE GATT client session manager.

  Keeps notification subscriptions consistent when service discovery is
  re-run on a live connection.
  """

from .config import SessionConfig
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    CharacteristicNotFoundError,
    DeviceNotFoundError,
    DuplicateSubscriptionError,
    GattSessionError,
    InvalidStateError,
    InvalidUUIDError,
    ScanInProgressError,
    StreamInUseError,
    TransportError,
    UnsupportedOperationError,
)
from .gatt_cache import GattCache
from .models import (
    Advertisement,
    Characteristic,
    CharacteristicDescriptor,
    CharacteristicProperties,
    ConnectionState,
    Device,
    Notification,
    Service,
    ServiceDescriptor,
    ServiceSnapshot,
    StreamEvent,
    Subscription,
    SubscriptionLost,
    SubscriptionState,
)
from .protocol import normalize_uuid
from .registry import DeviceRegistry
from .scanner import ScanController
from .session import ConfigWrite, Session, SessionOrchestrator
from .subscriptions import SubscriptionManager
from .transport import BaseTransport, BleakTransport

__version__ = "0.1.0"

__all__ = [
    # Main API
    "SessionOrchestrator",
    "Session",
    "ConfigWrite",
    "SessionConfig",
    # Components
    "DeviceRegistry",
    "ScanController",
    "GattCache",
    "SubscriptionManager",
    # Transports
    "BaseTransport",
    "BleakTransport",
    # Exceptions
    "GattSessionError",
    "TransportError",
    "BLEConnectionError",
    "BLETimeoutError",
    "CharacteristicNotFoundError",
    "DuplicateSubscriptionError",
    "UnsupportedOperationError",
    "InvalidStateError",
    "ScanInProgressError",
    "StreamInUseError",
    "DeviceNotFoundError",
    "InvalidUUIDError",
    # Models
    "Advertisement",
    "Device",
    "ConnectionState",
    "Service",
    "ServiceDescriptor",
    "Characteristic",
    "CharacteristicDescriptor",
    "CharacteristicProperties",
    "ServiceSnapshot",
    "Subscription",
    "SubscriptionState",
    "Notification",
    "SubscriptionLost",
    "StreamEvent",
    # Utilities
    "normalize_uuid",
]
