"""Exceptions raised by gattsession."""


class GattSessionError(Exception):
    """Base exception for all gattsession errors."""


class TransportError(GattSessionError):
    """BLE adapter level failure (radio, GATT procedure, dropped link)."""


class BLEConnectionError(TransportError):
    """Connection could not be established or is not available."""


class BLETimeoutError(GattSessionError):
    """Operation exceeded its time bound."""


class CharacteristicNotFoundError(GattSessionError):
    """Characteristic UUID is absent from the discovered services."""


class DuplicateSubscriptionError(GattSessionError):
    """Subscribe called for a key that is already subscribing or active."""


class UnsupportedOperationError(GattSessionError):
    """Characteristic does not support the requested operation."""


class InvalidStateError(GattSessionError):
    """Requested state transition is not allowed."""


class ScanInProgressError(GattSessionError):
    """Another scan cycle is still running."""


class StreamInUseError(GattSessionError):
    """A notification stream is already being consumed for this key."""


class DeviceNotFoundError(GattSessionError):
    """Target device was not seen during a scan."""


class InvalidUUIDError(GattSessionError, ValueError):
    """String is not a valid Bluetooth UUID."""
