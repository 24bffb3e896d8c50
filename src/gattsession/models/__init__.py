"""Data models for gattsession."""

from .advertisement import Advertisement
from .device import Device, normalize_identity
from .enums import (
    CONNECTION_TRANSITIONS,
    CharacteristicProperties,
    ConnectionState,
    SubscriptionState,
)
from .events import Notification, StreamEvent, SubscriptionLost
from .gatt import (
    Characteristic,
    CharacteristicDescriptor,
    Service,
    ServiceDescriptor,
    ServiceSnapshot,
)
from .subscription import Subscription

__all__ = [
    "Advertisement",
    "Device",
    "normalize_identity",
    "CONNECTION_TRANSITIONS",
    "CharacteristicProperties",
    "ConnectionState",
    "SubscriptionState",
    "Notification",
    "StreamEvent",
    "SubscriptionLost",
    "Characteristic",
    "CharacteristicDescriptor",
    "Service",
    "ServiceDescriptor",
    "ServiceSnapshot",
    "Subscription",
]
