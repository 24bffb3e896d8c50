from __future__ import annotations

from enum import Enum, IntFlag
from typing import Final


class ConnectionState(Enum):
    """Connection lifecycle of a peripheral."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class SubscriptionState(Enum):
    """Lifecycle of one notification subscription."""
    INACTIVE = "inactive"
    SUBSCRIBING = "subscribing"
    ACTIVE = "active"
    UNSUBSCRIBING = "unsubscribing"


class CharacteristicProperties(IntFlag):
    """Operations a characteristic supports."""
    NONE = 0
    READ = 0x01
    WRITE = 0x02
    WRITE_WITHOUT_RESPONSE = 0x04
    NOTIFY = 0x08
    INDICATE = 0x10

    @classmethod
    def from_names(cls, names) -> CharacteristicProperties:
        """Build flags from bleak property names ("read", "notify", ...).

        Unknown names (e.g. "broadcast", "extended-properties") are ignored.
        """
        flags = cls.NONE
        for name in names:
            flags |= _PROPERTY_NAMES.get(name.lower(), cls.NONE)
        return flags

    @property
    def can_notify(self) -> bool:
        return bool(self & (CharacteristicProperties.NOTIFY | CharacteristicProperties.INDICATE))


_PROPERTY_NAMES: Final[dict[str, CharacteristicProperties]] = {
    "read": CharacteristicProperties.READ,
    "write": CharacteristicProperties.WRITE,
    "write-without-response": CharacteristicProperties.WRITE_WITHOUT_RESPONSE,
    "notify": CharacteristicProperties.NOTIFY,
    "indicate": CharacteristicProperties.INDICATE,
}

# Allowed connection state transitions
CONNECTION_TRANSITIONS: Final[dict[ConnectionState, frozenset[ConnectionState]]] = {
    ConnectionState.DISCONNECTED: frozenset({ConnectionState.CONNECTING}),
    ConnectionState.CONNECTING: frozenset({
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
    }),
    ConnectionState.CONNECTED: frozenset({
        ConnectionState.DISCONNECTING,
        ConnectionState.DISCONNECTED,
    }),
    ConnectionState.DISCONNECTING: frozenset({ConnectionState.DISCONNECTED}),
}
