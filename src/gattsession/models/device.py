"""Peripheral model."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .advertisement import Advertisement
from .enums import ConnectionState


def normalize_identity(identity: str) -> str:
    """Normalize a device identity (MAC address or platform UUID).

    Both forms are case-insensitive, so identities are compared upper-case.
    """
    normalized = identity.strip().upper()
    if not normalized:
        raise ValueError("Device identity must not be empty")
    return normalized


@dataclass(eq=False)
class Device:
    """A peripheral tracked by the device registry.

    The identity never changes after construction; advertisement and state
    are updated in place by the registry.
    """
    identity: str
    advertisement: Advertisement = field(default_factory=Advertisement)
    state: ConnectionState = ConnectionState.DISCONNECTED
    last_seen: float = field(default_factory=time.monotonic)

    def __post_init__(self) -> None:
        self.__dict__["identity"] = normalize_identity(self.identity)

    def __setattr__(self, name: str, value) -> None:
        if name == "identity" and "identity" in self.__dict__:
            raise AttributeError("Device identity is immutable")
        super().__setattr__(name, value)

    @property
    def name(self) -> str | None:
        return self.advertisement.name

    @property
    def rssi(self) -> int | None:
        return self.advertisement.rssi

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def is_active(self) -> bool:
        """Connected or in the middle of connecting."""
        return self.state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING)

    def __repr__(self) -> str:
        return (
            f"Device(identity={self.identity!r}, name={self.name!r}, "
            f"rssi={self.rssi}, state={self.state.value})"
        )
