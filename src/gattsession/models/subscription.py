"""Notification subscription model."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import SubscriptionState


@dataclass(eq=False)
class Subscription:
    """Subscription keyed by (device identity, characteristic UUID).

    Holds no reference to a Characteristic object; the characteristic is
    resolved against the current service snapshot whenever it is needed.
    """
    identity: str
    uuid: str
    state: SubscriptionState = SubscriptionState.INACTIVE

    @property
    def key(self) -> tuple[str, str]:
        return self.identity, self.uuid

    @property
    def is_active(self) -> bool:
        return self.state == SubscriptionState.ACTIVE

    @property
    def is_pending(self) -> bool:
        """Subscribe or unsubscribe in flight."""
        return self.state in (SubscriptionState.SUBSCRIBING, SubscriptionState.UNSUBSCRIBING)
