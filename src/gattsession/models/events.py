"""Items delivered on notification streams."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Union


class Notification(NamedTuple):
    """Value pushed by the peripheral for a subscribed characteristic."""
    uuid: str
    payload: bytes


@dataclass(frozen=True)
class SubscriptionLost:
    """A subscription ended without the caller unsubscribing.

    Emitted once per loss on the stream of the affected key. The caller
    decides whether to subscribe again.

    Attributes:
        identity: Device identity
        uuid: Characteristic UUID
        reason: Why the subscription ended ("characteristic vanished", "disconnected")
    """
    identity: str
    uuid: str
    reason: str


StreamEvent = Union[Notification, SubscriptionLost]
