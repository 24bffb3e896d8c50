"""Notification subscription management."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    CharacteristicNotFoundError,
    DuplicateSubscriptionError,
    InvalidStateError,
    StreamInUseError,
    UnsupportedOperationError,
)
from .gatt_cache import GattCache
from .models.device import normalize_identity
from .models.enums import SubscriptionState
from .models.events import Notification, StreamEvent, SubscriptionLost
from .models.gatt import ServiceSnapshot
from .models.subscription import Subscription
from .protocol.uuids import normalize_uuid
from .transport.base import (
    BaseTransport,
    DeviceDisconnected,
    NotificationReceived,
    TransportEvent,
)

_LOGGER = logging.getLogger(__name__)

REASON_VANISHED = "characteristic vanished"
REASON_DISCONNECTED = "disconnected"

MAX_BUFFERED_NOTIFICATIONS = 256


class _Channel:
    """Ordered event queue for one subscription key."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self.consumed = False


class SubscriptionManager:
    """Owns every notification subscription, keyed by (identity, UUID).

    Subscriptions never keep Characteristic objects. Handles are resolved
    against the current GattCache snapshot at subscribe/unsubscribe time,
    and notifications are routed by UUID, so a cache refresh cannot leave a
    subscription pointing at a stale object. After each discovery the cache
    calls rebind(): subscriptions whose UUID is still present stay active,
    the others go inactive and a SubscriptionLost event is queued on their
    stream.
    """

    def __init__(
            self,
            transport: BaseTransport,
            cache: GattCache,
            timeout: float | None = None,
            max_buffered: int = MAX_BUFFERED_NOTIFICATIONS,
    ):
        """Initialize subscription manager.

        Args:
            transport: Transport for enabling/disabling notifications
            cache: GATT cache used to resolve characteristics; rebind() is
                registered as its refresh listener
            timeout: Bound for subscribe/unsubscribe calls in seconds
            max_buffered: Notifications kept per key while no stream consumer
                is attached; further ones are dropped until a consumer reads
        """
        self._transport = transport
        self._cache = cache
        self.timeout = timeout
        self.max_buffered = max_buffered

        self._subscriptions: dict[tuple[str, str], Subscription] = {}
        self._channels: dict[tuple[str, str], _Channel] = {}

        cache.add_refresh_listener(self.rebind)
        transport.add_listener(self._handle_event)

    @staticmethod
    def _key(identity: str, uuid: str) -> tuple[str, str]:
        return normalize_identity(identity), normalize_uuid(uuid)

    def get(self, identity: str, uuid: str) -> Subscription | None:
        return self._subscriptions.get(self._key(identity, uuid))

    def subscriptions(self, identity: str | None = None) -> list[Subscription]:
        """List subscriptions, optionally for one device."""
        if identity is None:
            return list(self._subscriptions.values())
        identity = normalize_identity(identity)
        return [sub for sub in self._subscriptions.values() if sub.identity == identity]

    def _channel(self, key: tuple[str, str]) -> _Channel:
        channel = self._channels.get(key)
        if channel is None:
            channel = self._channels[key] = _Channel()
        return channel

    async def subscribe(self, identity: str, uuid: str) -> Subscription:
        """Enable notifications for a characteristic.

        Returns:
            The subscription, now ACTIVE

        Raises:
            DuplicateSubscriptionError: If the key is already subscribing or active
            CharacteristicNotFoundError: If the UUID is not in the snapshot
            UnsupportedOperationError: If the characteristic cannot notify or indicate
            TransportError: If the transport rejects the request
            BLEConnectionError: If the link drops before the request completes
            BLETimeoutError: If the transport does not answer in time
        """
        key = self._key(identity, uuid)
        existing = self._subscriptions.get(key)
        if existing is not None and existing.state in (
            SubscriptionState.SUBSCRIBING,
            SubscriptionState.ACTIVE,
        ):
            raise DuplicateSubscriptionError(
                f"Already subscribed to {key[1]} on {key[0]} ({existing.state.value})"
            )

        # Make sure a snapshot exists before taking the device lock
        await self._cache.find_characteristic(*key)

        async with self._cache.device_lock(key[0]):
            existing = self._subscriptions.get(key)
            if existing is not None and existing.state != SubscriptionState.INACTIVE:
                raise DuplicateSubscriptionError(
                    f"Already subscribed to {key[1]} on {key[0]} ({existing.state.value})"
                )

            snapshot = self._cache.snapshot(key[0])
            characteristic = snapshot.find(key[1]) if snapshot is not None else None
            if characteristic is None:
                raise CharacteristicNotFoundError(f"Characteristic {key[1]} not found on {key[0]}")
            if not characteristic.can_notify:
                raise UnsupportedOperationError(
                    f"Characteristic {key[1]} supports neither notify nor indicate"
                )

            subscription = existing or Subscription(identity=key[0], uuid=key[1])
            subscription.state = SubscriptionState.SUBSCRIBING
            self._subscriptions[key] = subscription
            self._channel(key)
            try:
                await self._bounded(
                    self._transport.subscribe(key[0], characteristic.handle),
                    f"Subscribe to {key[1]}",
                )
            except BaseException:
                subscription.state = SubscriptionState.INACTIVE
                raise

            if subscription.state != SubscriptionState.SUBSCRIBING:
                # Link dropped while the request was in flight
                raise BLEConnectionError(
                    f"Lost connection to {key[0]} while subscribing to {key[1]}"
                )
            subscription.state = SubscriptionState.ACTIVE

        _LOGGER.info("Subscribed to %s on %s", key[1], key[0])
        return subscription

    async def unsubscribe(self, identity: str, uuid: str) -> None:
        """Disable notifications for a characteristic.

        Unsubscribing from an inactive key is a no-op. A device without a
        snapshot is rediscovered first so the handle can be resolved; when
        the characteristic no longer exists the subscription is simply
        marked inactive.

        Raises:
            InvalidStateError: If a subscribe/unsubscribe is still in flight
            TransportError: If the transport rejects the request
            BLETimeoutError: If the transport does not answer in time
        """
        key = self._key(identity, uuid)
        subscription = self._subscriptions.get(key)
        snapshot = self._cache.snapshot(key[0])
        if subscription is not None and subscription.is_active and snapshot is None:
            # No snapshot means the handle is unknown, not gone
            try:
                await self._cache.find_characteristic(*key)
            except CharacteristicNotFoundError:
                pass

        async with self._cache.device_lock(key[0]):
            subscription = self._subscriptions.get(key)
            if subscription is None or subscription.state == SubscriptionState.INACTIVE:
                return
            if subscription.is_pending:
                raise InvalidStateError(
                    f"Subscription {key[1]} on {key[0]} is {subscription.state.value}"
                )

            snapshot = self._cache.snapshot(key[0])
            characteristic = snapshot.find(key[1]) if snapshot is not None else None
            if characteristic is None:
                subscription.state = SubscriptionState.INACTIVE
                return

            subscription.state = SubscriptionState.UNSUBSCRIBING
            try:
                await self._bounded(
                    self._transport.unsubscribe(key[0], characteristic.handle),
                    f"Unsubscribe from {key[1]}",
                )
            except BaseException:
                if subscription.state == SubscriptionState.UNSUBSCRIBING:
                    subscription.state = SubscriptionState.ACTIVE
                raise

            subscription.state = SubscriptionState.INACTIVE

        _LOGGER.info("Unsubscribed from %s on %s", key[1], key[0])

    async def _bounded(self, operation, description: str) -> None:
        try:
            await asyncio.wait_for(operation, self.timeout)
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(f"{description} timed out after {self.timeout}s") from e

    def rebind(self, identity: str, snapshot: ServiceSnapshot) -> None:
        """Re-validate active subscriptions of a device against a new snapshot."""
        identity = normalize_identity(identity)
        for subscription in self.subscriptions(identity):
            if not subscription.is_active:
                continue
            if snapshot.find(subscription.uuid) is not None:
                _LOGGER.debug(
                    "Subscription %s on %s re-bound to generation %d",
                    subscription.uuid,
                    identity,
                    snapshot.generation,
                )
                continue
            self._lose(subscription, REASON_VANISHED)

    def drop_device(self, identity: str, reason: str = REASON_DISCONNECTED) -> None:
        """End every active subscription of a device."""
        for subscription in self.subscriptions(identity):
            if subscription.state != SubscriptionState.INACTIVE:
                self._lose(subscription, reason)

    def _lose(self, subscription: Subscription, reason: str) -> None:
        _LOGGER.warning(
            "Subscription %s on %s lost: %s", subscription.uuid, subscription.identity, reason
        )
        subscription.state = SubscriptionState.INACTIVE
        self._channel(subscription.key).queue.put_nowait(
            SubscriptionLost(subscription.identity, subscription.uuid, reason)
        )

    def on_notification(self, identity: str, uuid: str, payload: bytes) -> bool:
        """Route a notification to the stream of its key.

        Returns:
            True if delivered, False if dropped: no active subscription, UUID
            absent from the current snapshot, or max_buffered reached while
            no stream consumer is attached
        """
        key = self._key(identity, uuid)
        subscription = self._subscriptions.get(key)
        if subscription is None or not subscription.is_active:
            _LOGGER.debug("Dropping notification for %s on %s: not subscribed", key[1], key[0])
            return False

        snapshot = self._cache.snapshot(key[0])
        if snapshot is not None and snapshot.find(key[1]) is None:
            _LOGGER.debug("Dropping notification for %s on %s: not in snapshot", key[1], key[0])
            return False

        channel = self._channel(key)
        if not channel.consumed and channel.queue.qsize() >= self.max_buffered:
            _LOGGER.debug(
                "Dropping notification for %s on %s: no consumer, buffer full", key[1], key[0]
            )
            return False

        channel.queue.put_nowait(Notification(key[1], bytes(payload)))
        return True

    def _handle_event(self, event: TransportEvent) -> None:
        if isinstance(event, NotificationReceived):
            self.on_notification(event.identity, event.uuid, event.data)
        elif isinstance(event, DeviceDisconnected):
            self.drop_device(event.identity)

    async def stream(self, identity: str, uuid: str) -> AsyncIterator[StreamEvent]:
        """Yield notifications and SubscriptionLost events for one key.

        The stream does not end on its own; it keeps waiting across a loss so
        that a later subscribe() resumes delivery. Only one consumer per key.

        Raises:
            StreamInUseError: If the key's stream is already being consumed
        """
        key = self._key(identity, uuid)
        channel = self._channel(key)
        if channel.consumed:
            raise StreamInUseError(f"Stream for {key[1]} on {key[0]} is already in use")

        channel.consumed = True
        try:
            while True:
                yield await channel.queue.get()
        finally:
            channel.consumed = False
