"""Bounded scan cycles."""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator

from .exceptions import ScanInProgressError, TransportError
from .models.device import Device, normalize_identity
from .registry import DeviceRegistry
from .transport.base import BaseTransport, DeviceDiscovered, ScanStopped, TransportEvent

_LOGGER = logging.getLogger(__name__)

_SCAN_STOPPED = object()


class ScanController:
    """Runs one scan cycle at a time and merges results into the registry.

    Usage:
        async for device in scanner.scan(3.0):
            print(device.identity, device.name)

    The iterator ends when the transport confirms the scan has stopped,
    not when the timer fires.
    """

    def __init__(
            self,
            transport: BaseTransport,
            registry: DeviceRegistry,
            default_duration: float = 3.0,
    ):
        self._transport = transport
        self._registry = registry
        self.default_duration = default_duration

        self._queue: asyncio.Queue | None = None
        transport.add_listener(self._handle_event)

    @property
    def is_scanning(self) -> bool:
        return self._queue is not None

    def _handle_event(self, event: TransportEvent) -> None:
        if isinstance(event, DeviceDiscovered):
            device = self._registry.upsert(event.device)
            if self._queue is not None:
                self._queue.put_nowait(device)
        elif isinstance(event, ScanStopped):
            if self._queue is not None:
                self._queue.put_nowait(_SCAN_STOPPED)

    async def scan(
            self,
            duration: float | None = None,
            service_uuids: list[str] | None = None,
    ) -> AsyncIterator[Device]:
        """Scan for a bounded time and yield each device once.

        Args:
            duration: Scan length in seconds (default: default_duration)
            service_uuids: Only report devices advertising one of these services

        Yields:
            Devices of record from the registry, in discovery order

        Raises:
            ScanInProgressError: If another scan cycle is running
            TransportError: If the scan cannot be started or stopped
        """
        if self._queue is not None:
            raise ScanInProgressError("A scan cycle is already running")

        duration = self.default_duration if duration is None else duration
        if duration <= 0:
            raise ValueError(f"Scan duration must be positive, got {duration}")

        queue: asyncio.Queue = asyncio.Queue()
        self._queue = queue
        self._registry.begin_scan_cycle()

        started = False
        stopped = False
        stop_task: asyncio.Task | None = None
        try:
            await self._transport.scan_start(service_uuids)
            started = True
            _LOGGER.info("Scan started (%.1fs)", duration)

            stop_task = asyncio.create_task(self._stop_after(duration, queue))

            seen: set[str] = set()
            while True:
                item = await queue.get()
                if item is _SCAN_STOPPED:
                    stopped = True
                    break
                if isinstance(item, TransportError):
                    # stop already attempted by the timer
                    stopped = True
                    raise item
                if item.identity in seen:
                    continue
                seen.add(item.identity)
                yield item

            _LOGGER.info("Scan stopped, %d device(s) seen", len(seen))
        finally:
            self._queue = None
            if stop_task is not None and not stop_task.done():
                stop_task.cancel()
            if started and not stopped:
                await self._transport.scan_stop()

    async def _stop_after(self, duration: float, queue: asyncio.Queue) -> None:
        await asyncio.sleep(duration)
        _LOGGER.debug("Scan timer elapsed, requesting stop")
        try:
            await self._transport.scan_stop()
        except TransportError as e:
            queue.put_nowait(e)

    async def scan_for(
            self,
            duration: float | None = None,
            service_uuids: list[str] | None = None,
    ) -> list[Device]:
        """Run a whole scan cycle and return every device seen."""
        return [device async for device in self.scan(duration, service_uuids)]

    async def find_device(
            self,
            identity: str,
            duration: float | None = None,
            service_uuids: list[str] | None = None,
    ) -> Device | None:
        """Scan until a device is seen or the cycle ends.

        Returns:
            The Device of record, or None if it was not seen
        """
        wanted = normalize_identity(identity)
        async with aclosing(self.scan(duration, service_uuids)) as devices:
            async for device in devices:
                if device.identity == wanted:
                    return device
        return None
