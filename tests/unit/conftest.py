"""Shared fakes for unit tests."""

from __future__ import annotations

import asyncio

import pytest

from gattsession import SessionConfig, SessionOrchestrator
from gattsession.exceptions import TransportError
from gattsession.models import Advertisement, CharacteristicDescriptor, Device, ServiceDescriptor
from gattsession.protocol import build_sensortag_uuid
from gattsession.transport.base import (
    BaseTransport,
    DeviceDisconnected,
    DeviceDiscovered,
    NotificationReceived,
    ScanStarted,
    ScanStopped,
)

ADDRESS = "AA:BB:CC:DD:EE:FF"

IR_SERVICE = ServiceDescriptor(uuid=build_sensortag_uuid("aa00"), handle=0x20)
IR_DATA = CharacteristicDescriptor(uuid=build_sensortag_uuid("aa01"), handle=0x21, properties=("read", "notify"))
IR_CONFIG = CharacteristicDescriptor(uuid=build_sensortag_uuid("aa02"), handle=0x24, properties=("read", "write"))
LUX_SERVICE = ServiceDescriptor(uuid=build_sensortag_uuid("aa70"), handle=0x40)
LUX_DATA = CharacteristicDescriptor(uuid=build_sensortag_uuid("aa71"), handle=0x41, properties=("read", "notify"))
LUX_CONFIG = CharacteristicDescriptor(uuid=build_sensortag_uuid("aa72"), handle=0x44, properties=("read", "write"))


def sensortag_layout() -> list[tuple[ServiceDescriptor, list[CharacteristicDescriptor]]]:
    return [
        (IR_SERVICE, [IR_DATA, IR_CONFIG]),
        (LUX_SERVICE, [LUX_DATA, LUX_CONFIG]),
    ]


class FakeTransport(BaseTransport):
    """In-memory transport.

    Attributes:
        layouts: Discovery result per identity
        values: Read results per (identity, handle)
        failures: Exception to raise per method name
        delays: Seconds to sleep per method name before answering
        advertisements: Devices reported right after a scan starts
        calls: Method names in call order
    """

    def __init__(self) -> None:
        super().__init__()
        self.layouts: dict[str, list[tuple[ServiceDescriptor, list[CharacteristicDescriptor]]]] = {
            ADDRESS: sensortag_layout(),
        }
        self.values: dict[tuple[str, int], bytes] = {(ADDRESS, IR_DATA.handle): b"\x00\x00"}
        self.failures: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.advertisements: list[Device] = []
        self.calls: list[str] = []
        self.writes: list[tuple[str, int, bytes, bool]] = []
        self.subscribed: set[tuple[str, int]] = set()
        self.connected: set[str] = set()
        self.scanning = False

    async def _step(self, name: str) -> None:
        self.calls.append(name)
        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    def advertise(self, identity: str, name: str | None = None, rssi: int | None = None) -> None:
        self.emit(DeviceDiscovered(Device(identity, Advertisement(name=name, rssi=rssi))))

    def notify(self, identity: str, uuid: str, data: bytes) -> None:
        self.emit(NotificationReceived(identity, uuid, data))

    def drop_link(self, identity: str) -> None:
        self.connected.discard(identity)
        self.emit(DeviceDisconnected(identity))

    async def scan_start(self, service_uuids: list[str] | None = None) -> None:
        await self._step("scan_start")
        self.scanning = True
        self.emit(ScanStarted())
        for device in self.advertisements:
            self.emit(DeviceDiscovered(device))

    async def scan_stop(self) -> None:
        await self._step("scan_stop")
        self.scanning = False
        self.emit(ScanStopped())

    async def connect(self, identity: str, timeout: float) -> None:
        await self._step("connect")
        self.connected.add(identity)

    async def disconnect(self, identity: str) -> None:
        await self._step("disconnect")
        self.drop_link(identity)

    async def discover_services(self, identity: str) -> list[ServiceDescriptor]:
        await self._step("discover_services")
        return [service for service, _ in self.layouts[identity]]

    async def discover_characteristics(
            self,
            identity: str,
            service_handle: int,
    ) -> list[CharacteristicDescriptor]:
        await self._step("discover_characteristics")
        for service, characteristics in self.layouts[identity]:
            if service.handle == service_handle:
                return list(characteristics)
        raise TransportError(f"Unknown service handle {service_handle}")

    async def read_characteristic(self, identity: str, handle: int) -> bytes:
        await self._step("read_characteristic")
        return self.values.get((identity, handle), b"")

    async def write_characteristic(
            self,
            identity: str,
            handle: int,
            data: bytes,
            with_response: bool,
    ) -> None:
        await self._step("write_characteristic")
        self.writes.append((identity, handle, data, with_response))

    async def subscribe(self, identity: str, handle: int) -> None:
        await self._step("subscribe")
        self.subscribed.add((identity, handle))

    async def unsubscribe(self, identity: str, handle: int) -> None:
        await self._step("unsubscribe")
        self.subscribed.discard((identity, handle))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config() -> SessionConfig:
    return SessionConfig(scan_duration=0.05, operation_timeout=1.0, settle_delay=0.0)


@pytest.fixture
def orchestrator(transport: FakeTransport, config: SessionConfig) -> SessionOrchestrator:
    return SessionOrchestrator(transport, config)
