"""GATT service and characteristic models."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Iterator

from ..protocol.uuids import normalize_uuid
from .enums import CharacteristicProperties

_generation_counter = itertools.count(1)


@dataclass(frozen=True)
class ServiceDescriptor:
    """Service as reported by the transport during discovery."""
    uuid: str
    handle: int


@dataclass(frozen=True)
class CharacteristicDescriptor:
    """Characteristic as reported by the transport during discovery.

    Attributes:
        uuid: Characteristic UUID
        handle: Attribute handle used for transport I/O
        properties: Property names as reported by the host stack
    """
    uuid: str
    handle: int
    properties: tuple[str, ...] = ()


@dataclass(frozen=True)
class Characteristic:
    """Characteristic belonging to one discovered service."""
    uuid: str
    handle: int
    service_uuid: str
    properties: CharacteristicProperties = CharacteristicProperties.NONE

    @property
    def can_read(self) -> bool:
        return bool(self.properties & CharacteristicProperties.READ)

    @property
    def can_write(self) -> bool:
        return bool(self.properties & CharacteristicProperties.WRITE)

    @property
    def can_write_without_response(self) -> bool:
        return bool(self.properties & CharacteristicProperties.WRITE_WITHOUT_RESPONSE)

    @property
    def can_notify(self) -> bool:
        return self.properties.can_notify


@dataclass(frozen=True)
class Service:
    """Discovered service with its characteristics in discovery order."""
    uuid: str
    handle: int
    characteristics: tuple[Characteristic, ...] = ()

    def get_characteristic(self, uuid: str) -> Characteristic | None:
        wanted = normalize_uuid(uuid)
        for characteristic in self.characteristics:
            if characteristic.uuid == wanted:
                return characteristic
        return None


@dataclass(frozen=True)
class ServiceSnapshot:
    """Result of one full discovery pass for a device.

    Snapshots are immutable and are replaced as a whole on refresh, so a
    reader always sees one complete discovery result. Characteristics are
    looked up by UUID; when a UUID appears in several services the first
    one in discovery order wins.

    Attributes:
        identity: Device identity the snapshot belongs to
        services: Services in discovery order
        generation: Monotonic number identifying the discovery pass
    """
    identity: str
    services: tuple[Service, ...]
    generation: int = field(default_factory=lambda: next(_generation_counter))
    _index: dict[str, Characteristic] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        index: dict[str, Characteristic] = {}
        for service in self.services:
            for characteristic in service.characteristics:
                index.setdefault(characteristic.uuid, characteristic)
        object.__setattr__(self, "_index", index)

    @classmethod
    def from_descriptors(
            cls,
            identity: str,
            discovered: list[tuple[ServiceDescriptor, list[CharacteristicDescriptor]]],
    ) -> ServiceSnapshot:
        """Build a snapshot from raw transport discovery results."""
        services = []
        for service_desc, char_descs in discovered:
            service_uuid = normalize_uuid(service_desc.uuid)
            characteristics = tuple(
                Characteristic(
                    uuid=normalize_uuid(desc.uuid),
                    handle=desc.handle,
                    service_uuid=service_uuid,
                    properties=CharacteristicProperties.from_names(desc.properties),
                )
                for desc in char_descs
            )
            services.append(
                Service(uuid=service_uuid, handle=service_desc.handle, characteristics=characteristics)
            )
        return cls(identity=identity, services=tuple(services))

    def find(self, uuid: str) -> Characteristic | None:
        """Look up a characteristic by UUID."""
        return self._index.get(normalize_uuid(uuid))

    def get_service(self, uuid: str) -> Service | None:
        wanted = normalize_uuid(uuid)
        for service in self.services:
            if service.uuid == wanted:
                return service
        return None

    def characteristics(self) -> Iterator[Characteristic]:
        for service in self.services:
            yield from service.characteristics

    def __contains__(self, uuid: object) -> bool:
        return isinstance(uuid, str) and self.find(uuid) is not None

    def __len__(self) -> int:
        return len(self.services)
