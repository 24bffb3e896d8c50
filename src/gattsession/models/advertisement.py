"""BLE advertisement data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..protocol.uuids import normalize_uuid

if TYPE_CHECKING:
    from bleak.backends.scanner import AdvertisementData as BleakAdvertisementData


@dataclass(frozen=True)
class Advertisement:
    """Last-seen advertisement metadata of a peripheral.

    Attributes:
        name: Local name, if advertised
        rssi: Received signal strength in dBm
        service_uuids: Advertised service UUIDs (normalized)
        manufacturer_data: Manufacturer specific data keyed by company ID
    """
    name: str | None = None
    rssi: int | None = None
    service_uuids: tuple[str, ...] = ()
    manufacturer_data: dict[int, bytes] = field(default_factory=dict, compare=False)

    @classmethod
    def from_bleak(
            cls,
            advertisement_data: BleakAdvertisementData,
            name: str | None = None,
    ) -> Advertisement:
        """Convert bleak advertisement data.

        Args:
            advertisement_data: Advertisement from a BleakScanner detection callback
            name: Fallback name (usually BLEDevice.name) when the advertisement has none
        """
        return cls(
            name=advertisement_data.local_name or name,
            rssi=advertisement_data.rssi,
            service_uuids=tuple(normalize_uuid(u) for u in advertisement_data.service_uuids),
            manufacturer_data={
                company: bytes(payload)
                for company, payload in advertisement_data.manufacturer_data.items()
            },
        )

    def advertises(self, service_uuid: str) -> bool:
        """Check whether a service UUID is in the advertisement."""
        return normalize_uuid(service_uuid) in self.service_uuids
