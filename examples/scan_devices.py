"""Run repeated scan cycles and print the device registry.

Usage:
    python examples/scan_devices.py --duration 5 --cycles 3
    python examples/scan_devices.py --service 0000aa00-0000-1000-8000-00805f9b34fb
"""

from __future__ import annotations

import argparse
import asyncio
from datetime import datetime

from gattsession import BleakTransport, Device, DeviceRegistry, ScanController


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _print_device(device: Device) -> None:
    """Print one device of record."""
    services = ",".join(device.advertisement.service_uuids) or "-"
    print(
        f"[{_timestamp()}] {device.name or 'Unknown'} ({device.identity}) "
        f"rssi={device.rssi} state={device.state.value} services={services}"
    )


async def listen(duration: float, cycles: int, service_uuids: list[str] | None) -> None:
    """Run scan cycles and print new devices as they are discovered."""
    registry = DeviceRegistry()
    scanner = ScanController(BleakTransport(), registry, default_duration=duration)

    for cycle in range(1, cycles + 1):
        print(f"Scan cycle {cycle}/{cycles} ({duration:.1f}s)...")
        async for device in scanner.scan(service_uuids=service_uuids):
            _print_device(device)

    print("\nSummary:")
    print(f"  devices_in_registry={len(registry)}")
    for device in sorted(registry.list_devices(), key=lambda d: d.identity):
        print(f"  {device.identity}: name={device.name} rssi={device.rssi}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan for BLE devices in bounded cycles.")
    parser.add_argument(
        "--duration",
        type=float,
        default=3.0,
        help="Length of one scan cycle in seconds. Default: 3",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        default=1,
        help="Number of scan cycles. Default: 1",
    )
    parser.add_argument(
        "--service",
        action="append",
        dest="services",
        help="Only report devices advertising this service UUID (repeatable).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    try:
        asyncio.run(listen(duration=args.duration, cycles=args.cycles, service_uuids=args.services))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
