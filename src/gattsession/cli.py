"""Rediscovery-during-streaming demonstration for the TI CC2650 SensorTag.

Usage:
    gattsession-demo AA:BB:CC:DD:EE:FF     (Linux/Windows: MAC address)
    gattsession-demo 6A1F...               (macOS: CoreBluetooth UUID)

Scans, connects, enables the IR temperature sensor, reads it once,
subscribes to its notifications and streams them. A few seconds in,
service discovery is re-run and the luxometer is read; the IR
temperature stream keeps running across the refresh.
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from .config import SessionConfig
from .exceptions import CharacteristicNotFoundError, DeviceNotFoundError, GattSessionError
from .models.events import SubscriptionLost
from .protocol.sensortag import (
    IR_TEMP_CONFIG,
    IR_TEMP_DATA,
    LUXOMETER_DATA,
    SENSOR_ENABLE,
    decode_ir_temperature,
    decode_lux,
)
from .session import ConfigWrite, Session, SessionOrchestrator
from .transport.base import BaseTransport
from .transport.connection import BleakTransport

_LOGGER = logging.getLogger(__name__)

DISRUPT_AFTER = 3.0


async def _disrupt(orchestrator: SessionOrchestrator, session: Session, delay: float) -> None:
    """Re-run discovery mid-stream, then read a second characteristic."""
    await asyncio.sleep(delay)
    _LOGGER.info("Re-running service discovery during streaming")
    await orchestrator.refresh_discovery(session)
    try:
        data = await orchestrator.read(session, LUXOMETER_DATA)
    except CharacteristicNotFoundError:
        _LOGGER.warning("Device has no luxometer characteristic")
        return
    _LOGGER.info("luxometer data %s (%.2f lux)", data.hex(), decode_lux(data))


def _log_disrupt_failure(task: asyncio.Task) -> None:
    if task.cancelled() or task.exception() is None:
        return
    _LOGGER.error("Mid-stream rediscovery failed: %s", task.exception())


async def run(
        identity: str,
        transport: BaseTransport | None = None,
        config: SessionConfig | None = None,
        disrupt_after: float = DISRUPT_AFTER,
        max_notifications: int | None = None,
) -> int:
    """Run the demonstration.

    Args:
        identity: Target device identity
        transport: Transport adapter (default: BleakTransport)
        config: Session settings (default: SessionConfig())
        disrupt_after: Seconds of streaming before discovery is re-run
        max_notifications: Stop after this many notifications (default: stream forever)

    Returns:
        Process exit code

    Raises:
        DeviceNotFoundError: If the device is not seen during the scan
    """
    config = config or SessionConfig()
    orchestrator = SessionOrchestrator(transport or BleakTransport.from_config(config), config)

    _LOGGER.info("Looking for device %s", identity)
    device = await orchestrator.find_device(identity)
    if device is None:
        raise DeviceNotFoundError(f"Device {identity} not found during scan")

    session = await orchestrator.connect_and_prepare(
        device.identity,
        [ConfigWrite(IR_TEMP_CONFIG, SENSOR_ENABLE)],
        read_uuids=[IR_TEMP_DATA],
        subscribe_uuids=[IR_TEMP_DATA],
    )
    async with session:
        _LOGGER.info("temperature data %s", session.values[IR_TEMP_DATA].hex())
        _LOGGER.info("Streaming notifications for %s", IR_TEMP_DATA)

        disrupt_task = asyncio.create_task(_disrupt(orchestrator, session, disrupt_after))
        disrupt_task.add_done_callback(_log_disrupt_failure)
        received = 0
        try:
            async for event in orchestrator.stream_notifications(session, IR_TEMP_DATA):
                if isinstance(event, SubscriptionLost):
                    _LOGGER.error("Stream for %s lost: %s", event.uuid, event.reason)
                    return 1

                object_c, ambient_c = decode_ir_temperature(event.payload)
                _LOGGER.info(
                    "notify[%s] = %s (object %.2fC, ambient %.2fC)",
                    event.uuid,
                    event.payload.hex(),
                    object_c,
                    ambient_c,
                )
                received += 1
                if max_notifications is not None and received >= max_notifications:
                    break
        finally:
            disrupt_task.cancel()
            # Failures were already logged by the done callback
            await asyncio.gather(disrupt_task, return_exceptions=True)

    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gattsession-demo",
        description="Stream SensorTag IR temperature notifications across a service rediscovery.",
    )
    parser.add_argument(
        "identity",
        help="Device handle: MAC address on Linux/Windows, 128-bit UUID on macOS",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        code = asyncio.run(run(args.identity))
    except KeyboardInterrupt:
        return
    except GattSessionError as err:
        _LOGGER.error("%s", err)
        code = 1
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
