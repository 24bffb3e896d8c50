"""Test the SensorTag streaming demo."""

from __future__ import annotations

import asyncio
import logging

import pytest

from gattsession import cli
from gattsession.exceptions import DeviceNotFoundError, TransportError
from gattsession.models import Device
from gattsession.protocol import IR_TEMP_DATA

from .conftest import ADDRESS, LUX_CONFIG, LUX_DATA, LUX_SERVICE


async def _wait_for_subscribe(transport):
    while "subscribe" not in transport.calls:
        await asyncio.sleep(0.01)


async def _notify_later(transport, payloads, delay=0.05):
    await _wait_for_subscribe(transport)
    for payload in payloads:
        await asyncio.sleep(delay)
        transport.notify(ADDRESS, IR_TEMP_DATA, payload)


@pytest.mark.asyncio
async def test_run_streams_across_rediscovery(transport, config, caplog) -> None:
    transport.advertisements = [Device(ADDRESS)]
    transport.values[(ADDRESS, LUX_DATA.handle)] = b"\x64\x10"
    notifier = asyncio.create_task(
        _notify_later(transport, [b"\x80\x0c\x00\x0d", b"\x84\x0c\x00\x0d"])
    )

    with caplog.at_level(logging.INFO, logger="gattsession"):
        code = await cli.run(
            ADDRESS, transport=transport, config=config, disrupt_after=0.02, max_notifications=2
        )
    await notifier

    assert code == 0
    assert transport.writes == [(ADDRESS, 0x24, b"\x01", True)]
    assert transport.calls.count("discover_services") == 2
    assert "disconnect" in transport.calls
    assert "luxometer data 6410 (2.00 lux)" in caplog.text
    assert "object 25.00C, ambient 26.00C" in caplog.text


@pytest.mark.asyncio
async def test_run_logs_failed_rediscovery_and_keeps_streaming(transport, config, caplog) -> None:
    transport.advertisements = [Device(ADDRESS)]

    async def _break_discovery() -> None:
        await _wait_for_subscribe(transport)
        transport.failures["discover_services"] = TransportError("ATT error")

    breaker = asyncio.create_task(_break_discovery())
    notifier = asyncio.create_task(
        _notify_later(transport, [b"\x80\x0c\x00\x0d", b"\x84\x0c\x00\x0d"])
    )

    with caplog.at_level(logging.INFO, logger="gattsession"):
        code = await cli.run(
            ADDRESS, transport=transport, config=config, disrupt_after=0.02, max_notifications=2
        )
    await asyncio.gather(breaker, notifier)

    assert code == 0
    assert "Mid-stream rediscovery failed: ATT error" in caplog.text
    assert "luxometer data" not in caplog.text


@pytest.mark.asyncio
async def test_run_reports_lost_stream(transport, config) -> None:
    transport.advertisements = [Device(ADDRESS)]

    async def _drop_ir_service() -> None:
        await _wait_for_subscribe(transport)
        transport.layouts[ADDRESS] = [(LUX_SERVICE, [LUX_DATA, LUX_CONFIG])]

    task = asyncio.create_task(_drop_ir_service())
    transport.values[(ADDRESS, LUX_DATA.handle)] = b"\x00\x00"

    code = await cli.run(ADDRESS, transport=transport, config=config, disrupt_after=0.05)
    await task

    assert code == 1


@pytest.mark.asyncio
async def test_run_device_not_found(transport, config) -> None:
    with pytest.raises(DeviceNotFoundError):
        await cli.run(ADDRESS, transport=transport, config=config)

    assert "connect" not in transport.calls


def test_parse_args() -> None:
    args = cli.parse_args(["aa:bb:cc:dd:ee:ff"])

    assert args.identity == "aa:bb:cc:dd:ee:ff"


def test_parse_args_requires_identity() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args([])


def test_main_exits_nonzero_on_error(monkeypatch) -> None:
    async def _run(identity):
        raise DeviceNotFoundError(f"Device {identity} not found during scan")

    monkeypatch.setattr(cli, "run", _run)

    with pytest.raises(SystemExit) as excinfo:
        cli.main([ADDRESS])

    assert excinfo.value.code == 1
