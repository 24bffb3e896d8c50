"""TI CC2650 SensorTag GATT profile.

SensorTag UUIDs share a vendor base: f000XXXX-0451-4000-b000-000000000000,
where XXXX is the 16-bit stub of the characteristic.
"""

from __future__ import annotations

import struct

from .uuids import normalize_uuid

SENSORTAG_PREFIX = "f000"
SENSORTAG_BASE_UUID = "04514000b000000000000000"


def build_sensortag_uuid(stub: str) -> str:
    """Build a full SensorTag UUID from its 4-digit stub.

    Args:
        stub: 16-bit stub as hex, e.g. "aa01"

    Returns:
        Normalized 128-bit UUID

    Raises:
        ValueError: If stub is not 4 hex digits
    """
    if len(stub) != 4:
        raise ValueError(f"SensorTag stub must be 4 hex digits, got {stub!r}")
    return normalize_uuid(SENSORTAG_PREFIX + stub + SENSORTAG_BASE_UUID)


IR_TEMP_SERVICE = build_sensortag_uuid("aa00")
IR_TEMP_DATA = build_sensortag_uuid("aa01")
IR_TEMP_CONFIG = build_sensortag_uuid("aa02")
IR_TEMP_PERIOD = build_sensortag_uuid("aa03")

LUXOMETER_SERVICE = build_sensortag_uuid("aa70")
LUXOMETER_DATA = build_sensortag_uuid("aa71")
LUXOMETER_CONFIG = build_sensortag_uuid("aa72")

SENSOR_ENABLE = b"\x01"
SENSOR_DISABLE = b"\x00"

# TMP007 resolution per LSB after dropping the two status bits
_TMP007_SCALE = 0.03125


def decode_ir_temperature(data: bytes) -> tuple[float, float]:
    """Decode an IR temperature reading.

    Format: [object:2 LE][ambient:2 LE], each a 14-bit value in the upper bits.

    Args:
        data: Raw characteristic value (4 bytes)

    Returns:
        Tuple of (object temperature, ambient temperature) in Celsius

    Raises:
        ValueError: If data is shorter than 4 bytes
    """
    if len(data) < 4:
        raise ValueError(f"IR temperature data too short: {len(data)} bytes (need 4)")

    raw_object, raw_ambient = struct.unpack("<HH", data[0:4])
    return (raw_object >> 2) * _TMP007_SCALE, (raw_ambient >> 2) * _TMP007_SCALE


def decode_lux(data: bytes) -> float:
    """Decode an OPT3001 luxometer reading.

    Format: [raw:2 LE] with a 12-bit mantissa and a 4-bit exponent.

    Raises:
        ValueError: If data is shorter than 2 bytes
    """
    if len(data) < 2:
        raise ValueError(f"Luxometer data too short: {len(data)} bytes (need 2)")

    raw = struct.unpack("<H", data[0:2])[0]
    mantissa = raw & 0x0FFF
    exponent = (raw & 0xF000) >> 12
    return mantissa * (0.01 * (2 ** exponent))


def parse_hex_payload(text: str) -> bytes:
    """Parse a hex string such as "01" or "01:ff" into bytes.

    Raises:
        ValueError: If the string is empty or not valid hex
    """
    cleaned = text.strip().replace(":", "").replace(" ", "")
    if cleaned.lower().startswith("0x"):
        cleaned = cleaned[2:]
    if not cleaned:
        raise ValueError("Empty hex payload")
    if len(cleaned) % 2:
        raise ValueError(f"Hex payload must have an even number of digits: {text!r}")
    return bytes.fromhex(cleaned)
