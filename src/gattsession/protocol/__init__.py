"""GATT profile helpers."""

from .sensortag import (
    IR_TEMP_CONFIG,
    IR_TEMP_DATA,
    IR_TEMP_PERIOD,
    IR_TEMP_SERVICE,
    LUXOMETER_CONFIG,
    LUXOMETER_DATA,
    LUXOMETER_SERVICE,
    SENSOR_DISABLE,
    SENSOR_ENABLE,
    build_sensortag_uuid,
    decode_ir_temperature,
    decode_lux,
    parse_hex_payload,
)
from .uuids import BLUETOOTH_BASE_UUID, normalize_uuid, short_uuid

__all__ = [
    "BLUETOOTH_BASE_UUID",
    "normalize_uuid",
    "short_uuid",
    "build_sensortag_uuid",
    "decode_ir_temperature",
    "decode_lux",
    "parse_hex_payload",
    "IR_TEMP_SERVICE",
    "IR_TEMP_DATA",
    "IR_TEMP_CONFIG",
    "IR_TEMP_PERIOD",
    "LUXOMETER_SERVICE",
    "LUXOMETER_DATA",
    "LUXOMETER_CONFIG",
    "SENSOR_ENABLE",
    "SENSOR_DISABLE",
]
