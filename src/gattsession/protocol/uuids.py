"""Bluetooth UUID normalisation."""

from __future__ import annotations

from bleak.uuids import normalize_uuid_str

from ..exceptions import InvalidUUIDError

BLUETOOTH_BASE_UUID = "00000000-0000-1000-8000-00805f9b34fb"


def normalize_uuid(uuid: str) -> str:
    """Normalize a UUID string to lower-case dashed 128-bit form.

    Accepts 16-bit ("2a19") and 32-bit short forms, undashed 128-bit UUIDs
    ("f000aa0104514000b000000000000000") and the usual dashed form.

    Args:
        uuid: UUID string in any of the accepted forms

    Returns:
        Canonical UUID, e.g. "f000aa01-0451-4000-b000-000000000000"

    Raises:
        InvalidUUIDError: If the string is not a valid UUID
    """
    if not isinstance(uuid, str):
        raise InvalidUUIDError(f"UUID must be a string, got {type(uuid).__name__}")

    text = uuid.strip().lower()
    if text.startswith("0x"):
        text = text[2:]

    try:
        return normalize_uuid_str(text)
    except ValueError as e:
        raise InvalidUUIDError(f"Invalid UUID: {uuid!r}") from e


def short_uuid(uuid: str) -> str:
    """Return the 16-bit form of a Bluetooth SIG UUID, or the full UUID otherwise."""
    full = normalize_uuid(uuid)
    if full[:4] == "0000" and full[8:] == BLUETOOTH_BASE_UUID[8:]:
        return full[4:8]
    return full
