"""Parser for the BLE peripheral's ``"<lat>,<lon>"`` text frames."""

from __future__ import annotations

from typing import Union

from ..constants import FRAME_ENCODING
from ..errors import FrameParseError, InvalidCoordinateError
from ..geo import GeoPoint


def decode_frame(payload: Union[bytes, bytearray, memoryview, str]) -> str:
    """Decode a notification payload to trimmed text."""
    if isinstance(payload, str):
        return payload.strip()
    try:
        return bytes(payload).decode(FRAME_ENCODING).strip()
    except UnicodeDecodeError as exc:
        raise FrameParseError(f"Frame is not valid {FRAME_ENCODING}: {exc}", payload) from exc


def parse_frame(payload: Union[bytes, bytearray, memoryview, str]) -> GeoPoint:
    """Parse one notification into a validated position.

    The frame must hold exactly two comma-separated floats, latitude first.
    Surrounding whitespace and line endings are ignored.

    Raises:
        FrameParseError: on decoding, field count, number or range errors.
    """
    text = decode_frame(payload)
    fields = text.split(",")
    if len(fields) != 2:
        raise FrameParseError(f"Expected 2 comma-separated fields, got {len(fields)}: {text!r}", payload)

    try:
        lat = float(fields[0])
        lon = float(fields[1])
    except ValueError as exc:
        raise FrameParseError(f"Non-numeric field in frame {text!r}", payload) from exc

    try:
        return GeoPoint(lat, lon)
    except InvalidCoordinateError as exc:
        raise FrameParseError(str(exc), payload) from exc


__all__ = ["decode_frame", "parse_frame"]
