"""Position extraction from NMEA-0183 sentences.

Only the sentences that carry a position are handled ($--GGA, $--RMC,
$--GLL); the location service needs latitude, longitude and fix validity and
nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..errors import InvalidCoordinateError
from ..geo import GeoPoint


@dataclass(frozen=True, slots=True)
class NMEAPosition:
    """Position reported by one NMEA sentence."""

    sentence_type: str
    latitude: Optional[float]
    longitude: Optional[float]
    fix_valid: bool

    def to_point(self) -> Optional[GeoPoint]:
        """Return a validated point, or None without a usable fix."""
        if not self.fix_valid or self.latitude is None or self.longitude is None:
            return None
        try:
            return GeoPoint(self.latitude, self.longitude)
        except InvalidCoordinateError:
            return None


def _parse_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def parse_latlon(value: Optional[str], hemisphere: Optional[str], *, is_lat: bool) -> Optional[float]:
    """Convert NMEA ``DDMM.MMMM`` / ``DDDMM.MMMM`` to signed decimal degrees."""
    if not value or not hemisphere:
        return None
    deg_len = 2 if is_lat else 3
    if len(value) < deg_len:
        return None
    try:
        degrees = int(value[:deg_len])
        minutes = float(value[deg_len:])
    except ValueError:
        return None
    decimal = degrees + minutes / 60.0
    if hemisphere.upper() in ("S", "W"):
        decimal = -decimal
    return decimal


def validate_checksum(sentence: str) -> bool:
    """Check the XOR checksum after ``*``."""
    if not sentence.startswith("$") or "*" not in sentence:
        return False
    payload, checksum_str = sentence[1:].split("*", 1)
    try:
        expected = int(checksum_str[:2], 16)
    except ValueError:
        return False
    calculated = 0
    for char in payload:
        calculated ^= ord(char)
    return calculated == expected


def _from_gga(fields: List[str]) -> Optional[NMEAPosition]:
    if len(fields) < 6:
        return None
    return NMEAPosition(
        sentence_type="GGA",
        latitude=parse_latlon(fields[1], fields[2], is_lat=True),
        longitude=parse_latlon(fields[3], fields[4], is_lat=False),
        fix_valid=(_parse_int(fields[5]) or 0) > 0,
    )


def _from_rmc(fields: List[str]) -> Optional[NMEAPosition]:
    if len(fields) < 6:
        return None
    return NMEAPosition(
        sentence_type="RMC",
        latitude=parse_latlon(fields[2], fields[3], is_lat=True),
        longitude=parse_latlon(fields[4], fields[5], is_lat=False),
        fix_valid=(fields[1] or "").upper() == "A",
    )


def _from_gll(fields: List[str]) -> Optional[NMEAPosition]:
    if len(fields) < 4:
        return None
    status = fields[5] if len(fields) > 5 else ""
    return NMEAPosition(
        sentence_type="GLL",
        latitude=parse_latlon(fields[0], fields[1], is_lat=True),
        longitude=parse_latlon(fields[2], fields[3], is_lat=False),
        fix_valid=(status or "").upper() == "A",
    )


_SENTENCE_PARSERS: Dict[str, Callable[[List[str]], Optional[NMEAPosition]]] = {
    "GGA": _from_gga,
    "RMC": _from_rmc,
    "GLL": _from_gll,
}


class NMEAParser:
    """Turns raw sentences into :class:`NMEAPosition` values."""

    def __init__(self, validate_checksums: bool = True):
        self._validate_checksums = validate_checksums
        self.sentences_seen = 0
        self.sentences_rejected = 0

    def parse_sentence(self, sentence: str) -> Optional[NMEAPosition]:
        """Parse one sentence. Returns None for unsupported or corrupt input."""
        if not sentence or not sentence.startswith("$"):
            return None
        self.sentences_seen += 1

        if self._validate_checksums and not validate_checksum(sentence):
            self.sentences_rejected += 1
            return None

        payload = sentence[1:].split("*", 1)[0]
        header, *fields = payload.split(",")
        handler = _SENTENCE_PARSERS.get(header[-3:].upper())
        if handler is None:
            return None
        return handler(fields)


__all__ = ["NMEAParser", "NMEAPosition", "parse_latlon", "validate_checksum"]
