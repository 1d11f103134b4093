"""Text parsers for position sources."""

from .frame_parser import decode_frame, parse_frame
from .nmea_parser import NMEAParser, NMEAPosition

__all__ = ["NMEAParser", "NMEAPosition", "decode_frame", "parse_frame"]
