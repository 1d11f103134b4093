"""Test helpers for the hikemap test suite.

Usage:
    from tests.infrastructure.helpers import generate_nmea_sentence, wait_until
"""

from tests.infrastructure.helpers.async_helpers import wait_until
from tests.infrastructure.helpers.generators import generate_gps_track, generate_nmea_sentence

__all__ = ["generate_gps_track", "generate_nmea_sentence", "wait_until"]
