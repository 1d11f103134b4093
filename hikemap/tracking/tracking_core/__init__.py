"""Position tracking engine: geodesy, jitter filter, source arbitration,
BLE peripheral handling, map annotations and the session that owns them."""

from .annotations import AnnotationSynchronizer
from .arbiter import SourceArbiter
from .areas import DEFAULT_AREA, HIKING_AREAS, HikingArea, get_area
from .camera import CameraFollowController
from .errors import (
    ConfigurationError,
    FrameParseError,
    InvalidCoordinateError,
    MissingCredentialError,
    SessionClosedError,
    TrackingError,
)
from .geo import GeoPoint, distance, haversine_m, path_length_m
from .map_host import CameraState, HeadlessMapHost, MapHost, MarkerStyle, PolylineStyle
from .recorder import Accepted, IngestResult, PathRecorder, Rejected
from .session import TrackingSession
from .state import Source, TrackingState

__all__ = [
    "Accepted",
    "AnnotationSynchronizer",
    "CameraFollowController",
    "CameraState",
    "ConfigurationError",
    "DEFAULT_AREA",
    "FrameParseError",
    "GeoPoint",
    "HIKING_AREAS",
    "HeadlessMapHost",
    "HikingArea",
    "IngestResult",
    "InvalidCoordinateError",
    "MapHost",
    "MarkerStyle",
    "MissingCredentialError",
    "PathRecorder",
    "PolylineStyle",
    "Rejected",
    "SessionClosedError",
    "Source",
    "SourceArbiter",
    "TrackingError",
    "TrackingSession",
    "TrackingState",
    "distance",
    "get_area",
    "haversine_m",
    "path_length_m",
]
