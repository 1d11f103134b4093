"""REST control API for a running tracking session."""

from .controller import TrackingApiController
from .routes import API_PREFIX, setup_tracking_routes
from .server import TrackingApiServer, create_app

__all__ = [
    "API_PREFIX",
    "TrackingApiController",
    "TrackingApiServer",
    "create_app",
    "setup_tracking_routes",
]
