"""Tracking engine constants and configuration defaults."""

# Geodesy
EARTH_RADIUS_M = 6_371_000.0

# Sample filter
DEFAULT_DISTANCE_THRESHOLD_M = 10.0

# Camera follow
CAMERA_ANIMATION_MS = 500
DEFAULT_INITIAL_ZOOM = 10.0

# BLE peripheral (Nordic UART style)
BLE_SERVICE_UUID = "6e400001-b5a3-f393-e0a9-e50e24dcca9e"
BLE_NOTIFY_CHARACTERISTIC_UUID = "6e400003-b5a3-f393-e0a9-e50e24dcca9e"
BLE_SCAN_WINDOW_S = 10.0
BLE_CONNECT_TIMEOUT_S = 15.0
FRAME_ENCODING = "utf-8"

# Annotation styles (ARGB)
MARKER_COLOR = 0xFF0000FF
MARKER_RADIUS = 12.0
MARKER_STROKE_COLOR = 0xFFFFFFFF
MARKER_STROKE_WIDTH = 2.0
PATH_LINE_COLOR = 0xFF0000FF
PATH_LINE_WIDTH = 4.0

# Onboard serial NMEA receiver
DEFAULT_SERIAL_PORT = "/dev/serial0"
DEFAULT_BAUD_RATE = 9600

# Map credential
ACCESS_TOKEN_ENV = "MAPBOX_ACCESS_TOKEN"
