"""GeoChat - live map session coordinator."""

from .config import CONFIG, DEFAULT_POINTS, DEFAULT_PEERS
from .errors import (
    GeoChatError,
    InvalidIndex,
    UnknownEntity,
    RouteFetchFailure,
    LocationUnavailable,
)
from .models import (
    Coordinate,
    PointOfInterest,
    TrackedPeer,
    RouteAlternative,
    NoSelection,
    PointSelection,
    WaypointSelection,
    PointOfInterestSelection,
    DrawingMode,
)
from .logger import Logger
from .store import EntityStore
from .selection import SelectionManager
from .drawing import DrawingModeController
from .routing import OSRMClient, RouteCoordinator, parse_routes
from .simulator import LiveSimulator
from .session import Session

__all__ = [
    "CONFIG",
    "DEFAULT_POINTS",
    "DEFAULT_PEERS",
    "GeoChatError",
    "InvalidIndex",
    "UnknownEntity",
    "RouteFetchFailure",
    "LocationUnavailable",
    "Coordinate",
    "PointOfInterest",
    "TrackedPeer",
    "RouteAlternative",
    "NoSelection",
    "PointSelection",
    "WaypointSelection",
    "PointOfInterestSelection",
    "DrawingMode",
    "Logger",
    "EntityStore",
    "SelectionManager",
    "DrawingModeController",
    "OSRMClient",
    "RouteCoordinator",
    "parse_routes",
    "LiveSimulator",
    "Session",
]
