"""Main GeoChat session coordinator."""

from collections import deque
from typing import Callable, Iterable, Optional

from .config import CONFIG
from .drawing import DrawingModeController
from .errors import GeoChatError, LocationUnavailable
from .logger import Logger
from .models import (
    Coordinate,
    PointOfInterestSelection,
    PointSelection,
    TrackedPeer,
)
from .routing import OSRMClient, RouteCoordinator
from .selection import SelectionManager
from .simulator import LiveSimulator
from .store import EntityStore


class Session:
    """Owns one live map session and the components that make it up.

    Renderers feed input through the event and command methods (or
    `dispatch` for wire messages) and read everything back from
    `get_state()`. Call `subscribe` to be told when state changes.
    All methods must be called from the event loop that runs the session.
    """

    def __init__(self, points: Optional[Iterable[dict]] = None,
                 peers: Optional[Iterable[dict]] = None,
                 client=None,
                 config: Optional[dict] = None,
                 logger: Optional[Logger] = None,
                 log_path: Optional[str] = None):
        self.config = {**CONFIG, **(config or {})}
        self.logger = logger or Logger(log_path)
        self._listeners: list[Callable] = []

        self.store = EntityStore(peers=[TrackedPeer.from_dict(p) for p in peers or []])
        for point in points or []:
            self.store.add_point_of_interest(Coordinate(point["lon"], point["lat"]), point["label"])

        self.selection = SelectionManager(self.store, callback=self._state_changed)
        self.drawing = DrawingModeController(self.store, self.selection, callback=self._state_changed)

        self.client = client or OSRMClient(
            base_url=self.config["osrm_url"],
            profile=self.config["osrm_profile"],
            alternatives=self.config["route_alternatives"],
            timeout=self.config["route_timeout"],
        )
        self.routes = RouteCoordinator(self.client, logger=self.logger,
                                       callback=self._state_changed,
                                       on_no_route=self.notify)
        self.routes.watch(self.store)

        self.simulator = LiveSimulator(self.store, interval=self.config["simulation_interval"],
                                       logger=self.logger, callback=self._state_changed)

        self.user_location: Optional[Coordinate] = None
        self.notifications: deque[str] = deque(maxlen=self.config["notification_limit"])

    # Lifecycle

    async def start(self):
        self.simulator.start()

    async def close(self):
        try:
            await self.simulator.stop()
        finally:
            await self.routes.close()
            self.routes.unwatch(self.store)
        self.logger.log("Session closed")

    async def __aenter__(self) -> "Session":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # Change notification

    def subscribe(self, listener: Callable):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _state_changed(self):
        for listener in list(self._listeners):
            listener()

    def notify(self, message: str):
        """Queue a non-blocking message for the user"""
        self.notifications.append(message)
        self.logger.log("Notification", {"message": message})
        self._state_changed()

    # Inbound events

    def surface_click(self, lng: float, lat: float):
        coordinate = Coordinate(float(lng), float(lat))
        if self.drawing.handle_click(coordinate):
            return
        self.selection.select_point(coordinate)

    def marker_click(self, kind: str, marker_id: int):
        """Click on a marker. The renderer must not also send the surface click."""
        if kind not in ("waypoint", "point", "peer"):
            raise ValueError(f"Unknown marker kind: {kind}")
        try:
            coordinate = self._marker_coordinate(kind, marker_id)
        except GeoChatError:
            # Renderers may still show markers cleared by entering drawing mode
            if not self.drawing.active:
                raise
            self.logger.log("Ignoring click on stale marker", {"kind": kind, "id": marker_id})
            return

        if self.drawing.handle_click(coordinate):
            return
        if kind == "waypoint":
            self.selection.select_waypoint(marker_id)
        elif kind == "point":
            self.selection.select_point_of_interest(marker_id)
        else:
            self.logger.log("Peer marker clicked", {"peer_id": marker_id})

    def _marker_coordinate(self, kind: str, marker_id: int) -> Coordinate:
        if kind == "waypoint":
            return self.store.get_waypoint(marker_id)
        if kind == "point":
            return self.store.get_point_of_interest(marker_id).coordinate
        return self.store.get_peer(marker_id).coordinate

    def locate_result(self, lng: float, lat: float):
        self.user_location = Coordinate(float(lng), float(lat))
        self.logger.log("Location found", self.user_location.to_dict())
        self._state_changed()

    def locate_error(self, code):
        self.logger.log("Location unavailable", {"code": code})
        self.notify(f"Location unavailable ({code})")

    # Commands

    def add_point_of_interest(self, label: Optional[str] = None):
        current = self.selection.current
        if not isinstance(current, PointSelection):
            return None
        label = label or f"Blip #{len(self.store.points) + 1}"
        point = self.store.add_point_of_interest(current.coordinate, label)
        self.logger.log("Point of interest added", point.to_dict())
        self.selection.clear()
        return point

    def remove_point_of_interest(self, point_id: int):
        self.store.remove_point_of_interest(point_id)
        self._state_changed()

    def add_waypoint(self):
        current = self.selection.current
        if not isinstance(current, (PointSelection, PointOfInterestSelection)):
            return None
        self.store.add_waypoint(current.coordinate)
        self.selection.clear()
        return current.coordinate

    def delete_waypoint(self, index: int):
        self.store.remove_waypoint(index)

    def select_route(self, index: int):
        self.routes.select_route(index)

    def toggle_drawing(self):
        mode = self.drawing.toggle()
        self.logger.log("Drawing mode", {"mode": mode.value})
        return mode

    def clear_waypoints(self):
        self.store.clear_waypoints()

    def clear_drawn_area(self):
        self.store.clear_drawn_area()
        self._state_changed()

    def close_selection(self):
        self.selection.clear()

    def route_from_location_to(self, point_id: int):
        point = self.store.get_point_of_interest(point_id)
        if self.user_location is None:
            self.notify("Location unavailable, cannot route")
            raise LocationUnavailable("Current location is not known",
                                      details={"point_id": point_id})
        self.store.set_waypoints([self.user_location, point.coordinate])
        self.selection.clear()

    # Wire dispatch

    def dispatch(self, msg_type: str, data: Optional[dict] = None):
        """Apply one inbound message as sent by a renderer"""
        data = data or {}
        handlers = {
            "surface_click": lambda: self.surface_click(data["lng"], data["lat"]),
            "marker_click": lambda: self.marker_click(data["kind"], int(data["id"])),
            "locate_result": lambda: self.locate_result(data["lng"], data["lat"]),
            "locate_error": lambda: self.locate_error(data.get("code")),
            "add_point_of_interest": lambda: self.add_point_of_interest(data.get("label")),
            "remove_point_of_interest": lambda: self.remove_point_of_interest(int(data["id"])),
            "add_waypoint": self.add_waypoint,
            "delete_waypoint": lambda: self.delete_waypoint(int(data["index"])),
            "select_route": lambda: self.select_route(int(data["index"])),
            "toggle_drawing": self.toggle_drawing,
            "clear_waypoints": self.clear_waypoints,
            "clear_drawn_area": self.clear_drawn_area,
            "close_selection": self.close_selection,
            "route_from_location_to": lambda: self.route_from_location_to(int(data["id"])),
        }
        handler = handlers.get(msg_type)
        if handler is None:
            raise ValueError(f"Unknown message type: {msg_type}")
        try:
            return handler()
        except GeoChatError as e:
            self.logger.log("Command rejected", {"type": msg_type, **e.to_payload()})
            raise

    # Outbound state

    def get_state(self) -> dict:
        return {
            "points": [p.to_dict() for p in self.store.points],
            "waypoints": [w.to_list() for w in self.store.waypoints],
            "peers": [p.to_dict() for p in self.store.peers],
            "routes": self.routes.to_dict(),
            "selection": self.selection.current.to_dict(),
            "drawn_area": [v.to_list() for v in self.store.drawn_area],
            "drawing_mode": self.drawing.mode.value,
            "user_location": self.user_location.to_dict() if self.user_location else None,
            "notifications": list(self.notifications),
        }
