"""Canonical session collections: points, waypoints, peers, drawn area."""

import itertools
from collections import defaultdict
from typing import Callable, Iterable, Optional

from .errors import InvalidIndex, UnknownEntity
from .models import Coordinate, PointOfInterest, TrackedPeer


class EntityStore:
    """Owns points of interest, the waypoint sequence, tracked peers and the drawn area.

    Observers register with `subscribe(event, callback)`. Events:

    - ``waypoints_changed(waypoints)``: the waypoint sequence differs from before
    - ``waypoint_removed(index)``: position `index` was deleted, later ones shifted down
    - ``point_removed(point_id)``
    """

    EVENTS = ("waypoints_changed", "waypoint_removed", "point_removed")

    def __init__(self, peers: Optional[Iterable[TrackedPeer]] = None):
        self.points: list[PointOfInterest] = []
        self.waypoints: list[Coordinate] = []
        self.peers: list[TrackedPeer] = list(peers or [])
        self.drawn_area: list[Coordinate] = []
        self._ids = itertools.count(1)
        self._listeners: dict[str, list[Callable]] = defaultdict(list)

    # Observers

    def subscribe(self, event: str, callback: Callable):
        if event not in self.EVENTS:
            raise ValueError(f"Unknown store event: {event}")
        self._listeners[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable):
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def _emit(self, event: str, *args):
        for callback in list(self._listeners[event]):
            callback(*args)

    def _waypoints_changed(self):
        self._emit("waypoints_changed", tuple(self.waypoints))

    # Points of interest

    def add_point_of_interest(self, coordinate: Coordinate, label: str) -> PointOfInterest:
        point = PointOfInterest(id=next(self._ids), coordinate=coordinate, label=label)
        self.points.append(point)
        return point

    def get_point_of_interest(self, point_id: int) -> PointOfInterest:
        for point in self.points:
            if point.id == point_id:
                return point
        raise UnknownEntity(f"No point of interest with id {point_id}",
                            details={"point_id": point_id})

    def remove_point_of_interest(self, point_id: int) -> PointOfInterest:
        point = self.get_point_of_interest(point_id)
        self.points.remove(point)
        self._emit("point_removed", point_id)
        return point

    # Waypoints

    def add_waypoint(self, coordinate: Coordinate):
        self.waypoints.append(coordinate)
        self._waypoints_changed()

    def set_waypoints(self, coordinates: Iterable[Coordinate]):
        """Replace the whole sequence as a single mutation"""
        coordinates = list(coordinates)
        if coordinates == self.waypoints:
            return
        self.waypoints = coordinates
        self._waypoints_changed()

    def get_waypoint(self, index: int) -> Coordinate:
        self._check_waypoint_index(index)
        return self.waypoints[index]

    def remove_waypoint(self, index: int) -> Coordinate:
        self._check_waypoint_index(index)
        removed = self.waypoints.pop(index)
        self._emit("waypoint_removed", index)
        self._waypoints_changed()
        return removed

    def clear_waypoints(self):
        if not self.waypoints:
            return
        self.waypoints = []
        self._waypoints_changed()

    def _check_waypoint_index(self, index: int):
        if not isinstance(index, int) or not 0 <= index < len(self.waypoints):
            raise InvalidIndex(f"Waypoint index {index} out of range",
                               details={"index": index, "length": len(self.waypoints)})

    # Peers

    def get_peer(self, peer_id: int) -> TrackedPeer:
        for peer in self.peers:
            if peer.id == peer_id:
                return peer
        raise UnknownEntity(f"No tracked peer with id {peer_id}", details={"peer_id": peer_id})

    # Drawn area

    def append_drawing_vertex(self, coordinate: Coordinate):
        self.drawn_area.append(coordinate)

    def clear_drawn_area(self):
        self.drawn_area = []
