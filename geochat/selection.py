"""The single active map selection."""

from typing import Callable, Optional

from .models import (
    Coordinate,
    NoSelection,
    PointOfInterestSelection,
    PointSelection,
    Selection,
    WaypointSelection,
)
from .store import EntityStore


class SelectionManager:
    """Holds exactly one Selection variant and keeps it valid against the store"""

    def __init__(self, store: EntityStore, callback: Optional[Callable] = None):
        self.store = store
        self.callback = callback
        self.current: Selection = NoSelection()
        store.subscribe("waypoint_removed", self._on_waypoint_removed)
        store.subscribe("waypoints_changed", self._on_waypoints_changed)
        store.subscribe("point_removed", self._on_point_removed)

    def _set(self, selection: Selection):
        self.current = selection
        if self.callback:
            self.callback()

    def select_point(self, coordinate: Coordinate):
        self._set(PointSelection(coordinate))

    def select_waypoint(self, index: int):
        self._set(WaypointSelection(index, self.store.get_waypoint(index)))

    def select_point_of_interest(self, point_id: int):
        self._set(PointOfInterestSelection(self.store.get_point_of_interest(point_id)))

    def clear(self):
        if not isinstance(self.current, NoSelection):
            self._set(NoSelection())

    # Store observers

    def _on_waypoint_removed(self, index: int):
        # Positions at and after `index` now name different waypoints.
        if isinstance(self.current, WaypointSelection) and self.current.index >= index:
            self.clear()

    def _on_waypoints_changed(self, waypoints: tuple[Coordinate, ...]):
        current = self.current
        if not isinstance(current, WaypointSelection):
            return
        if current.index >= len(waypoints) or waypoints[current.index] != current.coordinate:
            self.clear()

    def _on_point_removed(self, point_id: int):
        if isinstance(self.current, PointOfInterestSelection) and self.current.point.id == point_id:
            self.clear()
