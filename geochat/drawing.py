"""Free-form area drawing mode."""

from typing import Callable, Optional

from .models import Coordinate, DrawingMode
from .selection import SelectionManager
from .store import EntityStore


class DrawingModeController:
    """Two-state toggle that captures map clicks as drawn-area vertices"""

    def __init__(self, store: EntityStore, selection: SelectionManager,
                 callback: Optional[Callable] = None):
        self.store = store
        self.selection = selection
        self.callback = callback
        self.mode = DrawingMode.OFF

    @property
    def active(self) -> bool:
        return self.mode is DrawingMode.ON

    def toggle(self) -> DrawingMode:
        if self.active:
            # Finishing keeps the vertices
            self.mode = DrawingMode.OFF
        else:
            self.store.clear_waypoints()
            self.store.clear_drawn_area()
            self.selection.clear()
            self.mode = DrawingMode.ON
        if self.callback:
            self.callback()
        return self.mode

    def handle_click(self, coordinate: Coordinate) -> bool:
        """Consume the click as a vertex while drawing. Returns True if consumed."""
        if not self.active:
            return False
        self.store.append_drawing_vertex(coordinate)
        if self.callback:
            self.callback()
        return True
