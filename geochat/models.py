"""Data classes for GeoChat."""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Union


@dataclass(frozen=True)
class Coordinate:
    """A geographic position, longitude first as on the wire"""
    lon: float
    lat: float

    def to_list(self) -> list[float]:
        return [self.lon, self.lat]

    def to_dict(self) -> dict:
        return {"lon": self.lon, "lat": self.lat}

    @classmethod
    def from_pair(cls, pair) -> "Coordinate":
        lon, lat = pair
        return cls(float(lon), float(lat))


@dataclass(frozen=True)
class PointOfInterest:
    """A user-placed marker ("blip")"""
    id: int
    coordinate: Coordinate
    label: str

    def to_dict(self) -> dict:
        return {"id": self.id, "label": self.label, **self.coordinate.to_dict()}


@dataclass
class TrackedPeer:
    """A friend shown on the map. Only LiveSimulator moves `coordinate`."""
    id: int
    name: str
    status: str  # "online" | "offline"
    coordinate: Coordinate
    path: tuple[Coordinate, ...] = ()
    path_index: int = 0
    simulated: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            **self.coordinate.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TrackedPeer":
        path = tuple(Coordinate.from_pair(p) for p in d.get("path", ()))
        start = d.get("path_index", 0)
        if path:
            start %= len(path)
            coordinate = path[start]
        else:
            coordinate = Coordinate(float(d["lon"]), float(d["lat"]))
        status = d.get("status", "offline")
        if status not in ("online", "offline"):
            raise ValueError(f"Unknown peer status: {status!r}")
        return cls(
            id=d["id"],
            name=d["name"],
            status=status,
            coordinate=coordinate,
            path=path,
            path_index=start,
            simulated=bool(d.get("simulated", False)) and bool(path),
        )


@dataclass(frozen=True)
class RouteAlternative:
    """One candidate path returned by the routing service"""
    coordinates: tuple[Coordinate, ...]
    duration: float  # seconds
    distance: float  # meters

    def to_dict(self) -> dict:
        return {
            "coordinates": [c.to_list() for c in self.coordinates],
            "duration": self.duration,
            "distance": self.distance,
        }

    def summary(self) -> str:
        return f"{self.duration / 60:.0f} min, {self.distance / 1000:.2f} km"


# Selection variants. Exactly one is active at a time.

@dataclass(frozen=True)
class NoSelection:
    kind: ClassVar[str] = "none"

    @property
    def coordinate(self) -> Optional[Coordinate]:
        return None

    def to_dict(self) -> dict:
        return {"kind": self.kind}


@dataclass(frozen=True)
class PointSelection:
    coordinate: Coordinate
    kind: ClassVar[str] = "point"

    def to_dict(self) -> dict:
        return {"kind": self.kind, **self.coordinate.to_dict()}


@dataclass(frozen=True)
class WaypointSelection:
    index: int
    coordinate: Coordinate
    kind: ClassVar[str] = "waypoint"

    def to_dict(self) -> dict:
        return {"kind": self.kind, "index": self.index, **self.coordinate.to_dict()}


@dataclass(frozen=True)
class PointOfInterestSelection:
    point: PointOfInterest
    kind: ClassVar[str] = "point_of_interest"

    @property
    def coordinate(self) -> Coordinate:
        return self.point.coordinate

    def to_dict(self) -> dict:
        return {"kind": self.kind, "point": self.point.to_dict()}


Selection = Union[NoSelection, PointSelection, WaypointSelection, PointOfInterestSelection]


class DrawingMode(Enum):
    OFF = "off"
    ON = "on"
