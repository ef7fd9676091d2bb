"""Route computation via the OSRM HTTP API, guarded against stale responses."""

import asyncio
from typing import Callable, Optional, Sequence

import requests

from .config import CONFIG
from .errors import InvalidIndex, RouteFetchFailure
from .logger import Logger
from .models import Coordinate, RouteAlternative
from .store import EntityStore


def parse_routes(data) -> list[RouteAlternative]:
    """Convert an OSRM response body into route alternatives.

    A missing or null ``routes`` member means no route was found. Anything
    else that does not look like a list of GeoJSON routes is an error.
    """
    if not isinstance(data, dict):
        raise RouteFetchFailure("Routing response is not an object")
    routes = data.get("routes")
    if routes is None:
        return []
    if not isinstance(routes, list):
        raise RouteFetchFailure("Routing response 'routes' is not a list")

    alternatives = []
    for i, route in enumerate(routes):
        try:
            coords = tuple(Coordinate.from_pair(p) for p in route["geometry"]["coordinates"])
            alternatives.append(RouteAlternative(
                coordinates=coords,
                duration=float(route["duration"]),
                distance=float(route["distance"]),
            ))
        except (KeyError, TypeError, ValueError) as e:
            raise RouteFetchFailure(f"Malformed route at position {i}",
                                    details={"error": str(e)}) from e
    return alternatives


class OSRMClient:
    """Fetch driving routes with alternatives from an OSRM server"""

    def __init__(self, base_url: str = CONFIG["osrm_url"],
                 profile: str = CONFIG["osrm_profile"],
                 alternatives: bool = CONFIG["route_alternatives"],
                 timeout: float = CONFIG["route_timeout"]):
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.alternatives = alternatives
        self.timeout = timeout

    def build_url(self, waypoints: Sequence[Coordinate]) -> str:
        # OSRM wants lon,lat pairs joined by semicolons, in leg order
        coordinates = ";".join(f"{c.lon},{c.lat}" for c in waypoints)
        return f"{self.base_url}/route/v1/{self.profile}/{coordinates}"

    def build_params(self) -> dict:
        return {
            "overview": "full",
            "geometries": "geojson",
            "alternatives": "true" if self.alternatives else "false",
        }

    def fetch_routes(self, waypoints: Sequence[Coordinate]) -> list[RouteAlternative]:
        """Blocking fetch. Raises RouteFetchFailure on any transport or parse problem."""
        if len(waypoints) < 2:
            return []
        url = self.build_url(waypoints)
        try:
            response = requests.get(url, params=self.build_params(), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise RouteFetchFailure(f"Routing request failed: {e}", details={"url": url}) from e
        except ValueError as e:
            raise RouteFetchFailure("Routing response is not valid JSON", details={"url": url}) from e
        return parse_routes(data)

    async def fetch_routes_async(self, waypoints: Sequence[Coordinate]) -> list[RouteAlternative]:
        return await asyncio.to_thread(self.fetch_routes, list(waypoints))


class RouteCoordinator:
    """Keeps route alternatives in step with the waypoint sequence.

    Every waypoint change bumps `generation`. A request carries the generation
    it was issued under, and its response (success or failure) is applied only
    if that is still the current generation when it arrives. Superseded
    requests are left to finish but their results are dropped.
    """

    def __init__(self, client, logger: Optional[Logger] = None,
                 callback: Optional[Callable] = None,
                 on_no_route: Optional[Callable[[str], None]] = None):
        self.client = client
        self.logger = logger
        self.callback = callback
        self.on_no_route = on_no_route
        self.alternatives: list[RouteAlternative] = []
        self.active_index = 0
        self.is_loading = False
        self.generation = 0
        self.requests_issued = 0
        self.closed = False
        self._tasks: set[asyncio.Task] = set()

    def _log(self, message: str, data: Optional[dict] = None):
        if self.logger:
            self.logger.log(message, data)

    def _changed(self):
        if self.callback:
            self.callback()

    def watch(self, store: EntityStore):
        store.subscribe("waypoints_changed", self.on_waypoints_changed)

    def unwatch(self, store: EntityStore):
        store.unsubscribe("waypoints_changed", self.on_waypoints_changed)

    def on_waypoints_changed(self, waypoints: Sequence[Coordinate]):
        if self.closed:
            return
        self.generation += 1
        if len(waypoints) < 2:
            self._replace([])
            self.is_loading = False
            self._changed()
            return

        generation = self.generation
        self.is_loading = True
        self.requests_issued += 1
        self._log("Requesting route", {"generation": generation, "waypoints": len(waypoints)})
        task = asyncio.get_running_loop().create_task(
            self._request(generation, tuple(waypoints))
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._changed()

    async def _request(self, generation: int, waypoints: tuple[Coordinate, ...]):
        error = None
        try:
            alternatives = await self.client.fetch_routes_async(waypoints)
        except RouteFetchFailure as e:
            alternatives = []
            error = e

        if generation != self.generation:
            self._log("Discarding stale route response",
                      {"generation": generation, "current": self.generation})
            return

        if error:
            self._log("Route fetch failed", {"generation": generation, "error": error.message})
        elif not alternatives:
            self._log("No route found", {"generation": generation})
        else:
            self._log("Route received", {
                "generation": generation,
                "alternatives": [a.summary() for a in alternatives],
            })
        self._replace(alternatives)
        self.is_loading = False
        try:
            if not alternatives and self.on_no_route:
                self.on_no_route("No route available")
            self._changed()
        except Exception as e:
            self._log("Route listener failed", {"generation": generation, "error": repr(e)})

    def _replace(self, alternatives: list[RouteAlternative]):
        self.alternatives = list(alternatives)
        self.active_index = 0

    def select_route(self, index: int):
        if not isinstance(index, int) or not 0 <= index < len(self.alternatives):
            raise InvalidIndex(f"Route index {index} out of range",
                               details={"index": index, "length": len(self.alternatives)})
        self.active_index = index
        self._changed()

    @property
    def active_route(self) -> Optional[RouteAlternative]:
        if not self.alternatives:
            return None
        return self.alternatives[self.active_index]

    def display_order(self) -> list[int]:
        """Canonical indices with the active alternative last, so it paints on top"""
        if not self.alternatives:
            return []
        others = [i for i in range(len(self.alternatives)) if i != self.active_index]
        return others + [self.active_index]

    def display_alternatives(self) -> list[tuple[int, RouteAlternative]]:
        return [(i, self.alternatives[i]) for i in self.display_order()]

    async def wait_idle(self):
        """Wait until no route request is outstanding"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self):
        """Invalidate pending requests so late responses are inert.

        After close, waypoint changes no longer issue requests.
        """
        self.closed = True
        self.generation += 1
        self.is_loading = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def to_dict(self) -> dict:
        return {
            "alternatives": [a.to_dict() for a in self.alternatives],
            "active_index": self.active_index,
            "display_order": self.display_order(),
            "is_loading": self.is_loading,
        }
