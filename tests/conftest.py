"""Shared fixtures for GeoChat tests."""

import asyncio

import pytest

from geochat import Coordinate, EntityStore, Logger, RouteAlternative, Session


A = Coordinate(-122.41, 37.78)
B = Coordinate(-122.42, 37.79)
C = Coordinate(-122.43, 37.80)


class GatedRoutingClient:
    """Routing client whose responses are released by the test"""

    def __init__(self):
        self.calls: list[tuple[list[Coordinate], asyncio.Future]] = []

    async def fetch_routes_async(self, waypoints):
        future = asyncio.get_running_loop().create_future()
        self.calls.append((list(waypoints), future))
        return await future

    def resolve(self, index: int, alternatives):
        self.calls[index][1].set_result(alternatives)

    def fail(self, index: int, error: Exception):
        self.calls[index][1].set_exception(error)


def make_route(*coords, duration=600.0, distance=5000.0) -> RouteAlternative:
    return RouteAlternative(coordinates=tuple(coords), duration=duration, distance=distance)


async def settle():
    """Let scheduled tasks run until they block again"""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def quiet_logger():
    return Logger(echo=False)


@pytest.fixture
def store():
    return EntityStore()


@pytest.fixture
def gated_client():
    return GatedRoutingClient()


@pytest.fixture
def session(gated_client, quiet_logger):
    return Session(
        points=[{"lon": -122.45, "lat": 37.77, "label": "Cool graffiti"}],
        peers=[
            {"id": 1, "name": "Alice", "status": "online", "simulated": True,
             "path": [[-122.41, 37.78], [-122.40, 37.78], [-122.40, 37.79]]},
            {"id": 2, "name": "Bob", "status": "offline", "lon": -122.42, "lat": 37.79},
        ],
        client=gated_client,
        logger=quiet_logger,
    )
