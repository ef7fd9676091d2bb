import asyncio

import pytest
import requests

from geochat import (
    InvalidIndex,
    OSRMClient,
    RouteCoordinator,
    RouteFetchFailure,
    parse_routes,
)
from geochat.routing import requests as routing_requests

from conftest import A, B, C, GatedRoutingClient, make_route, settle


class FakeResponse:
    def __init__(self, payload=None, status_code=200, json_error=None):
        self.payload = payload
        self.status_code = status_code
        self.json_error = json_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.json_error:
            raise self.json_error
        return self.payload


OSRM_BODY = {
    "code": "Ok",
    "routes": [
        {
            "geometry": {"type": "LineString", "coordinates": [[-122.41, 37.78], [-122.42, 37.79]]},
            "duration": 600,
            "distance": 5000,
        },
        {
            "geometry": {"type": "LineString", "coordinates": [[-122.41, 37.78], [-122.415, 37.785], [-122.42, 37.79]]},
            "duration": 720.5,
            "distance": 5400.2,
        },
    ],
}


# OSRMClient

def test_build_url_orders_lon_lat_pairs():
    client = OSRMClient(base_url="https://osrm.example/", profile="foot")
    assert client.build_url([A, B, C]) == (
        "https://osrm.example/route/v1/foot/-122.41,37.78;-122.42,37.79;-122.43,37.8"
    )


def test_build_params_requests_geojson_alternatives():
    assert OSRMClient(alternatives=True).build_params() == {
        "overview": "full", "geometries": "geojson", "alternatives": "true",
    }
    assert OSRMClient(alternatives=False).build_params()["alternatives"] == "false"


def test_fetch_routes_parses_alternatives(monkeypatch):
    captured = {}

    def fake_get(url, params=None, timeout=None):
        captured.update(url=url, params=params, timeout=timeout)
        return FakeResponse(OSRM_BODY)

    monkeypatch.setattr(routing_requests, "get", fake_get)
    client = OSRMClient(base_url="https://osrm.example", timeout=3)

    routes = client.fetch_routes([A, B])

    assert captured["url"].endswith("/route/v1/driving/-122.41,37.78;-122.42,37.79")
    assert captured["timeout"] == 3
    assert [(r.duration, r.distance) for r in routes] == [(600.0, 5000.0), (720.5, 5400.2)]
    assert routes[0].coordinates == (A, B)


def test_fetch_routes_skips_request_for_single_waypoint(monkeypatch):
    def fail_get(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(routing_requests, "get", fail_get)
    assert OSRMClient().fetch_routes([A]) == []


def test_fetch_routes_http_error(monkeypatch):
    monkeypatch.setattr(routing_requests, "get", lambda *a, **k: FakeResponse({}, status_code=400))
    with pytest.raises(RouteFetchFailure):
        OSRMClient().fetch_routes([A, B])


def test_fetch_routes_connection_error(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(routing_requests, "get", boom)
    with pytest.raises(RouteFetchFailure):
        OSRMClient().fetch_routes([A, B])


def test_fetch_routes_bad_json(monkeypatch):
    monkeypatch.setattr(routing_requests, "get",
                        lambda *a, **k: FakeResponse(json_error=ValueError("not json")))
    with pytest.raises(RouteFetchFailure):
        OSRMClient().fetch_routes([A, B])


def test_fetch_routes_async_runs_in_thread(monkeypatch):
    monkeypatch.setattr(routing_requests, "get", lambda *a, **k: FakeResponse(OSRM_BODY))
    routes = asyncio.run(OSRMClient().fetch_routes_async([A, B]))
    assert len(routes) == 2


def test_parse_routes_missing_routes_is_empty():
    assert parse_routes({"code": "NoRoute"}) == []
    assert parse_routes({"routes": None}) == []
    assert parse_routes({"routes": []}) == []


@pytest.mark.parametrize("body", [
    {"routes": "nope"},
    {"routes": [{"duration": 1, "distance": 2}]},
    {"routes": [{"geometry": {"coordinates": [[1, 2]]}, "duration": "x", "distance": 2}]},
    ["not", "an", "object"],
])
def test_parse_routes_malformed(body):
    with pytest.raises(RouteFetchFailure):
        parse_routes(body)


# RouteCoordinator

def test_short_sequences_clear_without_request(gated_client):
    coordinator = RouteCoordinator(gated_client)
    coordinator.alternatives = [make_route(A, B)]

    coordinator.on_waypoints_changed([])
    coordinator.on_waypoints_changed([A])

    assert coordinator.alternatives == []
    assert coordinator.is_loading is False
    assert coordinator.requests_issued == 0
    assert gated_client.calls == []


def test_successful_fetch_replaces_set(gated_client):
    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        coordinator.on_waypoints_changed([A, B])
        assert coordinator.is_loading is True
        await settle()

        assert gated_client.calls[0][0] == [A, B]
        gated_client.resolve(0, [make_route(A, B), make_route(A, C, B, duration=700)])
        await settle()
        return coordinator

    coordinator = asyncio.run(scenario())

    assert len(coordinator.alternatives) == 2
    assert coordinator.active_index == 0
    assert coordinator.is_loading is False


def test_superseded_response_is_dropped_when_arriving_last(gated_client):
    route_abc = make_route(A, B, C, duration=900)
    route_ab = make_route(A, B, duration=600)

    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        coordinator.on_waypoints_changed([A, B, C])
        await settle()
        coordinator.on_waypoints_changed([A, B])
        await settle()

        gated_client.resolve(1, [route_ab])
        await settle()
        gated_client.resolve(0, [route_abc])
        await settle()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert coordinator.alternatives == [route_ab]


def test_superseded_response_is_dropped_when_arriving_first(gated_client):
    route_abc = make_route(A, B, C, duration=900)
    route_ab = make_route(A, B, duration=600)

    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        coordinator.on_waypoints_changed([A, B, C])
        await settle()
        coordinator.on_waypoints_changed([A, B])
        await settle()

        gated_client.resolve(0, [route_abc])
        await settle()
        stale_applied = coordinator.alternatives == [route_abc]
        still_loading = coordinator.is_loading
        gated_client.resolve(1, [route_ab])
        await settle()
        return coordinator, stale_applied, still_loading

    coordinator, stale_applied, still_loading = asyncio.run(scenario())
    assert not stale_applied
    assert still_loading
    assert coordinator.alternatives == [route_ab]
    assert coordinator.is_loading is False


def test_stale_failure_does_not_clear_current_result(gated_client):
    route_ab = make_route(A, B)

    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        coordinator.on_waypoints_changed([A, B, C])
        await settle()
        coordinator.on_waypoints_changed([A, B])
        await settle()
        gated_client.resolve(1, [route_ab])
        await settle()
        gated_client.fail(0, RouteFetchFailure("timeout"))
        await settle()
        return coordinator

    assert asyncio.run(scenario()).alternatives == [route_ab]


def test_dropping_below_two_waypoints_invalidates_pending(gated_client):
    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        coordinator.on_waypoints_changed([A, B])
        await settle()
        coordinator.on_waypoints_changed([A])
        gated_client.resolve(0, [make_route(A, B)])
        await settle()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert coordinator.alternatives == []
    assert coordinator.is_loading is False


def test_failure_degrades_to_empty_and_notifies(gated_client):
    notices = []

    async def scenario():
        coordinator = RouteCoordinator(gated_client, on_no_route=notices.append)
        coordinator.alternatives = [make_route(A, B)]
        coordinator.on_waypoints_changed([A, C])
        await settle()
        gated_client.fail(0, RouteFetchFailure("HTTP 500"))
        await settle()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert coordinator.alternatives == []
    assert coordinator.active_index == 0
    assert coordinator.is_loading is False
    assert notices == ["No route available"]


def test_select_route_bounds(gated_client):
    coordinator = RouteCoordinator(gated_client)
    with pytest.raises(InvalidIndex):
        coordinator.select_route(0)

    coordinator.alternatives = [make_route(A, B), make_route(A, C), make_route(B, C)]
    coordinator.select_route(2)
    assert coordinator.active_index == 2

    with pytest.raises(InvalidIndex):
        coordinator.select_route(3)
    assert coordinator.active_index == 2


def test_new_result_resets_active_index(gated_client):
    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        coordinator.on_waypoints_changed([A, B])
        await settle()
        gated_client.resolve(0, [make_route(A, B), make_route(A, C, B)])
        await settle()
        coordinator.select_route(1)

        coordinator.on_waypoints_changed([A, C])
        await settle()
        gated_client.resolve(1, [make_route(A, C)])
        await settle()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert coordinator.active_index == 0
    assert 0 <= coordinator.active_index < len(coordinator.alternatives)


def test_display_order_puts_active_last(gated_client):
    coordinator = RouteCoordinator(gated_client)
    routes = [make_route(A, B), make_route(A, C), make_route(B, C)]
    coordinator.alternatives = list(routes)
    assert coordinator.display_order() == [1, 2, 0]

    coordinator.select_route(1)

    assert coordinator.display_order() == [0, 2, 1]
    assert coordinator.display_alternatives()[-1] == (1, routes[1])
    assert coordinator.alternatives == routes
    assert coordinator.active_route is routes[1]


def test_display_order_empty(gated_client):
    coordinator = RouteCoordinator(gated_client)
    assert coordinator.display_order() == []
    assert coordinator.active_route is None


def test_close_makes_late_response_inert(gated_client):
    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        coordinator.on_waypoints_changed([A, B])
        await settle()
        await coordinator.close()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert coordinator.is_loading is False
    assert coordinator.alternatives == []
    assert gated_client.calls[0][1].cancelled()


def test_waypoint_change_after_close_is_ignored(gated_client):
    async def scenario():
        coordinator = RouteCoordinator(gated_client)
        await coordinator.close()
        generation = coordinator.generation
        coordinator.on_waypoints_changed([A, B])
        await settle()
        return coordinator, generation

    coordinator, generation = asyncio.run(scenario())
    assert coordinator.closed
    assert coordinator.generation == generation
    assert coordinator.is_loading is False
    assert gated_client.calls == []


def test_failing_listener_does_not_break_request(gated_client):
    calls = []

    def listener():
        calls.append(1)
        if len(calls) > 1:
            raise RuntimeError("renderer failure")

    async def scenario():
        coordinator = RouteCoordinator(gated_client, callback=listener)
        coordinator.on_waypoints_changed([A, B])
        await settle()
        task = next(iter(coordinator._tasks))
        gated_client.resolve(0, [make_route(A, B)])
        await settle()
        return coordinator, task

    coordinator, task = asyncio.run(scenario())
    assert task.done() and task.exception() is None
    assert len(coordinator.alternatives) == 1
    assert coordinator.is_loading is False
    assert len(calls) == 2


def test_watch_follows_store(store):
    client = GatedRoutingClient()

    async def scenario():
        coordinator = RouteCoordinator(client)
        coordinator.watch(store)
        store.add_waypoint(A)
        store.add_waypoint(B)
        await settle()
        coordinator.unwatch(store)
        store.add_waypoint(C)
        await settle()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert [call[0] for call in client.calls] == [[A, B]]
    assert coordinator.requests_issued == 1
