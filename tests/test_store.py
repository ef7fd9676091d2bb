import pytest

from geochat import Coordinate, InvalidIndex, UnknownEntity

from conftest import A, B, C


def test_point_ids_are_unique_and_increasing(store):
    first = store.add_point_of_interest(A, "one")
    second = store.add_point_of_interest(B, "two")
    store.remove_point_of_interest(first.id)
    third = store.add_point_of_interest(C, "three")

    assert first.id < second.id < third.id
    assert [p.label for p in store.points] == ["two", "three"]


def test_remove_unknown_point_raises(store):
    with pytest.raises(UnknownEntity):
        store.remove_point_of_interest(42)


def test_add_waypoint_emits_sequence(store):
    seen = []
    store.subscribe("waypoints_changed", seen.append)

    store.add_waypoint(A)
    store.add_waypoint(B)

    assert seen == [(A,), (A, B)]


def test_remove_waypoint_shifts_later_positions(store):
    store.set_waypoints([A, B, C])
    removed = []
    store.subscribe("waypoint_removed", removed.append)

    assert store.remove_waypoint(0) == A

    assert store.waypoints == [B, C]
    assert removed == [0]


def test_remove_waypoint_out_of_range_leaves_state(store):
    store.set_waypoints([A, B, C])
    seen = []
    store.subscribe("waypoints_changed", seen.append)

    with pytest.raises(InvalidIndex) as excinfo:
        store.remove_waypoint(5)

    assert store.waypoints == [A, B, C]
    assert seen == []
    assert excinfo.value.to_payload()["error_code"] == "INVALID_INDEX"


def test_negative_waypoint_index_is_invalid(store):
    store.set_waypoints([A])
    with pytest.raises(InvalidIndex):
        store.remove_waypoint(-1)
    assert store.waypoints == [A]


def test_clear_waypoints_is_idempotent(store):
    seen = []
    store.subscribe("waypoints_changed", seen.append)
    store.set_waypoints([A, B])

    store.clear_waypoints()
    store.clear_waypoints()

    assert store.waypoints == []
    assert seen == [(A, B), ()]


def test_set_same_waypoints_does_not_emit(store):
    store.set_waypoints([A, B])
    seen = []
    store.subscribe("waypoints_changed", seen.append)

    store.set_waypoints([A, B])

    assert seen == []


def test_unsubscribe_stops_notifications(store):
    seen = []
    store.subscribe("waypoints_changed", seen.append)
    store.unsubscribe("waypoints_changed", seen.append)

    store.add_waypoint(A)

    assert seen == []


def test_unknown_event_rejected(store):
    with pytest.raises(ValueError):
        store.subscribe("nope", lambda: None)


def test_drawn_area_append_and_clear(store):
    store.append_drawing_vertex(A)
    store.append_drawing_vertex(B)
    assert store.drawn_area == [A, B]

    store.clear_drawn_area()
    store.clear_drawn_area()
    assert store.drawn_area == []


def test_get_peer_unknown(store):
    with pytest.raises(UnknownEntity):
        store.get_peer(7)


def test_coordinate_from_pair():
    assert Coordinate.from_pair(["-122.4", 37.8]) == Coordinate(-122.4, 37.8)
