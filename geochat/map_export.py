"""Static HTML snapshot of a session, rendered with folium."""

import folium
from folium import plugins

from .session import Session


def _latlon(pair: list[float]) -> list[float]:
    # Session state is [lon, lat]; folium wants [lat, lon]
    return [pair[1], pair[0]]


def create_session_map(session: Session) -> folium.Map:
    """Create a folium map of the session's current state"""
    state = session.get_state()
    view = session.config["initial_view"]

    m = folium.Map(location=[view["lat"], view["lon"]], zoom_start=view["zoom"], tiles=None)
    folium.TileLayer("OpenStreetMap", name="OpenStreetMap").add_to(m)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)

    # Routes in display order so the active one is drawn last, on top
    routes_group = folium.FeatureGroup(name="Routes", show=True)
    routes = state["routes"]
    for i in routes["display_order"]:
        alt = routes["alternatives"][i]
        active = i == routes["active_index"]
        folium.PolyLine(
            [_latlon(c) for c in alt["coordinates"]],
            color="#2563eb" if active else "#94a3b8",
            weight=5 if active else 4,
            opacity=0.9 if active else 0.6,
            popup=f"Route {i + 1}: {alt['duration'] / 60:.0f} min, {alt['distance'] / 1000:.2f} km",
        ).add_to(routes_group)
    routes_group.add_to(m)

    waypoints_group = folium.FeatureGroup(name="Waypoints", show=True)
    for i, wp in enumerate(state["waypoints"]):
        folium.Marker(
            _latlon(wp),
            tooltip=f"Waypoint {i + 1}",
            icon=folium.DivIcon(html=(
                '<div style="background: white; border-radius: 50%; width: 22px; height: 22px; '
                'text-align: center; line-height: 22px; font-weight: bold; font-size: 11px; '
                f'box-shadow: 0 1px 4px rgba(0,0,0,0.4);">{i + 1}</div>'
            )),
        ).add_to(waypoints_group)
    waypoints_group.add_to(m)

    points_group = folium.FeatureGroup(name="Blips", show=True)
    for point in state["points"]:
        folium.Marker(
            [point["lat"], point["lon"]],
            tooltip=point["label"],
            icon=folium.Icon(color="red", icon="map-marker"),
        ).add_to(points_group)
    points_group.add_to(m)

    peers_group = folium.FeatureGroup(name="Friends", show=True)
    for peer in state["peers"]:
        folium.CircleMarker(
            location=[peer["lat"], peer["lon"]],
            radius=8,
            color="white",
            weight=2,
            fill=True,
            fill_color="#22c55e" if peer["status"] == "online" else "#6b7280",
            fill_opacity=1,
            tooltip=f"{peer['name']} ({peer['status']})",
        ).add_to(peers_group)
    peers_group.add_to(m)

    # The stored area is open; close it here once it can form a polygon
    area = [_latlon(v) for v in state["drawn_area"]]
    if len(area) > 2:
        folium.Polygon(area, color="#a855f7", weight=2, fill=True, fill_opacity=0.15,
                       tooltip="Drawn area").add_to(m)
    elif area:
        folium.PolyLine(area, color="#a855f7", weight=2, dash_array="4").add_to(m)

    if state["user_location"]:
        loc = state["user_location"]
        folium.CircleMarker(
            location=[loc["lat"], loc["lon"]],
            radius=6,
            color="#2563eb",
            fill=True,
            fill_color="#60a5fa",
            fill_opacity=1,
            tooltip="You",
        ).add_to(m)

    folium.LayerControl().add_to(m)
    plugins.Fullscreen().add_to(m)

    return m


def export_session_map(session: Session, output_path: str) -> str:
    m = create_session_map(session)
    m.save(output_path)
    return output_path
