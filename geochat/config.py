"""Configuration settings for GeoChat."""

CONFIG = {
    "osrm_url": "https://router.project-osrm.org",
    "osrm_profile": "driving",
    "route_alternatives": True,  # ask OSRM for alternative routes
    "route_timeout": 10,  # seconds
    "simulation_interval": 2.0,  # seconds between peer position ticks
    "notification_limit": 20,  # most recent notifications kept for the UI
    "initial_view": {"lon": -122.4, "lat": 37.79, "zoom": 13},
    "debug_http_port": 8080,
    "debug_ws_port": 8765,
}

# Initial session content. Passed into Session at construction.
DEFAULT_POINTS = [
    {"lon": -122.45, "lat": 37.77, "label": "Cool graffiti"},
]

DEFAULT_PEERS = [
    {
        "id": 1,
        "name": "Alice",
        "status": "online",
        "simulated": True,
        "path": [
            [-122.41, 37.78],
            [-122.408, 37.781],
            [-122.406, 37.782],
            [-122.405, 37.784],
            [-122.407, 37.785],
            [-122.409, 37.784],
            [-122.411, 37.782],
        ],
    },
    {
        "id": 2,
        "name": "Bob",
        "status": "offline",
        "simulated": True,
        "path": [
            [-122.42, 37.79],
            [-122.418, 37.792],
            [-122.415, 37.793],
            [-122.417, 37.789],
        ],
    },
]
