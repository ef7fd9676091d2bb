"""Browser GUI for driving a GeoChat session over WebSocket."""

import asyncio
import http.server
import json
import socketserver
import threading
import webbrowser
from functools import partial
from typing import Optional

import websockets

from .errors import GeoChatError
from .session import Session


# HTML template for the debug GUI
DEBUG_GUI_HTML = '''<!DOCTYPE html>
<html>
<head>
    <title>GeoChat Debug GUI</title>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" />
    <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
    <style>
        * { margin: 0; padding: 0; box-sizing: border-box; }
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif; height: 100vh; display: flex; flex-direction: column; }
        header { background: #1e293b; color: white; padding: 12px 20px; display: flex; justify-content: space-between; align-items: center; }
        header h1 { font-size: 18px; font-weight: 600; }
        .status-badge { background: #22c55e; padding: 4px 12px; border-radius: 12px; font-size: 12px; }
        .status-badge.disconnected { background: #ef4444; }
        .main-content { display: flex; flex: 1; overflow: hidden; }
        #map { flex: 1; min-width: 0; cursor: crosshair; }
        .panel { width: 360px; background: #f8fafc; display: flex; flex-direction: column; border-left: 1px solid #e2e8f0; overflow-y: auto; }
        .panel-section { padding: 16px; border-bottom: 1px solid #e2e8f0; }
        .panel-section h2 { font-size: 12px; text-transform: uppercase; color: #64748b; margin-bottom: 12px; letter-spacing: 0.5px; }
        button { margin: 2px 4px 2px 0; padding: 6px 10px; border: 1px solid #cbd5e1; border-radius: 6px; background: white; cursor: pointer; font-size: 13px; }
        button.active { background: #2563eb; color: white; border-color: #2563eb; }
        .route-item { display: flex; justify-content: space-between; align-items: center; padding: 6px 0; font-size: 13px; }
        .peer-item { font-size: 13px; padding: 3px 0; }
        .dot { display: inline-block; width: 8px; height: 8px; border-radius: 50%; margin-right: 6px; }
        .notice { font-size: 12px; color: #92400e; background: #fef3c7; padding: 6px; margin-bottom: 4px; border-radius: 4px; }
        .error { font-size: 12px; color: #991b1b; min-height: 16px; }
        .waypoint-icon { background: white; border-radius: 50%; box-shadow: 0 1px 4px rgba(0,0,0,0.4); font-size: 11px; font-weight: bold; text-align: center; line-height: 22px; }
    </style>
</head>
<body>
    <header>
        <h1>GeoChat Debug GUI</h1>
        <span id="connection-status" class="status-badge disconnected">Disconnected</span>
    </header>
    <div class="main-content">
        <div id="map"></div>
        <div class="panel">
            <div class="panel-section">
                <h2>Controls</h2>
                <button id="draw-btn" onclick="send('toggle_drawing')">Draw area</button>
                <button onclick="send('clear_drawn_area')">Clear area</button>
                <button onclick="send('clear_waypoints')">Clear route</button>
                <button onclick="locate()">Locate me</button>
                <div class="error" id="error"></div>
            </div>
            <div class="panel-section">
                <h2>Routes <span id="loading"></span></h2>
                <div id="routes">-</div>
            </div>
            <div class="panel-section">
                <h2>Friends</h2>
                <div id="peers"></div>
            </div>
            <div class="panel-section">
                <h2>Notifications</h2>
                <div id="notifications"></div>
            </div>
        </div>
    </div>
    <script>
        var map = L.map('map').setView([{{VIEW_LAT}}, {{VIEW_LON}}], {{VIEW_ZOOM}});
        L.tileLayer('https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png', {
            attribution: '&copy; OpenStreetMap contributors'
        }).addTo(map);

        var ws = null;
        var rendering = false;
        var layer = L.layerGroup().addTo(map);

        function connect() {
            ws = new WebSocket('ws://localhost:{{WS_PORT}}');
            ws.onopen = function() {
                document.getElementById('connection-status').textContent = 'Connected';
                document.getElementById('connection-status').classList.remove('disconnected');
            };
            ws.onclose = function() {
                document.getElementById('connection-status').textContent = 'Disconnected';
                document.getElementById('connection-status').classList.add('disconnected');
                setTimeout(connect, 2000);
            };
            ws.onmessage = function(event) {
                var msg = JSON.parse(event.data);
                if (msg.type === 'state') {
                    render(msg.data);
                    document.getElementById('error').textContent = '';
                } else if (msg.type === 'error') {
                    document.getElementById('error').textContent = msg.data.error;
                }
            };
        }

        function send(type, data) {
            if (ws && ws.readyState === 1) {
                ws.send(JSON.stringify({type: type, data: data || {}}));
            }
        }

        function locate() {
            navigator.geolocation.getCurrentPosition(
                function(pos) { send('locate_result', {lng: pos.coords.longitude, lat: pos.coords.latitude}); },
                function(err) { send('locate_error', {code: err.code}); }
            );
        }

        // Marker clicks must not reach the map click handler
        function markerClick(kind, id) {
            return function(e) {
                L.DomEvent.stopPropagation(e);
                send('marker_click', {kind: kind, id: id});
            };
        }

        function ll(pair) { return [pair[1], pair[0]]; }

        function button(label, type, data) {
            var b = document.createElement('button');
            b.textContent = label;
            b.onclick = function() { send(type, data); };
            return b;
        }

        function selectionPopup(sel) {
            var div = document.createElement('div');
            if (sel.kind === 'point') {
                div.appendChild(button('Add Blip', 'add_point_of_interest'));
                div.appendChild(button('Add Waypoint', 'add_waypoint'));
                return [[sel.lat, sel.lon], div];
            } else if (sel.kind === 'waypoint') {
                div.appendChild(button('Delete waypoint ' + (sel.index + 1), 'delete_waypoint', {index: sel.index}));
                return [[sel.lat, sel.lon], div];
            } else if (sel.kind === 'point_of_interest') {
                var title = document.createElement('h3');
                title.textContent = sel.point.label;
                div.appendChild(title);
                div.appendChild(button('Route from my location', 'route_from_location_to', {id: sel.point.id}));
                div.appendChild(button('Add Waypoint', 'add_waypoint'));
                return [[sel.point.lat, sel.point.lon], div];
            }
            return null;
        }

        function render(state) {
            rendering = true;
            layer.clearLayers();

            state.routes.display_order.forEach(function(i) {
                var alt = state.routes.alternatives[i];
                var active = i === state.routes.active_index;
                L.polyline(alt.coordinates.map(ll), {
                    color: active ? '#2563eb' : '#94a3b8',
                    weight: active ? 5 : 4,
                    opacity: active ? 0.9 : 0.6
                }).addTo(layer).on('click', function(e) {
                    L.DomEvent.stopPropagation(e);
                    send('select_route', {index: i});
                });
            });

            var area = state.drawn_area.map(ll);
            if (area.length > 2) {
                L.polygon(area, {color: '#a855f7', weight: 2, fillOpacity: 0.15}).addTo(layer);
            } else if (area.length > 0) {
                L.polyline(area, {color: '#a855f7', weight: 2, dashArray: '4'}).addTo(layer);
            }

            state.points.forEach(function(p) {
                L.marker([p.lat, p.lon]).bindTooltip(p.label).addTo(layer).on('click', markerClick('point', p.id));
            });

            state.waypoints.forEach(function(w, i) {
                var icon = L.divIcon({className: 'waypoint-icon', html: String(i + 1), iconSize: [22, 22]});
                L.marker(ll(w), {icon: icon}).addTo(layer).on('click', markerClick('waypoint', i));
            });

            state.peers.forEach(function(p) {
                L.circleMarker([p.lat, p.lon], {
                    radius: 8, color: 'white', weight: 2, fillOpacity: 1,
                    fillColor: p.status === 'online' ? '#22c55e' : '#6b7280'
                }).bindTooltip(p.name).addTo(layer).on('click', markerClick('peer', p.id));
            });

            if (state.user_location) {
                L.circleMarker([state.user_location.lat, state.user_location.lon], {
                    radius: 6, color: '#2563eb', fillColor: '#60a5fa', fillOpacity: 1
                }).addTo(layer);
            }

            var popup = selectionPopup(state.selection);
            if (popup) {
                L.popup({closeButton: true}).setLatLng(popup[0]).setContent(popup[1]).openOn(map);
            } else {
                map.closePopup();
            }
            rendering = false;

            document.getElementById('draw-btn').classList.toggle('active', state.drawing_mode === 'on');
            document.getElementById('draw-btn').textContent = state.drawing_mode === 'on' ? 'Finish drawing' : 'Draw area';
            document.getElementById('loading').textContent = state.routes.is_loading ? '(loading...)' : '';

            var routes = document.getElementById('routes');
            routes.innerHTML = '';
            state.routes.alternatives.forEach(function(alt, i) {
                var row = document.createElement('div');
                row.className = 'route-item';
                row.textContent = 'Route ' + (i + 1) + ': ' + Math.round(alt.duration / 60) + ' min, ' + (alt.distance / 1000).toFixed(2) + ' km';
                var b = button(i === state.routes.active_index ? 'Active' : 'Select', 'select_route', {index: i});
                if (i === state.routes.active_index) b.className = 'active';
                row.appendChild(b);
                routes.appendChild(row);
            });
            if (!state.routes.alternatives.length) routes.textContent = '-';

            var peers = document.getElementById('peers');
            peers.innerHTML = '';
            state.peers.forEach(function(p) {
                var row = document.createElement('div');
                row.className = 'peer-item';
                row.innerHTML = '<span class="dot" style="background:' + (p.status === 'online' ? '#22c55e' : '#6b7280') + '"></span>';
                row.appendChild(document.createTextNode(p.name + ' (' + p.lat.toFixed(4) + ', ' + p.lon.toFixed(4) + ')'));
                peers.appendChild(row);
            });

            var notes = document.getElementById('notifications');
            notes.innerHTML = '';
            state.notifications.slice().reverse().forEach(function(n) {
                var row = document.createElement('div');
                row.className = 'notice';
                row.textContent = n;
                notes.appendChild(row);
            });
        }

        map.on('click', function(e) {
            send('surface_click', {lng: e.latlng.lng, lat: e.latlng.lat});
        });
        map.on('popupclose', function() {
            // Popups replaced while re-rendering are not user dismissals
            if (!rendering) send('close_selection');
        });

        connect();
    </script>
</body>
</html>'''


class DebugServer:
    """HTTP page plus a WebSocket channel bound to one Session.

    The page is served from a background thread. The WebSocket server runs on
    the session's event loop so every inbound message mutates session state
    from the same thread as timer ticks and route responses.
    """

    def __init__(self, session: Session, http_port: Optional[int] = None,
                 ws_port: Optional[int] = None):
        self.session = session
        self.http_port = http_port or session.config["debug_http_port"]
        self.ws_port = ws_port or session.config["debug_ws_port"]
        self.http_thread = None
        self.connected_clients: set = set()
        self._running = False
        self._broadcast_pending = False

    def start_http(self, open_browser: bool = True):
        """Serve the GUI page in a background thread"""
        self._running = True
        self.http_thread = threading.Thread(target=self._run_http_server, daemon=True)
        self.http_thread.start()

        url = f"http://localhost:{self.http_port}"
        print(f"Debug GUI available at: {url}")
        if open_browser:
            webbrowser.open(url)

    def _run_http_server(self):
        view = self.session.config["initial_view"]
        html = (DEBUG_GUI_HTML
                .replace("{{WS_PORT}}", str(self.ws_port))
                .replace("{{VIEW_LAT}}", str(view["lat"]))
                .replace("{{VIEW_LON}}", str(view["lon"]))
                .replace("{{VIEW_ZOOM}}", str(view["zoom"])))
        handler = partial(_DebugHTTPHandler, html)
        socketserver.TCPServer.allow_reuse_address = True
        with socketserver.TCPServer(("", self.http_port), handler) as httpd:
            httpd.timeout = 0.5
            while self._running:
                httpd.handle_request()

    async def serve(self):
        """Run the WebSocket server until cancelled"""
        self.session.subscribe(self._schedule_broadcast)
        try:
            async with websockets.serve(self._handler, "localhost", self.ws_port):
                await asyncio.Future()
        finally:
            self.session.unsubscribe(self._schedule_broadcast)
            self._running = False

    async def _handler(self, websocket):
        self.connected_clients.add(websocket)
        try:
            await websocket.send(self._state_message())
            async for message in websocket:
                reply = self.handle_message(message)
                if reply:
                    await websocket.send(reply)
        finally:
            self.connected_clients.discard(websocket)

    def handle_message(self, message: str) -> Optional[str]:
        """Apply one client message to the session. Returns an error reply, if any."""
        try:
            msg = json.loads(message)
            self.session.dispatch(msg["type"], msg.get("data"))
        except GeoChatError as e:
            return json.dumps({"type": "error", "data": e.to_payload()})
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            self.session.logger.log("Bad GUI message", {"error": str(e)})
            payload = {"success": False, "error_code": "BAD_MESSAGE", "error": str(e)}
            return json.dumps({"type": "error", "data": payload})
        return None

    def _state_message(self) -> str:
        return json.dumps({"type": "state", "data": self.session.get_state()})

    def _schedule_broadcast(self):
        # Coalesce the burst of changes one event produces into a single push
        if self._broadcast_pending:
            return
        self._broadcast_pending = True
        asyncio.get_running_loop().call_soon(self._broadcast)

    def _broadcast(self):
        self._broadcast_pending = False
        if self.connected_clients:
            websockets.broadcast(self.connected_clients, self._state_message())

    def stop(self):
        self._running = False


class _DebugHTTPHandler(http.server.SimpleHTTPRequestHandler):
    """HTTP handler that serves the debug GUI"""

    def __init__(self, html: str, *args, **kwargs):
        self.html = html
        super().__init__(*args, **kwargs)

    def do_GET(self):
        if self.path == '/' or self.path == '/index.html':
            self.send_response(200)
            self.send_header('Content-type', 'text/html')
            self.end_headers()
            self.wfile.write(self.html.encode())
        else:
            self.send_error(404)

    def log_message(self, format, *args):
        pass  # Suppress HTTP log messages
