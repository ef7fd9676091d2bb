#!/usr/bin/env python3
"""
GeoChat - live map session with route planning and tracked friends

Usage:
    python -m geochat [options]

Options:
    --waypoint LON,LAT  Add a route waypoint (repeatable, in order)
    --profile NAME      OSRM routing profile (default: driving)
    --osrm-url URL      OSRM server base URL
    --ticks N           Advance simulated friends N times before exiting
    --html FILE         Write a map snapshot of the session to an HTML file
    --debug-gui         Run the browser GUI until interrupted
    --log FILE          Log file path (default: geochat_TIMESTAMP.log)
"""

import argparse
import asyncio
import contextlib
from datetime import datetime
from pathlib import Path

from .config import CONFIG, DEFAULT_PEERS, DEFAULT_POINTS
from .models import Coordinate
from .session import Session


def _parse_coordinate(text: str) -> Coordinate:
    try:
        lon, lat = (float(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected LON,LAT, got {text!r}")
    return Coordinate(lon, lat)


def _print_routes(session: Session):
    routes = session.routes
    if len(session.store.waypoints) < 2:
        print("Fewer than two waypoints, no route requested.")
        return
    if not routes.alternatives:
        print("No route available.")
        return
    for i, alt in enumerate(routes.alternatives):
        marker = "*" if i == routes.active_index else " "
        print(f" {marker} Route {i + 1}: {alt.summary()} ({len(alt.coordinates)} points)")


async def _run(args) -> int:
    config = {}
    if args.profile:
        config["osrm_profile"] = args.profile
    if args.osrm_url:
        config["osrm_url"] = args.osrm_url

    session = Session(points=DEFAULT_POINTS, peers=DEFAULT_PEERS, config=config, log_path=args.log)
    try:
        if args.waypoint:
            session.store.set_waypoints(args.waypoint)
            await session.routes.wait_idle()
            _print_routes(session)

        for _ in range(args.ticks):
            session.simulator.tick()
        if args.ticks:
            for peer in session.store.peers:
                print(f"{peer.name}: {peer.coordinate.lon:.5f}, {peer.coordinate.lat:.5f}")

        if args.debug_gui:
            from .debug_gui import DebugServer
            server = DebugServer(session)
            server.start_http()
            await session.start()
            with contextlib.suppress(asyncio.CancelledError):
                await server.serve()
    finally:
        await session.close()
        if args.html:
            from .map_export import export_session_map
            export_session_map(session, args.html)
            print(f"Map saved to: {Path(args.html).absolute()}")
        session.logger.close()
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="GeoChat - live map session with route planning and tracked friends"
    )
    parser.add_argument("--waypoint", type=_parse_coordinate, action="append", metavar="LON,LAT",
                        help="Route waypoint as LON,LAT (repeatable)")
    parser.add_argument("--profile", help=f"OSRM profile (default: {CONFIG['osrm_profile']})")
    parser.add_argument("--osrm-url", help=f"OSRM base URL (default: {CONFIG['osrm_url']})")
    parser.add_argument("--ticks", type=int, default=0,
                        help="Advance simulated friends N ticks")
    parser.add_argument("--html", metavar="FILE",
                        help="Write a map snapshot to an HTML file")
    parser.add_argument("--debug-gui", action="store_true",
                        help="Run the browser GUI until interrupted")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: geochat_TIMESTAMP.log)")

    args = parser.parse_args()

    if args.ticks < 0:
        parser.error("--ticks must not be negative")

    if not args.log:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        args.log = f"geochat_{timestamp}.log"

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0


if __name__ == "__main__":
    exit(main())
