"""Domain-specific errors for GeoChat."""

from typing import Any, Optional


class GeoChatError(Exception):
    code = "GEOCHAT_ERROR"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": False,
            "error_code": self.code,
            "error": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidIndex(GeoChatError, IndexError):
    """Waypoint or route index outside the current sequence."""
    code = "INVALID_INDEX"


class UnknownEntity(GeoChatError):
    code = "NOT_FOUND"


class RouteFetchFailure(GeoChatError):
    """Routing service unreachable, non-success status, or unparseable body."""
    code = "ROUTE_FETCH_FAILED"


class LocationUnavailable(GeoChatError):
    code = "LOCATION_UNAVAILABLE"
