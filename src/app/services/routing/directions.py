"""Map line and travel estimate for a stored route plan."""

from __future__ import annotations

import logging
import math
from typing import Any

from ...config import settings
from ...schemas.routing import DirectionsResponse
from ..geospatial import is_valid_coordinate, path_length_km
from .osrm_client import OSRMClient, decode_polyline

logger = logging.getLogger(__name__)


def _to_geojson(coordinates: list[tuple[float, float]]) -> dict:
    return {"type": "LineString", "coordinates": [[lon, lat] for lat, lon in coordinates]}


def plan_waypoints(plan: dict[str, Any], depot: dict[str, Any]) -> list[tuple[float, float]]:
    """Depot, then every stop with valid coordinates, then the depot again."""
    depot_point = (float(depot["lat"]), float(depot["lon"]))
    stops = [
        (float(stop["lat"]), float(stop["lon"]))
        for stop in plan.get("stops") or []
        if is_valid_coordinate(stop.get("lat"), stop.get("lon"))
    ]
    return [depot_point, *stops, depot_point]


def fallback_directions(plan: dict[str, Any], waypoints: list[tuple[float, float]], average_speed_kmh: float) -> DirectionsResponse:
    stored = plan.get("distance_km")
    if isinstance(stored, (int, float)) and math.isfinite(stored) and stored > 0:
        distance_km = float(stored)
    else:
        distance_km = round(path_length_km(waypoints), 2)
    duration_min = max(0, round(distance_km / average_speed_kmh * 60))
    return DirectionsResponse(
        line=_to_geojson(waypoints),
        distance_km=round(distance_km, 2),
        duration_min=duration_min,
        fallback=True,
    )


def plan_directions(
    plan: dict[str, Any] | None,
    depot: dict[str, Any],
    *,
    osrm_client: OSRMClient | None = None,
    average_speed_kmh: float | None = None,
) -> DirectionsResponse:
    """Street route for a plan from OSRM, or a straight-line estimate when OSRM is unavailable."""
    if not plan or not plan.get("stops"):
        return DirectionsResponse(line=None, distance_km=0.0, duration_min=0)

    waypoints = plan_waypoints(plan, depot)
    if len(waypoints) < 3:
        return DirectionsResponse(line=None, distance_km=0.0, duration_min=0)

    speed = average_speed_kmh or settings.average_speed_kmh
    if osrm_client is None:
        if not settings.osrm_base_url:
            return fallback_directions(plan, waypoints, speed)
        osrm_client = OSRMClient()

    try:
        data = osrm_client.route(waypoints)
    except (ConnectionError, ValueError) as exc:
        logger.warning(f"OSRM route failed, serving straight-line directions: {exc}")
        return fallback_directions(plan, waypoints, speed)

    routes = data.get("routes") or []
    if not routes:
        return fallback_directions(plan, waypoints, speed)
    route = routes[0]
    return DirectionsResponse(
        line=_to_geojson(decode_polyline(route.get("geometry") or "")),
        distance_km=round(float(route.get("distance", 0.0)) / 1000.0, 2),
        duration_min=round(float(route.get("duration", 0.0)) / 60.0),
    )
