"""Greedy multi-truck route construction.

Each truck leaves the depot and repeatedly drives to the nearest remaining
candidate from its current position until the next candidate would overflow
its capacity or break the distance budget. Trucks are filled one after
another, so the first plans take the bins closest to the depot.

Runtime is O(n^2) per truck in the number of candidates, which is fine for
the tens to low hundreds of bins found in a service area.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from ...exceptions import InvalidConstraintError
from ...models.domain import Depot
from ..geospatial import haversine_km
from .candidates import distance_sort_key
from .models import Candidate, RoutePlan, RouteStop

logger = logging.getLogger(__name__)


def round_kg(value: float) -> int:
    """Round half up to the nearest whole kilogram."""
    return int(math.floor(value + 0.5))


def distance_budget_km(max_route_hours: float | None, average_speed_kmh: float | None) -> float:
    """Convert a time budget into a distance budget; 0 means unbounded."""
    if not max_route_hours or not average_speed_kmh:
        return 0.0
    if max_route_hours <= 0 or average_speed_kmh <= 0:
        return 0.0
    return max_route_hours * average_speed_kmh


def _nearest(pool: Sequence[Candidate], lat: float, lon: float) -> tuple[int, float]:
    """Index and leg length of the closest candidate, ranked like the selector ranks depot distance."""
    legs = [haversine_km(lat, lon, candidate.bin.latitude, candidate.bin.longitude) for candidate in pool]
    best_index = min(range(len(pool)), key=lambda index: distance_sort_key(legs[index], pool[index].bin_id))
    return best_index, legs[best_index]


def _build_single_route(pool: list[Candidate], depot: Depot, truck_capacity_kg: float, max_distance_km: float) -> RoutePlan:
    lat, lon = depot.latitude, depot.longitude
    load = 0.0
    stop_load = 0
    travelled = 0.0
    stops: list[RouteStop] = []

    while pool:
        index, leg_km = _nearest(pool, lat, lon)
        candidate = pool[index]
        est_rounded = round_kg(candidate.est_kg)

        if load + candidate.est_kg > truck_capacity_kg or stop_load + est_rounded > truck_capacity_kg:
            break

        if max_distance_km > 0:
            return_km = haversine_km(candidate.bin.latitude, candidate.bin.longitude, depot.latitude, depot.longitude)
            if travelled + leg_km + return_km > max_distance_km:
                break

        pool.pop(index)
        stops.append(
            RouteStop(
                bin_id=candidate.bin_id,
                lat=candidate.bin.latitude,
                lon=candidate.bin.longitude,
                est_kg=est_rounded,
            )
        )
        load += candidate.est_kg
        stop_load += est_rounded
        travelled += leg_km
        lat, lon = candidate.bin.latitude, candidate.bin.longitude

    if stops:
        travelled += haversine_km(lat, lon, depot.latitude, depot.longitude)
    return RoutePlan(stops=stops, load_kg=round_kg(load), distance_km=round(travelled, 2))


def build_plans(
    candidates: Sequence[Candidate],
    depot: Depot,
    truck_capacity_kg: float,
    truck_count: int,
    max_distance_km: float = 0.0,
) -> list[RoutePlan]:
    """Build at most ``truck_count`` plans from ranked candidates.

    An empty candidate list yields a single empty plan so that "no work"
    is still a plan the caller can persist and show.
    """
    if not candidates:
        return [RoutePlan()]

    pool = list(candidates)
    plans: list[RoutePlan] = []
    while pool and len(plans) < truck_count:
        plan = _build_single_route(pool, depot, truck_capacity_kg, max_distance_km)
        if not plan.stops:
            break
        plans.append(plan)

    if pool:
        logger.info(f"{len(pool)} candidate bins left unassigned after {len(plans)} truck(s)")
    if not plans:
        return [RoutePlan()]
    return plans


def assign_truck_ids(plans: Sequence[RoutePlan], truck_ids: Sequence[str] | None = None, prefix: str = "TRUCK") -> list[RoutePlan]:
    """Give each plan a distinct truck id: explicit ids in order, then ``PREFIX-NN``.

    Generated ids skip numbers already claimed by explicit ids, so two plans
    never share a storage key.
    """
    explicit = [truck_id.strip() for truck_id in (truck_ids or []) if truck_id and truck_id.strip()]
    duplicates = sorted({truck_id for truck_id in explicit if explicit.count(truck_id) > 1})
    if duplicates:
        raise InvalidConstraintError(f"Duplicate truck ids: {', '.join(duplicates)}.")

    taken = set(explicit[: len(plans)])
    number = 0
    for index, plan in enumerate(plans):
        if index < len(explicit):
            plan.truck_id = explicit[index]
            continue
        number = max(number, index) + 1
        while f"{prefix}-{number:02d}" in taken:
            number += 1
        plan.truck_id = f"{prefix}-{number:02d}"
        taken.add(plan.truck_id)
    return list(plans)
