"""Candidate selection: threshold filtering and depot-distance ranking."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ...models.domain import Bin, Depot
from ..geospatial import haversine_km, is_valid_coordinate
from .fill import estimate_fill_kg
from .models import Candidate

# Distances are snapped to a grid of this width; distances on the same grid
# point are ties and ordered by bin id. Both candidate ranking and next-stop
# choice use this key.
DISTANCE_TOLERANCE_KM = 1e-9


def distance_sort_key(distance_km: float, bin_id: str) -> tuple[float, str]:
    """Total order on (distance, id) with float noise below the grid width ignored."""
    return (round(distance_km / DISTANCE_TOLERANCE_KM) * DISTANCE_TOLERANCE_KM, bin_id)


def select_candidates(
    bins: Iterable[Bin],
    depot: Depot,
    threshold: float,
    truck_capacity_kg: float,
    now: datetime,
) -> list[Candidate]:
    """Keep bins at or above ``threshold`` and rank them by distance from the depot."""
    if truck_capacity_kg <= 0:
        return []

    candidates: list[Candidate] = []
    for bin in bins:
        if bin.capacity_kg <= 0 or not is_valid_coordinate(bin.latitude, bin.longitude):
            continue
        est_kg = estimate_fill_kg(bin, now)
        ratio = est_kg / bin.capacity_kg
        if ratio < threshold:
            continue
        candidates.append(
            Candidate(
                bin=bin,
                est_kg=est_kg,
                fill_ratio=ratio,
                depot_distance_km=haversine_km(depot.latitude, depot.longitude, bin.latitude, bin.longitude),
            )
        )

    candidates.sort(key=lambda candidate: distance_sort_key(candidate.depot_distance_km, candidate.bin_id))
    return candidates
