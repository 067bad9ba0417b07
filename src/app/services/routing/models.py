"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from ...models.domain import Bin


@dataclass(slots=True, frozen=True)
class Candidate:
    """A bin that passed threshold filtering, annotated for one run."""

    bin: Bin
    est_kg: float
    fill_ratio: float
    depot_distance_km: float

    @property
    def bin_id(self) -> str:
        return self.bin.bin_id


@dataclass(slots=True)
class RouteStop:
    bin_id: str
    lat: float
    lon: float
    est_kg: int
    visited: bool = False


@dataclass(slots=True)
class RoutePlan:
    stops: List[RouteStop] = field(default_factory=list)
    load_kg: int = 0
    distance_km: float = 0.0
    truck_id: Optional[str] = None


@dataclass(slots=True, frozen=True)
class RouteConstraints:
    truck_capacity_kg: float
    truck_count: int
    max_route_hours: Optional[float] = None
    average_speed_kmh: Optional[float] = None


@dataclass(slots=True)
class RoutingResult:
    service_area: str
    sub_area: Optional[str]
    day: date
    plans: List[RoutePlan]
    summary: dict
