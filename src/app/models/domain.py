"""Domain models for bin, depot and region records."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

DEFAULT_RATE_KG_PER_DAY = 3.0


@dataclass(slots=True, frozen=True)
class Bin:
    """A physical collection point with its accumulation parameters."""

    bin_id: str
    latitude: float
    longitude: float
    capacity_kg: float
    est_rate_kg_per_day: float = DEFAULT_RATE_KG_PER_DAY
    last_pickup_at: Optional[datetime] = None
    service_area: Optional[str] = None
    sub_area: Optional[str] = None


@dataclass(slots=True, frozen=True)
class Depot:
    """Start and end point for every truck of a service area."""

    code: str
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class RegionConfig:
    """Region defaults resolved once per optimization run."""

    service_area: str
    depot: Depot
    truck_capacity_kg: float
    truck_count: int
    route_threshold: float
    high_priority_ratio: float
    average_speed_kmh: float
    max_route_hours: Optional[float]
    timezone: str
    truck_id_prefix: str = "TRUCK"
