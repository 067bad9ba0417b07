"""Routing request/response schemas."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class RoutingConstraints(BaseModel):
    truck_capacity_kg: Optional[float] = None
    truck_count: Optional[int] = None
    max_route_hours: Optional[float] = Field(None, ge=0)
    average_speed_kmh: Optional[float] = Field(None, gt=0)


class ThresholdOptions(BaseModel):
    base_threshold: Optional[float] = Field(None, ge=0, le=1)
    skip_low_fill: bool = False
    emergency_only: bool = False
    prioritize_commercial: bool = False


class OptimizeRequest(BaseModel):
    service_area: Optional[str] = Field(default=None, description="Service area (city or ward) to plan for.")
    sub_area: Optional[str] = None
    plan_date: Optional[date] = Field(default=None, description="Plan day; defaults to today in the configured timezone.")
    truck_ids: Optional[List[str]] = Field(
        default=None,
        description="Truck identifiers in plan order. Missing ids fall back to TRUCK-01, TRUCK-02, ...",
    )
    constraints: Optional[RoutingConstraints] = None
    threshold: Optional[ThresholdOptions] = None
    export: bool = Field(default=False, description="Also write summary.json and stops.csv under the data root.")


class RouteStopModel(BaseModel):
    bin_id: str
    lat: float
    lon: float
    est_kg: int
    visited: bool = False


class RoutePlanModel(BaseModel):
    truck_id: str
    stops: List[RouteStopModel]
    load_kg: int
    distance_km: float


class PlanSummaryModel(BaseModel):
    total_bins: int
    considered_bins: int
    high_priority_bins: int
    truck_capacity_kg: float
    trucks: int
    threshold: float


class OptimizeResponse(BaseModel):
    service_area: str
    sub_area: Optional[str]
    plan_date: date
    depot: dict
    summary: PlanSummaryModel
    plans: List[RoutePlanModel]


class DirectionsResponse(BaseModel):
    line: Optional[dict]
    distance_km: float
    duration_min: int
    fallback: bool = False
