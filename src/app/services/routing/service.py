"""Routing orchestration service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Sequence
from zoneinfo import ZoneInfo

from ...config import settings
from ...data.bins_repository import get_bins_for_area
from ...data.depot_repository import resolve_depot
from ...exceptions import InvalidConstraintError
from ...models.domain import Depot, RegionConfig
from ...persistence.filesystem import FileStorage
from ...persistence.plans import PlanKey, upsert_plan
from ...persistence.store import DocumentStore, get_document_store
from ...schemas.routing import (
    OptimizeRequest,
    OptimizeResponse,
    PlanSummaryModel,
    RoutePlanModel,
    RouteStopModel,
)
from ..outputs.routing_formatter import routing_result_to_csv, routing_result_to_json
from .candidates import select_candidates
from .dispatcher import assign_truck_ids, build_plans, distance_budget_km
from .models import Candidate, RouteConstraints, RoutePlan, RoutingResult
from .threshold import ThresholdFlags, resolve_threshold

logger = logging.getLogger(__name__)


def build_region_config(service_area: str, depot: Depot | None = None) -> RegionConfig:
    """Resolve region defaults once, at the call site."""
    return RegionConfig(
        service_area=service_area,
        depot=depot or resolve_depot(service_area),
        truck_capacity_kg=settings.truck_capacity_kg,
        truck_count=settings.truck_count,
        route_threshold=settings.route_threshold,
        high_priority_ratio=settings.high_priority_ratio,
        average_speed_kmh=settings.average_speed_kmh,
        max_route_hours=settings.max_route_hours,
        timezone=settings.timezone,
        truck_id_prefix=settings.truck_id_prefix,
    )


def plan_day(moment: datetime, tz_name: str) -> date:
    """Calendar day of ``moment`` in the region's timezone."""
    aware = moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)
    return aware.astimezone(ZoneInfo(tz_name)).date()


def _build_constraints(payload: OptimizeRequest, region: RegionConfig) -> RouteConstraints:
    overrides = payload.constraints
    constraints = RouteConstraints(
        truck_capacity_kg=overrides.truck_capacity_kg
        if overrides and overrides.truck_capacity_kg is not None
        else region.truck_capacity_kg,
        truck_count=overrides.truck_count
        if overrides and overrides.truck_count is not None
        else region.truck_count,
        max_route_hours=overrides.max_route_hours
        if overrides and overrides.max_route_hours is not None
        else region.max_route_hours,
        average_speed_kmh=overrides.average_speed_kmh
        if overrides and overrides.average_speed_kmh is not None
        else region.average_speed_kmh,
    )
    if constraints.truck_capacity_kg <= 0:
        raise InvalidConstraintError(f"Truck capacity must be positive, got {constraints.truck_capacity_kg}.")
    if constraints.truck_count < 1:
        raise InvalidConstraintError(f"Truck count must be at least 1, got {constraints.truck_count}.")
    return constraints


def _resolve_threshold(payload: OptimizeRequest, region: RegionConfig) -> float:
    options = payload.threshold
    if options is None:
        return resolve_threshold(region.route_threshold)
    base = options.base_threshold if options.base_threshold is not None else region.route_threshold
    flags = ThresholdFlags(
        skip_low_fill=options.skip_low_fill,
        emergency_only=options.emergency_only,
        prioritize_commercial=options.prioritize_commercial,
    )
    return resolve_threshold(base, flags)


def build_summary(
    *,
    total_bins: int,
    candidates: Sequence[Candidate],
    high_priority_ratio: float,
    constraints: RouteConstraints,
    threshold: float,
) -> dict:
    return {
        "total_bins": total_bins,
        "considered_bins": len(candidates),
        "high_priority_bins": sum(1 for candidate in candidates if candidate.fill_ratio >= high_priority_ratio),
        "truck_capacity_kg": constraints.truck_capacity_kg,
        "trucks": constraints.truck_count,
        "threshold": threshold,
    }


def _plan_model(plan: RoutePlan) -> RoutePlanModel:
    return RoutePlanModel(
        truck_id=plan.truck_id or "",
        stops=[RouteStopModel(**asdict(stop)) for stop in plan.stops],
        load_kg=plan.load_kg,
        distance_km=plan.distance_km,
    )


def optimize_collection_routes(
    payload: OptimizeRequest,
    *,
    store: DocumentStore | None = None,
    region: RegionConfig | None = None,
    now: datetime | None = None,
) -> OptimizeResponse:
    """Plan today's collection routes for a service area and persist one plan per truck.

    Plans are built entirely in memory and written once each afterwards, so a
    run that fails before persistence leaves no partial state behind.
    """
    service_area = (payload.service_area or "").strip()
    if not service_area:
        raise InvalidConstraintError("service_area is required.")

    region = region or build_region_config(service_area)
    constraints = _build_constraints(payload, region)
    threshold = _resolve_threshold(payload, region)
    store = store or get_document_store()
    now = now or datetime.now(timezone.utc)
    day = payload.plan_date or plan_day(now, region.timezone)
    sub_area = (payload.sub_area or "").strip() or None

    bins = get_bins_for_area(store, service_area, sub_area)
    candidates = select_candidates(bins, region.depot, threshold, constraints.truck_capacity_kg, now)
    max_distance_km = distance_budget_km(constraints.max_route_hours, constraints.average_speed_kmh)
    plans = build_plans(
        candidates,
        region.depot,
        constraints.truck_capacity_kg,
        constraints.truck_count,
        max_distance_km,
    )
    assign_truck_ids(plans, payload.truck_ids, prefix=region.truck_id_prefix)

    summary = build_summary(
        total_bins=len(bins),
        candidates=candidates,
        high_priority_ratio=region.high_priority_ratio,
        constraints=constraints,
        threshold=threshold,
    )
    logger.info(
        f"Optimized {service_area} (sub_area={sub_area}) for {day.isoformat()}: "
        f"{len(candidates)}/{len(bins)} bins considered at threshold {threshold:.2f}, "
        f"{sum(len(plan.stops) for plan in plans)} stops across {len(plans)} plan(s)"
    )

    for plan in plans:
        key = PlanKey(service_area=service_area, sub_area=sub_area, truck_id=plan.truck_id, day=day)
        upsert_plan(store, key, plan, depot=region.depot, summary=summary, updated_at=now)

    result = RoutingResult(service_area=service_area, sub_area=sub_area, day=day, plans=plans, summary=summary)
    if payload.export:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix=f"routes_{service_area}")
        storage.write_json(run_dir / "summary.json", routing_result_to_json(result))
        storage.write_csv(run_dir / "stops.csv", routing_result_to_csv(result))

    return OptimizeResponse(
        service_area=service_area,
        sub_area=sub_area,
        plan_date=day,
        depot={"lat": region.depot.latitude, "lon": region.depot.longitude},
        summary=PlanSummaryModel(**summary),
        plans=[_plan_model(plan) for plan in plans],
    )
