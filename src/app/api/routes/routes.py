"""Routing endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status

from ...config import settings
from ...data.depot_repository import resolve_depot
from ...exceptions import StoreError
from ...persistence.plans import get_day_plan
from ...persistence.store import get_document_store
from ...schemas.routing import DirectionsResponse, OptimizeRequest, OptimizeResponse
from ...services.routing.directions import plan_directions
from ...services.routing.service import optimize_collection_routes, plan_day

router = APIRouter(prefix="/routes", tags=["routes"])


def _depot_for(plan: dict) -> dict:
    depot = plan.get("depot")
    if depot and depot.get("lat") is not None and depot.get("lon") is not None:
        return depot
    fallback = resolve_depot(plan.get("service_area"))
    return {"lat": fallback.latitude, "lon": fallback.longitude}


def _load_today_plan(truck_id: str) -> dict | None:
    today = plan_day(datetime.now(timezone.utc), settings.timezone)
    return get_day_plan(get_document_store(), truck_id, today)


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizeRequest) -> OptimizeResponse:
    try:
        return optimize_collection_routes(payload, store=get_document_store())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to optimize route",
        ) from exc


@router.get("/{truck_id}/today", status_code=status.HTTP_200_OK)
def get_today_route(truck_id: str) -> dict:
    """Today's plan for a truck, or an empty stop list when none was generated."""
    try:
        plan = _load_today_plan(truck_id)
    except StoreError as exc:
        logging.exception(f"Error loading route for {truck_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to load route",
        ) from exc
    if not plan:
        return {"stops": []}
    plan["depot"] = _depot_for(plan)
    return plan


@router.get("/{truck_id}/directions", response_model=DirectionsResponse, status_code=status.HTTP_200_OK)
def get_directions(truck_id: str) -> DirectionsResponse:
    try:
        plan = _load_today_plan(truck_id)
    except StoreError as exc:
        logging.exception(f"Error loading route for {truck_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to fetch directions",
        ) from exc
    if not plan:
        return DirectionsResponse(line=None, distance_km=0.0, duration_min=0)
    return plan_directions(plan, _depot_for(plan))
