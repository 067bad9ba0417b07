"""Route plan persistence keyed by (service area, sub-area, truck, day)."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any

from ..models.domain import Depot
from ..services.routing.models import RoutePlan, RouteStop
from .store import PLANS, DocumentStore

logger = logging.getLogger(__name__)

NO_SUB_AREA = "*"


@dataclass(slots=True, frozen=True)
class PlanKey:
    service_area: str
    sub_area: str | None
    truck_id: str
    day: date

    @property
    def document_id(self) -> str:
        return "|".join((self.service_area, self.sub_area or NO_SUB_AREA, self.truck_id, self.day.isoformat()))


def plan_to_document(
    key: PlanKey,
    plan: RoutePlan,
    *,
    depot: Depot,
    summary: dict[str, Any] | None = None,
    updated_at: datetime | None = None,
) -> dict[str, Any]:
    return {
        "service_area": key.service_area,
        "sub_area": key.sub_area,
        "truck_id": key.truck_id,
        "date": key.day.isoformat(),
        "depot": {"lat": depot.latitude, "lon": depot.longitude},
        "stops": [asdict(stop) for stop in plan.stops],
        "load_kg": plan.load_kg,
        "distance_km": plan.distance_km,
        "status": "confirmed",
        "summary": dict(summary or {}),
        "updated_at": (updated_at or datetime.now(timezone.utc)).isoformat(),
    }


def plan_from_document(document: dict[str, Any]) -> RoutePlan:
    stops = [
        RouteStop(
            bin_id=str(stop["bin_id"]),
            lat=float(stop["lat"]),
            lon=float(stop["lon"]),
            est_kg=int(stop.get("est_kg") or 0),
            visited=bool(stop.get("visited", False)),
        )
        for stop in document.get("stops") or []
    ]
    return RoutePlan(
        stops=stops,
        load_kg=int(document.get("load_kg") or 0),
        distance_km=float(document.get("distance_km") or 0.0),
        truck_id=document.get("truck_id"),
    )


def upsert_plan(
    store: DocumentStore,
    key: PlanKey,
    plan: RoutePlan,
    *,
    depot: Depot,
    summary: dict[str, Any] | None = None,
    updated_at: datetime | None = None,
) -> dict[str, Any]:
    """Create or overwrite the plan stored under ``key``."""
    document = plan_to_document(key, plan, depot=depot, summary=summary, updated_at=updated_at)
    saved = store.upsert(PLANS, key.document_id, document)
    logger.info(f"Saved plan {key.document_id}: {len(plan.stops)} stops, {plan.load_kg} kg, {plan.distance_km} km")
    return saved


def get_plan(store: DocumentStore, key: PlanKey) -> dict[str, Any] | None:
    return store.get(PLANS, key.document_id)


def find_plans(store: DocumentStore, truck_id: str, day: date) -> list[dict[str, Any]]:
    """Plans for a truck on a day, most recently updated first."""
    plans = store.find(PLANS, truck_id=truck_id, date=day.isoformat())
    return sorted(plans, key=lambda document: document.get("updated_at") or "", reverse=True)


def get_day_plan(store: DocumentStore, truck_id: str, day: date) -> dict[str, Any] | None:
    plans = find_plans(store, truck_id, day)
    return plans[0] if plans else None


def mark_stop_visited(store: DocumentStore, truck_id: str, day: date, bin_id: str) -> int:
    """Flag ``bin_id`` as visited in the truck's plans for ``day``.

    Returns the number of plans containing the stop. Stops already visited
    are left untouched.
    """
    matched = 0
    for document in find_plans(store, truck_id, day):
        stops = document.get("stops") or []
        hits = [stop for stop in stops if stop.get("bin_id") == bin_id]
        if not hits:
            continue
        matched += 1
        if all(stop.get("visited") for stop in hits):
            continue
        for stop in hits:
            stop["visited"] = True
        store.upsert(PLANS, document["id"], document)
    if not matched:
        logger.warning(f"No plan for truck {truck_id} on {day.isoformat()} contains bin {bin_id}")
    return matched
