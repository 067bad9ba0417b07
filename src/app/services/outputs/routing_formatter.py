"""Serializers for route plan exports."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from ..routing.models import RoutingResult


def routing_result_to_json(result: RoutingResult) -> dict:
    return {
        "service_area": result.service_area,
        "sub_area": result.sub_area,
        "date": result.day.isoformat(),
        "summary": result.summary,
        "plans": [
            {
                "truck_id": plan.truck_id,
                "load_kg": plan.load_kg,
                "distance_km": plan.distance_km,
                "stop_count": len(plan.stops),
                "stops": [asdict(stop) for stop in plan.stops],
            }
            for plan in result.plans
        ],
    }


def routing_result_to_csv(result: RoutingResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "truck_id",
        "date",
        "sequence",
        "bin_id",
        "lat",
        "lon",
        "est_kg",
        "load_kg",
        "distance_km",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for plan in result.plans:
        for sequence, stop in enumerate(plan.stops, start=1):
            writer.writerow(
                {
                    "truck_id": plan.truck_id,
                    "date": result.day.isoformat(),
                    "sequence": sequence,
                    "bin_id": stop.bin_id,
                    "lat": stop.lat,
                    "lon": stop.lon,
                    "est_kg": stop.est_kg,
                    "load_kg": plan.load_kg,
                    "distance_km": plan.distance_km,
                }
            )
    return buffer.getvalue()
