"""Data access helpers for loading and updating waste bin records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from ..models.domain import DEFAULT_RATE_KG_PER_DAY, Bin
from ..persistence.store import BINS, DocumentStore

logger = logging.getLogger(__name__)


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(str(value).replace(",", ""))
    except ValueError as exc:
        raise ValueError(f"Unable to parse float from value '{value}'") from exc


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)


def bin_from_document(document: dict[str, Any]) -> Bin:
    """Build a ``Bin`` from a loosely shaped record, defaulting optional fields."""
    location = document.get("location") or {}
    bin_id = str(document.get("bin_id") or document.get("binId") or "").strip()
    if not bin_id:
        raise ValueError("Bin record is missing bin_id.")
    lat = _coerce_float(document.get("lat", location.get("lat")))
    lon = _coerce_float(document.get("lon", location.get("lon")))
    if lat is None or lon is None:
        raise ValueError(f"Bin '{bin_id}' has no coordinates.")
    capacity = _coerce_float(document.get("capacity_kg", document.get("capacityKg")))
    rate = _coerce_float(document.get("est_rate_kg_per_day", document.get("estRateKgPerDay")))
    return Bin(
        bin_id=bin_id,
        latitude=lat,
        longitude=lon,
        capacity_kg=capacity if capacity is not None else 0.0,
        est_rate_kg_per_day=rate if rate is not None else DEFAULT_RATE_KG_PER_DAY,
        last_pickup_at=_parse_timestamp(document.get("last_pickup_at", document.get("lastPickupAt"))),
        service_area=document.get("service_area"),
        sub_area=document.get("sub_area"),
    )


def bin_to_document(bin: Bin) -> dict[str, Any]:
    return {
        "bin_id": bin.bin_id,
        "service_area": bin.service_area,
        "sub_area": bin.sub_area,
        "lat": bin.latitude,
        "lon": bin.longitude,
        "capacity_kg": bin.capacity_kg,
        "est_rate_kg_per_day": bin.est_rate_kg_per_day,
        "last_pickup_at": bin.last_pickup_at.isoformat() if bin.last_pickup_at else None,
    }


def bins_from_documents(documents: Iterable[dict[str, Any]]) -> list[Bin]:
    bins: list[Bin] = []
    for document in documents:
        try:
            bins.append(bin_from_document(document))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Skipping invalid bin record: {e}")
    return bins


def get_bins_for_area(store: DocumentStore, service_area: str, sub_area: str | None = None) -> list[Bin]:
    """Snapshot of all bins in a service area, optionally narrowed to a sub-area."""
    filters: dict[str, Any] = {"service_area": service_area}
    if sub_area:
        filters["sub_area"] = sub_area
    bins = bins_from_documents(store.find(BINS, **filters))
    logger.info(f"Loaded {len(bins)} bins for service area '{service_area}' (sub_area={sub_area})")
    return bins


def upsert_bin(store: DocumentStore, bin: Bin) -> dict[str, Any]:
    return store.upsert(BINS, bin.bin_id, bin_to_document(bin))


def set_last_pickup(store: DocumentStore, bin_id: str, timestamp: datetime) -> bool:
    """Reset the bin's last pickup time; returns False when the bin is unknown."""
    document = store.get(BINS, bin_id)
    if document is None:
        logger.warning(f"Bin '{bin_id}' not found - last pickup not updated")
        return False
    document["last_pickup_at"] = timestamp.isoformat()
    store.upsert(BINS, bin_id, document)
    return True
