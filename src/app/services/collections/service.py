"""Field completion feedback: audit event, visited stop and bin pickup time.

The three writes are independent. Each one is keyed, so a retried
completion overwrites or skips rather than duplicating, and a failure in one
write does not prevent the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from ...config import settings
from ...data.bins_repository import set_last_pickup
from ...exceptions import StoreError
from ...persistence.plans import mark_stop_visited
from ...persistence.store import EVENTS, DocumentStore, get_document_store
from ..routing.service import plan_day

logger = logging.getLogger(__name__)

EVENT_WRITE = "collection_event"
STOP_WRITE = "plan_stop"
BIN_WRITE = "bin_last_pickup"


@dataclass(slots=True)
class CompletionOutcome:
    bin_id: str
    truck_id: str
    day: date
    event_recorded: bool = False
    stop_marked: bool = False
    bin_updated: bool = False
    failed_writes: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_writes


def event_document_id(bin_id: str, truck_id: str, day: date) -> str:
    return "|".join((bin_id, truck_id, day.isoformat()))


def append_collection_event(
    store: DocumentStore,
    bin_id: str,
    truck_id: str,
    timestamp: datetime,
    day: date,
    notes: str | None = None,
) -> dict[str, Any]:
    """Record the pickup once per (bin, truck, day); repeats return the original event."""
    document_id = event_document_id(bin_id, truck_id, day)
    existing = store.get(EVENTS, document_id)
    if existing is not None:
        return existing
    return store.upsert(
        EVENTS,
        document_id,
        {
            "bin_id": bin_id,
            "truck_id": truck_id,
            "date": day.isoformat(),
            "ts": timestamp.isoformat(),
            "notes": notes,
        },
    )


def record_completion(
    bin_id: str,
    truck_id: str | None = None,
    timestamp: datetime | None = None,
    notes: str | None = None,
    *,
    store: DocumentStore | None = None,
    tz_name: str | None = None,
) -> CompletionOutcome:
    """Apply a field-reported pickup. Failed writes are listed, not rolled back."""
    bin_id = bin_id.strip()
    if not bin_id:
        raise ValueError("bin_id is required.")
    truck_id = (truck_id or "").strip() or f"{settings.truck_id_prefix}-01"
    timestamp = timestamp or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    store = store or get_document_store()
    day = plan_day(timestamp, tz_name or settings.timezone)

    outcome = CompletionOutcome(bin_id=bin_id, truck_id=truck_id, day=day)

    try:
        append_collection_event(store, bin_id, truck_id, timestamp, day, notes)
        outcome.event_recorded = True
    except StoreError as exc:
        logger.error(f"Failed to record collection event for bin {bin_id}: {exc}")
        outcome.failed_writes.append(EVENT_WRITE)

    try:
        outcome.stop_marked = mark_stop_visited(store, truck_id, day, bin_id) > 0
    except StoreError as exc:
        logger.error(f"Failed to mark bin {bin_id} visited in plan of {truck_id}: {exc}")
        outcome.failed_writes.append(STOP_WRITE)

    try:
        outcome.bin_updated = set_last_pickup(store, bin_id, timestamp)
    except StoreError as exc:
        logger.error(f"Failed to update last pickup for bin {bin_id}: {exc}")
        outcome.failed_writes.append(BIN_WRITE)

    logger.info(
        f"Completion bin={bin_id} truck={truck_id} day={day.isoformat()}: "
        f"event={outcome.event_recorded} stop={outcome.stop_marked} bin={outcome.bin_updated}"
    )
    return outcome
