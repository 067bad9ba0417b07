"""Fill-level estimation from accumulation rate and time since last pickup."""

from __future__ import annotations

from datetime import datetime, timezone

from ...models.domain import Bin

SECONDS_PER_DAY = 86400.0
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def elapsed_days(last_pickup_at: datetime | None, now: datetime) -> float:
    """Days since the last pickup, never less than one.

    A bin that was never serviced is measured from the Unix epoch, which
    saturates any realistic capacity.
    """
    reference = _as_aware(last_pickup_at) if last_pickup_at is not None else EPOCH
    days = (_as_aware(now) - reference).total_seconds() / SECONDS_PER_DAY
    return max(1.0, days)


def estimate_fill_kg(bin: Bin | None, now: datetime) -> float:
    """Estimated current load in kg, clamped to ``[0, capacity]``."""
    if bin is None or bin.capacity_kg <= 0:
        return 0.0
    estimated = bin.est_rate_kg_per_day * elapsed_days(bin.last_pickup_at, now)
    return min(bin.capacity_kg, max(0.0, estimated))


def fill_ratio(bin: Bin | None, now: datetime) -> float:
    if bin is None or bin.capacity_kg <= 0:
        return 0.0
    return estimate_fill_kg(bin, now) / bin.capacity_kg
