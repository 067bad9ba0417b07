import math
from datetime import datetime, timedelta, timezone

import pytest

from src.app.models.domain import Bin, Depot
from src.app.services.routing.candidates import select_candidates

NOW = datetime(2026, 10, 19, 4, 0, tzinfo=timezone.utc)
DEPOT = Depot(code="COLOMBO", latitude=6.927, longitude=79.861)
KM_PER_DEG_LAT = 6371.0 * math.pi / 180.0


def _bin(bin_id: str, north_km: float, capacity: float = 100.0, days: float | None = None, rate: float = 10.0) -> Bin:
    return Bin(
        bin_id=bin_id,
        latitude=DEPOT.latitude + north_km / KM_PER_DEG_LAT,
        longitude=DEPOT.longitude,
        capacity_kg=capacity,
        est_rate_kg_per_day=rate,
        last_pickup_at=None if days is None else NOW - timedelta(days=days),
        service_area="colombo",
    )


def test_filters_bins_below_threshold():
    bins = [
        _bin("LOW", 1.0, days=2),  # 20 kg of 100 -> 0.2
        _bin("HIGH", 2.0, days=7),  # 70 kg of 100 -> 0.7
    ]
    candidates = select_candidates(bins, DEPOT, 0.5, 1000.0, NOW)
    assert [candidate.bin_id for candidate in candidates] == ["HIGH"]
    assert candidates[0].est_kg == pytest.approx(70.0)
    assert candidates[0].fill_ratio == pytest.approx(0.7)
    assert candidates[0].depot_distance_km == pytest.approx(2.0, abs=1e-9)


def test_bin_exactly_at_threshold_is_kept():
    candidates = select_candidates([_bin("EDGE", 1.0, days=5)], DEPOT, 0.5, 1000.0, NOW)
    assert [candidate.bin_id for candidate in candidates] == ["EDGE"]


def test_discards_invalid_coordinates_and_non_positive_capacity():
    bins = [
        _bin("OK", 1.0),
        _bin("EMPTY-CAP", 1.0, capacity=0.0),
        Bin(bin_id="NAN", latitude=float("nan"), longitude=79.861, capacity_kg=100.0),
        Bin(bin_id="OUT", latitude=95.0, longitude=79.861, capacity_kg=100.0),
    ]
    candidates = select_candidates(bins, DEPOT, 0.0, 1000.0, NOW)
    assert [candidate.bin_id for candidate in candidates] == ["OK"]


@pytest.mark.parametrize("truck_capacity", [0.0, -10.0])
def test_zero_truck_capacity_yields_no_candidates(truck_capacity):
    assert select_candidates([_bin("A", 1.0)], DEPOT, 0.0, truck_capacity, NOW) == []


def test_orders_by_depot_distance():
    bins = [_bin("FAR", 3.0), _bin("NEAR", 1.0), _bin("MID", 2.0)]
    candidates = select_candidates(bins, DEPOT, 0.0, 1000.0, NOW)
    assert [candidate.bin_id for candidate in candidates] == ["NEAR", "MID", "FAR"]


def test_equal_distance_ties_break_by_bin_id():
    bins = [_bin("B-001", 1.0), _bin("A-001", -1.0), _bin("A-000", 0.5)]
    candidates = select_candidates(bins, DEPOT, 0.0, 1000.0, NOW)
    assert [candidate.bin_id for candidate in candidates] == ["A-000", "A-001", "B-001"]


def test_raising_threshold_never_adds_candidates():
    bins = [_bin(f"BIN-{index:02d}", 0.5 * index, days=index) for index in range(1, 11)]
    previous = None
    for threshold in (0.0, 0.1, 0.3, 0.5, 0.7, 0.9):
        current = {candidate.bin_id for candidate in select_candidates(bins, DEPOT, threshold, 1000.0, NOW)}
        if previous is not None:
            assert current <= previous
        previous = current
