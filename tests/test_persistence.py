import os
import threading
from datetime import date, datetime, timezone
from pathlib import Path

import httpx
import pytest

from src.app.data.bins_repository import get_bins_for_area, upsert_bin
from src.app.exceptions import StoreError
from src.app.models.domain import Bin, Depot
from src.app.persistence.filesystem import FileStorage, document_filename, safe_filename
from src.app.persistence.plans import (
    PlanKey,
    find_plans,
    get_day_plan,
    get_plan,
    mark_stop_visited,
    plan_from_document,
    upsert_plan,
)
from src.app.persistence.store import PLANS, FileDocumentStore, SupabaseDocumentStore
from src.app.services.routing.models import RoutePlan, RouteStop

DEPOT = Depot(code="COLOMBO", latitude=6.927, longitude=79.861)
DAY = date(2026, 10, 19)


def _plan(*bin_ids: str) -> RoutePlan:
    stops = [RouteStop(bin_id=bin_id, lat=6.93, lon=79.86, est_kg=40) for bin_id in bin_ids]
    return RoutePlan(stops=stops, load_kg=40 * len(stops), distance_km=3.5)


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="routes_test")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path.resolve() / "outputs"


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="routes_test")

    summary_path = run_dir / "summary.json"
    stops_path = run_dir / "stops.csv"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(stops_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert stops_path.read_text(encoding="utf-8") == "a,b\n1,2\n"
    assert storage.read_json(summary_path) == {"hello": "world"}
    assert storage.read_json(run_dir / "missing.json") is None


def test_safe_filename_strips_separators():
    assert safe_filename("colombo|*|TRUCK-01|2026-10-19") == "colombo_TRUCK-01_2026-10-19"
    assert safe_filename("../../etc") == "etc"


def test_document_filename_is_distinct_per_id():
    ids = ["colombo|north|TRUCK-01|2026-10-19", "colombo_north|*|TRUCK-01|2026-10-19", "BIN 1", "BIN_1", "a/b", "a%2Fb"]

    names = [document_filename(document_id) for document_id in ids]

    assert len(set(names)) == len(ids)
    assert all("/" not in name for name in names)


def test_plans_with_look_alike_keys_are_stored_separately(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    north = PlanKey("colombo", "north", "TRUCK-01", DAY)
    merged = PlanKey("colombo_north", None, "TRUCK-01", DAY)

    upsert_plan(store, north, _plan("A"), depot=DEPOT)
    upsert_plan(store, merged, RoutePlan(), depot=DEPOT)

    assert get_plan(store, north)["service_area"] == "colombo"
    assert [stop["bin_id"] for stop in get_plan(store, north)["stops"]] == ["A"]
    assert get_plan(store, merged)["stops"] == []
    assert len(store.find(PLANS)) == 2


def test_bins_with_look_alike_ids_do_not_overwrite(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    upsert_bin(store, Bin("BIN 1", 6.9, 79.8, 100.0, service_area="colombo"))
    upsert_bin(store, Bin("BIN_1", 6.9, 79.8, 100.0, service_area="colombo"))

    assert sorted(bin.bin_id for bin in get_bins_for_area(store, "colombo")) == ["BIN 1", "BIN_1"]


def test_concurrent_upserts_on_one_key_keep_a_whole_document(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    key = PlanKey("colombo", None, "TRUCK-01", DAY)
    errors = []

    def writer(bin_id: str) -> None:
        for _ in range(20):
            try:
                upsert_plan(store, key, _plan(bin_id), depot=DEPOT)
            except Exception as exc:
                errors.append(exc)

    threads = [threading.Thread(target=writer, args=(f"W{index}",)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    stored = store.find(PLANS)
    assert len(stored) == 1
    assert stored[0]["stops"][0]["bin_id"] in {"W0", "W1", "W2", "W3"}
    leftovers = [name for name in os.listdir(store.storage.collection_directory(PLANS)) if name.endswith(".tmp")]
    assert leftovers == []


def test_file_document_store_round_trip(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    store.upsert("things", "a/1", {"kind": "x", "size": 1})
    store.upsert("things", "b", {"kind": "y", "size": 2})

    assert store.get("things", "a/1") == {"kind": "x", "size": 1, "id": "a/1"}
    assert store.get("things", "missing") is None
    assert [doc["id"] for doc in store.find("things", kind="y")] == ["b"]
    assert len(store.find("things")) == 2


def test_plan_key_document_id_normalises_missing_sub_area():
    assert PlanKey("colombo", None, "TRUCK-01", DAY).document_id == "colombo|*|TRUCK-01|2026-10-19"
    assert PlanKey("colombo", "ward-3", "TRUCK-01", DAY).document_id == "colombo|ward-3|TRUCK-01|2026-10-19"


def test_upsert_plan_overwrites_same_key(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    key = PlanKey("colombo", None, "TRUCK-01", DAY)

    upsert_plan(store, key, _plan("A", "B"), depot=DEPOT, summary={"considered_bins": 2})
    upsert_plan(store, key, _plan("C"), depot=DEPOT, summary={"considered_bins": 1})

    stored = store.find(PLANS)
    assert len(stored) == 1
    document = get_plan(store, key)
    assert [stop["bin_id"] for stop in document["stops"]] == ["C"]
    assert document["summary"] == {"considered_bins": 1}
    assert document["depot"] == {"lat": 6.927, "lon": 79.861}
    assert document["date"] == "2026-10-19"
    assert plan_from_document(document) == RoutePlan(
        stops=[RouteStop(bin_id="C", lat=6.93, lon=79.86, est_kg=40)],
        load_kg=40,
        distance_km=3.5,
        truck_id="TRUCK-01",
    )


def test_distinct_keys_create_distinct_plans(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    upsert_plan(store, PlanKey("colombo", None, "TRUCK-01", DAY), _plan("A"), depot=DEPOT)
    upsert_plan(store, PlanKey("colombo", None, "TRUCK-02", DAY), _plan("B"), depot=DEPOT)
    upsert_plan(store, PlanKey("colombo", None, "TRUCK-01", date(2026, 10, 20)), _plan("C"), depot=DEPOT)

    assert len(store.find(PLANS)) == 3
    assert [doc["truck_id"] for doc in find_plans(store, "TRUCK-01", DAY)] == ["TRUCK-01"]


def test_get_day_plan_prefers_latest_update(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    early = datetime(2026, 10, 19, 1, 0, tzinfo=timezone.utc)
    late = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)
    upsert_plan(store, PlanKey("colombo", "ward-1", "TRUCK-01", DAY), _plan("LATE"), depot=DEPOT, updated_at=late)
    upsert_plan(store, PlanKey("colombo", "ward-2", "TRUCK-01", DAY), _plan("EARLY"), depot=DEPOT, updated_at=early)

    assert get_day_plan(store, "TRUCK-01", DAY)["stops"][0]["bin_id"] == "LATE"
    assert get_day_plan(store, "TRUCK-09", DAY) is None


def test_mark_stop_visited_is_idempotent(tmp_path: Path) -> None:
    store = FileDocumentStore(root=tmp_path)
    key = PlanKey("colombo", None, "TRUCK-01", DAY)
    upsert_plan(store, key, _plan("A", "B"), depot=DEPOT)

    assert mark_stop_visited(store, "TRUCK-01", DAY, "B") == 1
    assert mark_stop_visited(store, "TRUCK-01", DAY, "B") == 1

    stops = get_plan(store, key)["stops"]
    assert [(stop["bin_id"], stop["visited"]) for stop in stops] == [("A", False), ("B", True)]
    assert mark_stop_visited(store, "TRUCK-01", DAY, "ZZZ") == 0


class _Response:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self):
        self.client.executed.append((self.table, self.calls))
        if self.client.failures:
            self.client.failures -= 1
            raise self.client.error
        return _Response(self.client.rows)


class FakeSupabase:
    def __init__(self, rows=None, failures=0, error=None):
        self.rows = rows or []
        self.failures = failures
        self.error = error or httpx.ConnectError("connection refused")
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)


def test_supabase_store_upserts_on_id():
    client = FakeSupabase(rows=[{"id": "k", "value": 1}])
    store = SupabaseDocumentStore(client, max_retries=0, backoff_seconds=0)

    saved = store.upsert("route_plans", "k", {"value": 1})

    assert saved == {"id": "k", "value": 1}
    table, calls = client.executed[0]
    assert table == "route_plans"
    assert calls == [("upsert", ({"value": 1, "id": "k"},), {"on_conflict": "id"})]


def test_supabase_store_find_filters_null_with_is():
    client = FakeSupabase(rows=[{"id": "a"}])
    store = SupabaseDocumentStore(client, max_retries=0, backoff_seconds=0)

    assert store.find("waste_bins", service_area="colombo", sub_area=None) == [{"id": "a"}]
    _, calls = client.executed[0]
    assert ("eq", ("service_area", "colombo"), {}) in calls
    assert ("is_", ("sub_area", "null"), {}) in calls


def test_supabase_store_retries_transient_errors():
    client = FakeSupabase(rows=[{"id": "k"}], failures=2)
    store = SupabaseDocumentStore(client, max_retries=3, backoff_seconds=0)

    assert store.get("waste_bins", "k") == {"id": "k"}
    assert len(client.executed) == 3


def test_supabase_store_raises_store_error_after_retries():
    client = FakeSupabase(failures=5)
    store = SupabaseDocumentStore(client, max_retries=2, backoff_seconds=0)

    with pytest.raises(StoreError):
        store.upsert("route_plans", "k", {"value": 1})
    assert len(client.executed) == 3


def test_supabase_store_wraps_non_transient_errors():
    client = FakeSupabase(failures=1, error=RuntimeError("permission denied"))
    store = SupabaseDocumentStore(client, max_retries=3, backoff_seconds=0)

    with pytest.raises(StoreError, match="permission denied"):
        store.find("route_plans", truck_id="TRUCK-01")
    assert len(client.executed) == 1
