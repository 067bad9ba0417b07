"""Depot lookup: configured depots, then the depot workbook, then the default."""

from __future__ import annotations

import functools
import logging
from pathlib import Path

from openpyxl import load_workbook

from ..config import settings
from ..models.domain import Depot

DEFAULT_DEPOT_CODE = "DEFAULT"


def _normalize_area_name(name: str) -> str:
    return name.strip().lower()


@functools.lru_cache(maxsize=1)
def load_depots_from_file(source: Path | None = None) -> tuple[Depot, ...]:
    """Load depots from the Excel workbook; an absent workbook yields no depots."""
    workbook_path = source or settings.depot_locations_file
    if not workbook_path.exists():
        return tuple()

    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    try:
        sheet = wb.active
        rows = sheet.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError(f"Depot workbook '{workbook_path}' is empty.")

        header_map = {str(name).strip(): idx for idx, name in enumerate(header) if name is not None}
        missing_columns = {"ServiceArea", "Latitude", "Longitude"} - set(header_map)
        if missing_columns:
            raise ValueError(f"Depot workbook missing columns: {', '.join(sorted(missing_columns))}")

        depots: list[Depot] = []
        for row in rows:
            area_value = row[header_map["ServiceArea"]]
            if not area_value:
                continue
            try:
                depots.append(
                    Depot(
                        code=str(area_value).strip(),
                        latitude=float(row[header_map["Latitude"]]),
                        longitude=float(row[header_map["Longitude"]]),
                    )
                )
            except (TypeError, ValueError) as e:
                logging.warning(f"Skipping invalid depot row for '{area_value}': {e}")
        return tuple(depots)
    finally:
        wb.close()


def default_depot() -> Depot:
    return Depot(code=DEFAULT_DEPOT_CODE, latitude=settings.default_depot_lat, longitude=settings.default_depot_lon)


def resolve_depot(service_area: str | None) -> Depot:
    """Depot for a service area, falling back to the global default."""
    if not service_area:
        return default_depot()
    normalized = _normalize_area_name(service_area)

    for area, (lat, lon) in settings.service_area_depots.items():
        if _normalize_area_name(area) == normalized:
            return Depot(code=area, latitude=lat, longitude=lon)

    for depot in load_depots_from_file():
        if _normalize_area_name(depot.code) == normalized:
            return depot

    logging.info(f"No depot configured for service area '{service_area}', using default depot")
    return default_depot()
