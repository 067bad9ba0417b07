"""Supabase client for the document store."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.info("Supabase credentials not configured - using file document store")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Tables used by the document store (all keyed by a text "id" primary key):
#
#   route_plans        id, service_area, sub_area, truck_id, date, depot, stops (jsonb),
#                      load_kg, distance_km, status, summary (jsonb), updated_at
#   waste_bins         id, bin_id, service_area, sub_area, lat, lon, capacity_kg,
#                      est_rate_kg_per_day, last_pickup_at
#   collection_events  id, bin_id, truck_id, date, ts, notes
