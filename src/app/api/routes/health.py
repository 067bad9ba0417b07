"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
def health_osrm() -> dict:
    """Check OSRM service health; directions fall back to straight lines when it is down."""
    from ...services.routing.osrm_client import check_health

    return {"service": "osrm", "healthy": check_health()}


@router.get("/health/store", status_code=status.HTTP_200_OK)
def health_store() -> dict:
    """Report which document store backs plans and bins."""
    from ...db.supabase import get_supabase_client

    if get_supabase_client() is None:
        return {"backend": "files", "configured": True}
    return {"backend": "supabase", "configured": True}
