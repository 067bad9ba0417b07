"""Field collection endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...persistence.store import get_document_store
from ...schemas.collections import CollectionRequest, CollectionResponse
from ...services.collections import record_completion

router = APIRouter(prefix="/collections", tags=["collections"])


@router.post("", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
def record_collection(payload: CollectionRequest) -> CollectionResponse:
    try:
        outcome = record_completion(
            payload.bin_id,
            payload.truck_id,
            payload.timestamp,
            payload.notes,
            store=get_document_store(),
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    response = CollectionResponse(
        ok=outcome.ok,
        bin_id=outcome.bin_id,
        truck_id=outcome.truck_id,
        event_recorded=outcome.event_recorded,
        stop_marked=outcome.stop_marked,
        bin_updated=outcome.bin_updated,
        failed_writes=outcome.failed_writes,
    )
    if not outcome.ok:
        logging.error(f"Partial completion for bin {outcome.bin_id}: failed {outcome.failed_writes}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=response.model_dump(mode="json"),
        )
    return response
