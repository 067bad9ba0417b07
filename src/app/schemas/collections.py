"""Field completion request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CollectionRequest(BaseModel):
    bin_id: str = Field(..., min_length=1)
    truck_id: Optional[str] = Field(default=None, description="Defaults to TRUCK-01 when omitted.")
    notes: Optional[str] = None
    timestamp: Optional[datetime] = Field(default=None, description="Pickup time; defaults to now.")


class CollectionResponse(BaseModel):
    ok: bool
    bin_id: str
    truck_id: str
    event_recorded: bool
    stop_marked: bool
    bin_updated: bool
    failed_writes: List[str]
