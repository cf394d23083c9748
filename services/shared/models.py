"""
Shared Data Models
===================
Pydantic models used as API contracts between services.
Single source of truth for request/response schemas.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ============ Enums ============

class RequestStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    IN_PRODUCTION = "in_production"
    READY = "ready"
    DISPATCHED = "dispatched"
    RECEIVED = "received"
    REJECTED = "rejected"


class FulfillmentMethod(str, Enum):
    SELF_PICKUP = "self_pickup"
    COURIER = "courier"
    COMPANY_VEHICLE = "company_vehicle"
    FIELD_BOY = "field_boy"
    THIRD_PARTY = "3rd_party"
    OTHER = "other"


class SLALevel(str, Enum):
    SAFE = "safe"
    APPROACHING = "approaching"
    WARNING = "warning"
    OVERDUE = "overdue"
    COMPLETED = "completed"
    NONE = "none"


# ============ SLA Service Models ============

class SLAItem(BaseModel):
    """One request as supplied by the request-tracking system."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Request id or request number")
    required_by: Optional[datetime] = Field(None, description="Deadline, ISO-8601 (UTC if no offset)")
    status: RequestStatus
    fulfillment_method: Optional[FulfillmentMethod] = Field(
        None,
        validation_alias=AliasChoices("fulfillment_method", "pickup_responsibility"),
        description="Pickup/delivery method code",
    )


class SLAItemResult(BaseModel):
    """SLA classification for one request."""
    id: str
    completed: bool
    signed_working_minutes: int = Field(..., description="Positive = remaining, negative = overdue")
    level: SLALevel
    label: str


class SLAEvaluateRequest(BaseModel):
    """Request body for /evaluate endpoint."""
    item: SLAItem
    now: Optional[datetime] = Field(None, description="Pin evaluation time (defaults to server clock)")


class SLABatchRequest(BaseModel):
    """Request body for /evaluate/batch endpoint."""
    items: list[SLAItem] = Field(..., min_length=1)
    now: Optional[datetime] = Field(None, description="Pin evaluation time (defaults to server clock)")


class SLABatchResult(BaseModel):
    """Response from /evaluate/batch endpoint; results are parallel to items."""
    evaluated_at: datetime
    results: list[SLAItemResult]
    summary: dict[str, int] = Field(default_factory=dict, description="Count of results per level")
    total_time_ms: float


class CalendarInfoResponse(BaseModel):
    """Response from /calendar endpoint."""
    timezone_offset_minutes: int
    work_start_hour: int
    work_end_hour: int
    non_working_weekday: int
    hours_per_day: int
    warning_hours: float
    approaching_hours: float


# ============ Health Check ============

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    service: str
    version: str = "1.0.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
