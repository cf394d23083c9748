"""
SLA API — FastAPI Service
===========================
Read-only business-hours SLA evaluation for sample requests.

Stateless: every call reads the clock once (unless `now` is pinned by the
caller) and evaluates all items against that instant.

Endpoints:
    POST /evaluate        - Single request evaluation
    POST /evaluate/batch  - Batch evaluation (results parallel to items)
    GET  /calendar        - Active working calendar & thresholds
    GET  /health          - Health check
"""
from __future__ import annotations

import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path for shared imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator
from services.shared.config import SLAServiceConfig, setup_logging, trace_id_var
from services.shared.models import (
    CalendarInfoResponse,
    HealthResponse,
    SLABatchRequest,
    SLABatchResult,
    SLAEvaluateRequest,
    SLAItem,
    SLAItemResult,
)
from services.sla.src.clock import SLAInput, SLAResult, evaluate, summarize
from services.sla.src.work_calendar import WorkCalendar

_LOGGER = logging.getLogger(__name__)

# ============ App Setup ============

config = SLAServiceConfig.from_env()
setup_logging(config.debug, "sla-api", json_logs=config.log_format == "json")

# Built in lifespan, after config validation
calendar: WorkCalendar | None = None

# ============ Custom Business Metrics ============

_evaluations_counter = Counter(
    "sla_evaluations_total",
    "Total SLA evaluations",
    ["level"],
)


# ============ Startup/Shutdown ============

@asynccontextmanager
async def lifespan(application: FastAPI):
    global calendar
    errors = config.validate()
    if errors:
        _LOGGER.error("Configuration errors: %s", errors)
        raise RuntimeError(f"Invalid SLA configuration: {errors}")
    calendar = WorkCalendar.from_config(config)
    _LOGGER.info("Starting SLA API — calendar: %s", calendar)
    _LOGGER.info(
        "Thresholds: warning < %sh, approaching <= %sh",
        config.warning_hours, config.approaching_hours,
    )
    yield
    _LOGGER.info("SLA API shutting down")


app = FastAPI(
    title="Sample Tracker - SLA API",
    description="Business-hours SLA evaluation for sample requests",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Prometheus HTTP metrics (auto-instruments all endpoints → /metrics)
Instrumentator().instrument(app).expose(app)


@app.middleware("http")
async def _trace_middleware(request: Request, call_next):
    """Attach X-Trace-ID to every request and propagate trace_id into log records."""
    trace_id = request.headers.get("X-Trace-ID") or uuid.uuid4().hex[:8]
    token = trace_id_var.set(trace_id)
    try:
        response = await call_next(request)
        response.headers["X-Trace-ID"] = trace_id
        return response
    finally:
        trace_id_var.reset(token)


# ============ Helpers ============

def _require_calendar() -> WorkCalendar:
    if calendar is None:
        raise HTTPException(503, "Working calendar not initialized")
    return calendar


def _evaluate_item(item: SLAItem, now: datetime) -> tuple[SLAResult, SLAItemResult]:
    result = evaluate(
        SLAInput(
            now=now,
            deadline=item.required_by,
            status=item.status,
            fulfillment_method=item.fulfillment_method,
        ),
        _require_calendar(),
        warning_hours=config.warning_hours,
        approaching_hours=config.approaching_hours,
    )
    _evaluations_counter.labels(level=result.level.value).inc()
    return result, SLAItemResult(
        id=item.id,
        completed=result.completed,
        signed_working_minutes=result.signed_working_minutes,
        level=result.level,
        label=result.label,
    )


def _resolve_now(pinned: datetime | None) -> datetime:
    return pinned or datetime.now(timezone.utc)


# ============ Endpoints ============

@app.post("/evaluate", response_model=SLAItemResult)
async def evaluate_one(request: SLAEvaluateRequest):
    """Evaluate the SLA of a single request."""
    _, item_result = _evaluate_item(request.item, _resolve_now(request.now))
    return item_result


@app.post("/evaluate/batch", response_model=SLABatchResult)
async def evaluate_batch(request: SLABatchRequest):
    """
    Evaluate a batch of requests against one "now".

    Results are returned in the same order as the submitted items.
    """
    if len(request.items) > config.max_batch_size:
        raise HTTPException(
            422,
            f"Batch too large: {len(request.items)} items (max {config.max_batch_size})",
        )

    start = time.time()
    now = _resolve_now(request.now)

    raw_results = []
    results = []
    for item in request.items:
        raw, item_result = _evaluate_item(item, now)
        raw_results.append(raw)
        results.append(item_result)

    summary = {level.value: count for level, count in summarize(raw_results).items()}
    _LOGGER.debug("Evaluated %d items: %s", len(results), summary)

    return SLABatchResult(
        evaluated_at=now,
        results=results,
        summary=summary,
        total_time_ms=round((time.time() - start) * 1000, 2),
    )


@app.get("/calendar", response_model=CalendarInfoResponse)
async def calendar_info():
    """Active working calendar and level thresholds."""
    active = _require_calendar()
    return CalendarInfoResponse(
        timezone_offset_minutes=active.timezone_offset_minutes,
        work_start_hour=active.work_start_hour,
        work_end_hour=active.work_end_hour,
        non_working_weekday=active.non_working_weekday,
        hours_per_day=active.hours_per_day,
        warning_hours=config.warning_hours,
        approaching_hours=config.approaching_hours,
    )


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(service="sla-api")


# ============ Entry Point ============

if __name__ == "__main__":
    # Use app object (not string) to prevent double-import that causes
    # Prometheus 'Duplicated timeseries' ValueError.
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        reload=False,
    )
