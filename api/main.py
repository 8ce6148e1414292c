"""
Eco-metrics API for Île-de-France communes.

Exposes the commune resolver, the metrics aggregator and the map event
feed via a FastAPI REST API. Endpoints are plain functions: the blocking
upstream calls run in FastAPI's threadpool.

Launch: uvicorn api.main:app --reload
Documentation: http://localhost:8000/docs
"""

from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import API_VERSION, MIN_CITY_LENGTH, state
from api.models import (
    CommuneResponse,
    CompareResponse,
    DepartmentInfo,
    DepartmentsResponse,
    EventPointResponse,
    EventsResponse,
    HealthResponse,
    MetricsResponse,
)
from src.adapters import EVENT_CATEGORIES
from src.commune import Commune, ResolutionStatus
from src.metrics import METRIC_FIELDS, MetricsRecord


# ---------------------------------------------------------------------------
# Lifespan: build shared components at startup
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the aggregator, resolver and event feed once at startup."""
    state.load()
    yield


# ---------------------------------------------------------------------------
# FastAPI Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Île-de-France Commune Eco-Metrics API",
    description=(
        "Eco-metrics of Île-de-France communes.\n\n"
        "Resolves free-text city names, aggregates event counts, energy "
        "consumption per inhabitant and environmental indicators, and "
        "compares two communes side by side."
    ),
    version=API_VERSION,
    lifespan=lifespan,
)

# CORS: restrict origins in production via CORS_ORIGINS env var
_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:8501,http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["Content-Type"],
)


# ---------------------------------------------------------------------------
# GET /health
# ---------------------------------------------------------------------------

@app.get("/health", response_model=HealthResponse, tags=["System"])
def health() -> HealthResponse:
    """Check the API status and report adapters and energy breaker state."""
    aggregator = state.aggregator
    breaker = aggregator.energy_breaker if aggregator is not None else None
    return HealthResponse(
        status="ok" if state.ready else "starting",
        version=API_VERSION,
        adapters=aggregator.adapter_names if aggregator is not None else [],
        energy_breaker_tripped=breaker.tripped if breaker is not None else False,
        uptime_seconds=round(time.time() - state.start_time, 1),
    )


# ---------------------------------------------------------------------------
# GET /departments
# ---------------------------------------------------------------------------

@app.get("/departments", response_model=DepartmentsResponse, tags=["Reference"])
def list_departments() -> DepartmentsResponse:
    """List the departments in which communes can be resolved."""
    geo = _require_ready().config.geo
    dept_list = [
        DepartmentInfo(code=code, name=name)
        for code, name in sorted(geo.departments.items())
    ]
    return DepartmentsResponse(
        region_code=geo.region_code,
        department_count=len(dept_list),
        departments=dept_list,
    )


# ---------------------------------------------------------------------------
# GET /communes/{name}
# ---------------------------------------------------------------------------

@app.get("/communes/{name}", response_model=CommuneResponse, tags=["Communes"])
def get_commune(name: str) -> CommuneResponse:
    """
    Resolve a free-text city name to an Île-de-France commune.

    Returns 404 when no commune of the region matches, and 503 when the
    commune registry (geo.api.gouv.fr) is unavailable.
    """
    outcome = _require_ready().resolver.lookup(name)
    if outcome.status is ResolutionStatus.UNAVAILABLE:
        raise HTTPException(
            status_code=503,
            detail="Commune registry unavailable, retry later",
        )
    if outcome.commune is None:
        raise HTTPException(
            status_code=404,
            detail=f"No Île-de-France commune found for '{outcome.query}'",
        )
    return _commune_response(outcome.commune)


# ---------------------------------------------------------------------------
# GET /metrics
# ---------------------------------------------------------------------------

@app.get("/metrics", response_model=MetricsResponse, tags=["Metrics"])
def get_metrics(
    city: str = Query(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text city name",
        examples=["Versailles"],
    ),
) -> MetricsResponse:
    """
    Build the eco-metrics record of one commune.

    All sources are queried concurrently; a failing source only nulls its
    own fields.
    """
    record = _require_ready().aggregator.build_metrics(city)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail=f"City '{city.strip()}' not found in Île-de-France",
        )
    return _metrics_response(record)


# ---------------------------------------------------------------------------
# GET /compare
# ---------------------------------------------------------------------------

@app.get("/compare", response_model=CompareResponse, tags=["Metrics"])
def compare(
    city_a: str = Query(..., max_length=100, examples=["Paris"]),
    city_b: str = Query(..., max_length=100, examples=["Créteil"]),
) -> CompareResponse:
    """
    Build the metrics of two communes concurrently.

    Both names must have at least two characters after trimming. Returns
    404 naming the first city that could not be resolved.
    """
    for label, value in (("city_a", city_a), ("city_b", city_b)):
        if len(value.strip()) < MIN_CITY_LENGTH:
            raise HTTPException(
                status_code=422,
                detail=f"'{label}' must contain at least {MIN_CITY_LENGTH} characters",
            )

    result = _require_ready().aggregator.compare(city_a, city_b)
    for city, record in ((city_a, result.first), (city_b, result.second)):
        if record is None:
            raise HTTPException(
                status_code=404,
                detail=f"City '{city.strip()}' not found in Île-de-France",
            )
    return CompareResponse(
        city_a=_metrics_response(result.first),
        city_b=_metrics_response(result.second),
    )


# ---------------------------------------------------------------------------
# GET /events
# ---------------------------------------------------------------------------

@app.get("/events", response_model=EventsResponse, tags=["Events"])
def list_events(
    category: str | None = Query(
        default=None,
        description=f"One of {', '.join(EVENT_CATEGORIES)} (default: all)",
    ),
    limit: int = Query(default=100, ge=1, le=100, description="Max records per category"),
) -> EventsResponse:
    """List geolocated events for the map."""
    feed = _require_ready().event_feed
    if category is not None and category not in EVENT_CATEGORIES:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Invalid category '{category}'. "
                f"Must be one of: {', '.join(EVENT_CATEGORIES)}."
            ),
        )
    points = feed.list_events(category, limit) if category else feed.list_all(limit)
    return EventsResponse(
        category=category,
        event_count=len(points),
        events=[EventPointResponse(**p.to_dict()) for p in points],
    )


# ---------------------------------------------------------------------------
# Internal utilities
# ---------------------------------------------------------------------------

def _require_ready():
    """Return the loaded state, or 503 while the API is starting up."""
    if not state.ready:
        raise HTTPException(
            status_code=503,
            detail="Components not loaded, API is starting up",
        )
    return state


def _commune_response(commune: Commune) -> CommuneResponse:
    return CommuneResponse(**commune.to_dict())


def _metrics_response(record: MetricsRecord) -> MetricsResponse:
    values = {name: getattr(record, name) for name in METRIC_FIELDS}
    return MetricsResponse(commune=_commune_response(record.commune), **values)
