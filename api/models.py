"""
Pydantic models for the commune eco-metrics API.

Defines response schemas for all endpoints, with strict validation
via Pydantic v2.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Generic responses
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    """Response for the /health endpoint."""

    status: str = Field(..., examples=["ok"])
    version: str = Field(..., examples=["1.0.0"])
    adapters: list[str] = Field(default_factory=list, examples=[["energy", "air_quality"]])
    energy_breaker_tripped: bool = Field(default=False)
    uptime_seconds: float = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Communes
# ---------------------------------------------------------------------------

class CommuneResponse(BaseModel):
    """A resolved Île-de-France commune."""

    name: str = Field(..., examples=["Versailles"])
    department_name: str = Field(..., examples=["Yvelines"])
    department_code: str = Field(..., examples=["78"])
    insee_code: str = Field(..., examples=["78646"])
    population: int | None = Field(None, ge=0, examples=[83918])


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

class MetricsResponse(BaseModel):
    """Eco-metrics of one commune. Every value is independently nullable."""

    commune: CommuneResponse
    nature_events_count: int | None = None
    public_events_count: int | None = None
    public_eco_events_count: int | None = None
    elec_kwh_per_hab: float | None = None
    gas_kwh_per_hab: float | None = None
    elec_estimated: bool = False
    gas_estimated: bool = False
    water_l_per_hab: int | None = None
    waste_kg_per_hab: int | None = None
    fuel_l_per_hab: int | None = None
    water_estimated: bool = False
    waste_estimated: bool = False
    fuel_estimated: bool = False
    ges_emissions_tons_per_hab: float | None = None
    water_consum_l_per_hab: int | None = None
    air_quality_index: int | None = None
    renewable_energy_pct: int | None = None


class CompareResponse(BaseModel):
    """Response for the GET /compare endpoint."""

    city_a: MetricsResponse
    city_b: MetricsResponse


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

class EventInfo(BaseModel):
    """A (label, value) line of an event card."""

    label: str = Field(..., examples=["Début"])
    value: str


class EventPointResponse(BaseModel):
    """A geolocated event shown on the map."""

    id: str
    title: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    category: str = Field(..., examples=["nature"])
    subtitle: str = ""
    infos: list[EventInfo] = Field(default_factory=list)


class EventsResponse(BaseModel):
    """Response for the GET /events endpoint."""

    category: str | None = None
    event_count: int
    events: list[EventPointResponse]


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------

class DepartmentInfo(BaseModel):
    """Information about a department."""

    code: str = Field(..., examples=["78"])
    name: str = Field(..., examples=["Yvelines"])


class DepartmentsResponse(BaseModel):
    """Response for the GET /departments endpoint."""

    region_code: str = Field(..., examples=["11"])
    department_count: int
    departments: list[DepartmentInfo]
