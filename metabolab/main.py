"""FastAPI application entrypoint for the Metabolic Evolution Lab."""

from __future__ import annotations

import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import ServiceRegistry, api_router, configure_services, get_services
from .api.schemas import HealthResponse
from .config import DEFAULT_PATHWAY_CONFIG, DEFAULT_SIMULATION_SETTINGS, DEFAULT_TELEMETRY_CONFIG
from .simulation import build_simulator
from .telemetry import configure_telemetry

VERSION = "2026.10.0"

API_DESCRIPTION = """
The Metabolic Evolution Lab API drives a tick-based simulation of a small
biochemical network: Michaelis-Menten kinetics gated by thermodynamics,
Hill-regulated gene expression, random mutation and fitness-based selection.
The service exposes endpoints to:

* read the full network state and histories (`/state`)
* advance time step by step or in bulk (`/tick`, `/run`)
* pause, resume, reset and rescale time (`/pause`, `/resume`, `/reset`, `/speed`)
* freeze individual subsystems (`/locks`, `/locks/isolate`)
* capture and restore a plain state record (`/snapshot`)
* generate a fresh pathway (`/pathway`) or add a hand-built enzyme (`/enzymes`)
* inspect the enzyme family tree (`/lineage`)

Use the OpenAPI schema for complete request/response examples.
"""


telemetry = configure_telemetry(DEFAULT_TELEMETRY_CONFIG)


app = FastAPI(title="Metabolic Evolution Lab API", description=API_DESCRIPTION, version=VERSION)
telemetry.instrument_app(app)


origins = os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


configure_services(
    simulator=build_simulator(DEFAULT_PATHWAY_CONFIG, DEFAULT_SIMULATION_SETTINGS),
    metrics=telemetry.metrics,
)


app.include_router(api_router)


@app.get("/", response_model=HealthResponse)
def read_root() -> HealthResponse:
    """Basic health check used by the frontend shell."""

    return HealthResponse(version=VERSION)


@app.get("/health", response_model=HealthResponse)
def health(svc: ServiceRegistry = Depends(get_services)) -> HealthResponse:
    """Health check that also reports the latest per-tick metrics."""

    return HealthResponse(version=VERSION, metrics=svc.metrics.as_dict())


__all__ = ["app"]
