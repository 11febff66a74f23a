"""FastAPI router exposing host controls over a single simulator."""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..config import DEFAULT_PATHWAY_CONFIG, DEFAULT_SIMULATION_SETTINGS, PathwayConfig
from ..simulation import SimulationError, Simulator, build_simulator
from ..telemetry import SimulationMetrics
from . import schemas

LOGGER = logging.getLogger(__name__)


def _default_simulator() -> Simulator:
    return build_simulator(DEFAULT_PATHWAY_CONFIG, DEFAULT_SIMULATION_SETTINGS)


class ServiceRegistry:
    """Container bundling the simulator and its metrics recorder.

    The simulator is built from the default pathway on first access when none
    has been configured.
    """

    def __init__(
        self,
        simulator: Simulator | None = None,
        metrics: SimulationMetrics | None = None,
    ) -> None:
        self.metrics = metrics or SimulationMetrics()
        self._simulator: Simulator | None = None
        if simulator is not None:
            self._attach(simulator)

    @property
    def simulator(self) -> Simulator:
        if self._simulator is None:
            self._attach(_default_simulator())
        return self._simulator

    @property
    def is_configured(self) -> bool:
        return self._simulator is not None

    def _attach(self, simulator: Simulator) -> None:
        self._simulator = simulator
        simulator.subscribe(self.metrics.record)

    def configure(
        self,
        *,
        simulator: Simulator | None = None,
        metrics: SimulationMetrics | None = None,
    ) -> None:
        current = self._simulator
        if current is not None:
            current.unsubscribe(self.metrics.record)
        if metrics is not None:
            self.metrics = metrics
        target = simulator if simulator is not None else current
        self._simulator = None
        if target is not None:
            self._attach(target)


services = ServiceRegistry()


def configure_services(
    *,
    simulator: Simulator | None = None,
    metrics: SimulationMetrics | None = None,
) -> None:
    """Configure the shared service registry used by API routes."""

    services.configure(simulator=simulator, metrics=metrics)


def get_services() -> ServiceRegistry:
    return services


def _http_error(status_code: int, code: str, message: str, *, context: Dict[str, object] | None = None) -> HTTPException:
    payload = schemas.ErrorPayload(code=code, message=message, context=context or {})
    return HTTPException(status_code=status_code, detail=payload.model_dump())


def _control(simulator: Simulator) -> schemas.ControlResponse:
    return schemas.ControlResponse(
        paused=simulator.is_paused,
        time_scale=simulator.time_scale,
        time=simulator.time,
        tick_count=simulator.tick_count,
        is_alive=simulator.cell.is_alive,
    )


router = APIRouter()


@router.get("/state", response_model=schemas.SimulationState)
def read_state(
    include_history: bool = Query(default=True),
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.SimulationState:
    return schemas.SimulationState.from_domain(svc.simulator.get_simulation_data(), include_history=include_history)


@router.post("/tick", response_model=schemas.TickResponse)
def advance_tick(
    request: schemas.TickRequest | None = None,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.TickResponse:
    delta_time = request.delta_time if request is not None else None
    data = svc.simulator.tick(delta_time)
    advanced = data is not None
    if data is None:
        data = svc.simulator.get_simulation_data()
    return schemas.TickResponse(advanced=advanced, state=schemas.SimulationState.from_domain(data))


@router.post("/run", response_model=schemas.RunResponse)
def run_simulation(
    request: schemas.RunRequest,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.RunResponse:
    simulator = svc.simulator
    if not simulator.cell.is_alive:
        raise _http_error(
            status.HTTP_409_CONFLICT,
            "cell_dead",
            "The cell has overheated; reset the simulation before running it again.",
            context={"time": simulator.time},
        )
    steps = simulator.run(request.duration, request.delta_time)
    data = simulator.get_simulation_data()
    svc.metrics.record(data)
    return schemas.RunResponse(
        steps=steps,
        state=schemas.SimulationState.from_domain(data, include_history=request.include_history),
    )


@router.post("/pause", response_model=schemas.ControlResponse)
def pause_simulation(svc: ServiceRegistry = Depends(get_services)) -> schemas.ControlResponse:
    svc.simulator.pause()
    return _control(svc.simulator)


@router.post("/resume", response_model=schemas.ControlResponse)
def resume_simulation(svc: ServiceRegistry = Depends(get_services)) -> schemas.ControlResponse:
    svc.simulator.resume()
    return _control(svc.simulator)


@router.post("/reset", response_model=schemas.ControlResponse)
def reset_simulation(svc: ServiceRegistry = Depends(get_services)) -> schemas.ControlResponse:
    svc.simulator.reset()
    return _control(svc.simulator)


@router.post("/speed", response_model=schemas.ControlResponse)
def set_speed(
    request: schemas.SpeedRequest,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.ControlResponse:
    svc.simulator.set_time_scale(request.time_scale)
    return _control(svc.simulator)


@router.get("/locks", response_model=schemas.LocksResponse)
def read_locks(svc: ServiceRegistry = Depends(get_services)) -> schemas.LocksResponse:
    return schemas.LocksResponse(locks=svc.simulator.locks.as_dict())


@router.put("/locks", response_model=schemas.LocksResponse)
def update_locks(
    request: schemas.LockUpdateRequest,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.LocksResponse:
    svc.simulator.locks.update(request.locks)
    return schemas.LocksResponse(locks=svc.simulator.locks.as_dict())


@router.post("/locks/isolate", response_model=schemas.LocksResponse)
def isolate_category(
    request: schemas.IsolateRequest,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.LocksResponse:
    svc.simulator.locks.isolate(request.category)
    return schemas.LocksResponse(locks=svc.simulator.locks.as_dict())


@router.get("/snapshot", response_model=schemas.StateRecord)
def capture_snapshot(svc: ServiceRegistry = Depends(get_services)) -> schemas.StateRecord:
    return schemas.StateRecord(state=svc.simulator.capture_state())


@router.post("/snapshot", response_model=schemas.ControlResponse)
def restore_snapshot(
    request: schemas.StateRecord,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.ControlResponse:
    try:
        svc.simulator.restore_state(request.state)
    except SimulationError as exc:
        raise _http_error(status.HTTP_400_BAD_REQUEST, "invalid_state", str(exc))
    return _control(svc.simulator)


@router.post("/pathway", response_model=schemas.SimulationState)
def generate_new_pathway(
    request: schemas.PathwayRequest,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.SimulationState:
    values = request.model_dump(exclude={"seed"})
    config = PathwayConfig.from_mapping(values)
    simulator = build_simulator(config, DEFAULT_SIMULATION_SETTINGS, seed=request.seed)
    svc.configure(simulator=simulator)
    LOGGER.info("Replaced simulator with a generated %s pathway", config.topology)
    return schemas.SimulationState.from_domain(simulator.get_simulation_data())


@router.get("/lineage", response_model=schemas.LineageResponse)
def read_lineage(
    enzyme_id: str | None = Query(default=None, description="Restrict to this enzyme and its descendants"),
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.LineageResponse:
    evolution = svc.simulator.evolution_system
    lineage = evolution.lineage
    if enzyme_id is None:
        records = list(lineage.values())
    else:
        if enzyme_id not in lineage:
            raise _http_error(
                status.HTTP_404_NOT_FOUND,
                "enzyme_not_found",
                f"Enzyme '{enzyme_id}' has no lineage record.",
                context={"enzyme_id": enzyme_id},
            )
        records = [lineage[enzyme_id]] + [lineage[child] for child in evolution.descendants(enzyme_id)]
    items: List[schemas.LineageEntry] = [schemas.LineageEntry.from_domain(record) for record in records]
    return schemas.LineageResponse(items=items)


@router.post("/enzymes", response_model=schemas.EnzymeCreateResponse, status_code=status.HTTP_201_CREATED)
def create_enzyme(
    request: schemas.EnzymeCreateRequest,
    svc: ServiceRegistry = Depends(get_services),
) -> schemas.EnzymeCreateResponse:
    enzyme = request.enzyme.to_domain()
    gene = request.gene.to_domain(enzyme.id) if request.gene is not None else None
    result = svc.simulator.add_enzyme(enzyme, gene)
    if not result.valid:
        raise _http_error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "invalid_enzyme",
            result.reason,
            context={"enzyme_id": enzyme.id, "suggestion": result.suggestion},
        )
    return schemas.EnzymeCreateResponse(enzyme_id=enzyme.id, enzyme_count=len(svc.simulator.enzymes))


api_router = router

__all__ = [
    "ServiceRegistry",
    "api_router",
    "configure_services",
    "get_services",
    "router",
]
