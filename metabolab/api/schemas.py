"""Pydantic schemas used by the public API surface."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping, Sequence

from pydantic import BaseModel, Field

from ..simulation import Enzyme, Gene, LineageRecord, LockCategory, SimulationData


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


class ErrorPayload(BaseModel):
    """Standard error envelope returned by API endpoints."""

    code: str = Field(..., description="Machine readable error identifier")
    message: str = Field(..., description="Human readable explanation")
    context: Dict[str, Any] = Field(default_factory=dict, description="Additional context")


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    metrics: Dict[str, float] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Simulation state
# ---------------------------------------------------------------------------


class SimulationState(BaseModel):
    """Full broadcast record of the network after the latest tick."""

    time: float
    molecules: Mapping[str, Dict[str, Any]]
    enzymes: Mapping[str, Dict[str, Any]]
    reactions: Mapping[str, Dict[str, Any]]
    genes: Mapping[str, Dict[str, Any]]
    cell: Dict[str, Any]
    molecule_history: Mapping[str, Sequence[float]] = Field(default_factory=dict)
    enzyme_history: Mapping[str, Sequence[float]] = Field(default_factory=dict)
    time_history: Sequence[float] = Field(default_factory=list)
    protein_stats: Dict[str, float]
    mutation_stats: Dict[str, int]
    evolution_stats: Dict[str, float]
    locks: Dict[str, bool]
    fitness: Mapping[str, Dict[str, float]] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, data: SimulationData, *, include_history: bool = True) -> "SimulationState":
        payload = data.as_dict()
        if not include_history:
            payload.update(molecule_history={}, enzyme_history={}, time_history=[])
        return cls(**payload)


class TickRequest(BaseModel):
    delta_time: float | None = Field(
        default=None,
        gt=0.0,
        le=60.0,
        description="Real seconds to advance before time scaling; defaults to the configured time step",
    )


class TickResponse(BaseModel):
    advanced: bool
    state: SimulationState


class RunRequest(BaseModel):
    duration: float = Field(..., gt=0.0, le=3600.0, description="Simulated seconds to run")
    delta_time: float | None = Field(default=None, gt=0.0, le=60.0)
    include_history: bool = False


class RunResponse(BaseModel):
    steps: int
    state: SimulationState


class SpeedRequest(BaseModel):
    time_scale: float = Field(..., ge=0.0, le=100.0)


class ControlResponse(BaseModel):
    paused: bool
    time_scale: float
    time: float
    tick_count: int
    is_alive: bool


# ---------------------------------------------------------------------------
# Locks
# ---------------------------------------------------------------------------


class LockUpdateRequest(BaseModel):
    locks: Dict[LockCategory, bool] = Field(..., description="Categories to lock (true) or unlock (false)")


class IsolateRequest(BaseModel):
    category: LockCategory


class LocksResponse(BaseModel):
    locks: Dict[str, bool]


# ---------------------------------------------------------------------------
# State capture and pathway generation
# ---------------------------------------------------------------------------


class StateRecord(BaseModel):
    """Plain record produced by ``Simulator.capture_state``."""

    state: Dict[str, Any]


class PathwayRequest(BaseModel):
    num_molecules: int = Field(default=6, ge=2, le=50)
    num_enzymes: int = Field(default=5, ge=1, le=50)
    topology: Literal["linear", "branched", "cyclic", "random"] = "linear"
    molecule_concentration: float = Field(default=1.0, gt=0.0)
    enzyme_concentration: float = Field(default=0.05, gt=0.0)
    vmax: float = Field(default=5.0, gt=0.0)
    km: float = Field(default=0.5, gt=0.0)
    delta_g: float = -8.0
    regulation_probability: float = Field(default=0.3, ge=0.0, le=1.0)
    include_source: bool = True
    include_sink: bool = True
    seed: int | None = Field(default=None, description="Seed for generation and the simulation RNG")


# ---------------------------------------------------------------------------
# Lineage
# ---------------------------------------------------------------------------


class LineageEntry(BaseModel):
    enzyme_id: str
    parent_id: str | None = None
    generation: int
    birth_time: float
    death_time: float | None = None

    @classmethod
    def from_domain(cls, record: LineageRecord) -> "LineageEntry":
        return cls(**record.as_dict())


class LineageResponse(BaseModel):
    items: List[LineageEntry]


# ---------------------------------------------------------------------------
# Enzyme creation
# ---------------------------------------------------------------------------


class ReactionModel(BaseModel):
    id: str
    name: str | None = None
    substrates: Dict[str, float] = Field(default_factory=dict)
    products: Dict[str, float] = Field(default_factory=dict)
    vmax: float = Field(default=1.0, ge=0.0)
    km: float = Field(default=0.5, gt=0.0)
    delta_g: float = -5.0
    temperature: float = Field(default=310.0, gt=0.0)
    reaction_efficiency: float = Field(default=0.7, ge=0.0, le=1.0)
    is_irreversible: bool = False


class EnzymeModel(BaseModel):
    id: str
    name: str | None = None
    concentration: float = Field(default=0.01, ge=0.0)
    is_locked: bool = False
    is_degradable: bool = True
    half_life: float = Field(default=600.0, gt=0.0)
    reactions: List[ReactionModel] = Field(..., min_length=1)
    inhibitors: Dict[str, float] = Field(default_factory=dict)
    activators: Dict[str, float] = Field(default_factory=dict)

    def to_domain(self) -> Enzyme:
        record = self.model_dump()
        for reaction in record["reactions"]:
            reaction["name"] = reaction["name"] or reaction["id"]
        record["name"] = record["name"] or record["id"]
        return Enzyme.from_record(record)


class RegulatoryElementModel(BaseModel):
    molecule_name: str
    kd: float = Field(default=1.0, gt=0.0)
    max_fold_change: float = Field(default=5.0, ge=1.0)
    hill_coefficient: float = Field(default=1.0, gt=0.0)


class GeneModel(BaseModel):
    basal_rate: float = Field(default=0.001, ge=0.0)
    is_active: bool = True
    activators: List[RegulatoryElementModel] = Field(default_factory=list)
    repressors: List[RegulatoryElementModel] = Field(default_factory=list)

    def to_domain(self, enzyme_id: str) -> Gene:
        return Gene.from_record({"enzyme_id": enzyme_id, **self.model_dump()})


class EnzymeCreateRequest(BaseModel):
    enzyme: EnzymeModel
    gene: GeneModel | None = None


class EnzymeCreateResponse(BaseModel):
    enzyme_id: str
    valid: bool = True
    enzyme_count: int


__all__ = [
    "ControlResponse",
    "EnzymeCreateRequest",
    "EnzymeCreateResponse",
    "EnzymeModel",
    "ErrorPayload",
    "GeneModel",
    "HealthResponse",
    "IsolateRequest",
    "LineageEntry",
    "LineageResponse",
    "LockUpdateRequest",
    "LocksResponse",
    "PathwayRequest",
    "ReactionModel",
    "RegulatoryElementModel",
    "RunRequest",
    "RunResponse",
    "SimulationState",
    "SpeedRequest",
    "StateRecord",
    "TickRequest",
    "TickResponse",
]
