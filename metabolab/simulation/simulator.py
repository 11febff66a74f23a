"""Tick orchestration for the biochemical network.

Each tick follows a two-phase protocol:

1. refresh the display rates on the live reactions and genes, then capture an
   immutable :class:`~metabolab.simulation.snapshot.SimulationSnapshot`;
2. *calculate* reaction deltas, gene synthesis, enzyme degradation, mutation
   proposals and selection proposals from that snapshot.  The calculators are
   pure and order-independent; a locked category yields an empty result;
3. *apply* the results in a fixed order (concentrations, enzyme turnover,
   mutations, selection), clamp concentrations at zero, then update the cell
   energy pool and the rolling histories.

Only the apply phase mutates the entity maps, and the maps are owned by the
:class:`Simulator` alone.
"""

from __future__ import annotations

import copy
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Mapping

import numpy as np

from ..config import SimulationSettings
from .entities import Enzyme, Gene, Molecule, ValidationResult, index_by_key
from .evolution import EvolutionSystem, FitnessBreakdown, SelectionResult
from .expression import expression_rate, update_gene_state
from .kinetics import calculate_reaction_rates, update_reaction_state
from .locks import CategoryLocks, LockCategory
from .mutation import MutationResult, MutationSystem
from .snapshot import SimulationSnapshot

LOGGER = logging.getLogger(__name__)

FORMAT_VERSION = 1


class SimulationError(Exception):
    """Raised when a host request cannot be honoured (bad record, unknown id)."""


@dataclass
class CellState:
    """Aggregate energy bookkeeping for the simulated cell."""

    heat: float = 0.0
    heat_rate: float = 0.0
    power: float = 0.0
    total_heat: float = 0.0
    total_useful_work: float = 0.0
    is_alive: bool = True

    def update(
        self,
        useful_rate: float,
        heat_rate: float,
        delta_time: float,
        dissipation_rate: float,
        lethal_heat: float,
    ) -> None:
        self.power = useful_rate
        self.heat_rate = heat_rate
        self.total_useful_work += useful_rate * delta_time
        self.total_heat += heat_rate * delta_time
        self.heat += heat_rate * delta_time
        self.heat -= self.heat * min(1.0, dissipation_rate * delta_time)
        self.heat = max(0.0, self.heat)
        if lethal_heat > 0 and self.heat > lethal_heat:
            self.is_alive = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "heat": self.heat,
            "heat_rate": self.heat_rate,
            "power": self.power,
            "total_heat": self.total_heat,
            "total_useful_work": self.total_useful_work,
            "is_alive": self.is_alive,
        }

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "CellState":
        return cls(
            heat=float(values.get("heat", 0.0)),
            heat_rate=float(values.get("heat_rate", 0.0)),
            power=float(values.get("power", 0.0)),
            total_heat=float(values.get("total_heat", 0.0)),
            total_useful_work=float(values.get("total_useful_work", 0.0)),
            is_alive=bool(values.get("is_alive", True)),
        )


@dataclass(frozen=True)
class TickReport:
    """What the calculate phase produced for one tick."""

    time: float
    delta_time: float
    reaction_deltas: Mapping[str, float]
    synthesis: Mapping[str, float]
    degradation: Mapping[str, float]
    mutation: MutationResult
    selection: SelectionResult


@dataclass(frozen=True)
class SimulationData:
    """Full-state broadcast emitted once per tick.  Consumers must not mutate it."""

    time: float
    molecules: Mapping[str, Dict[str, Any]]
    enzymes: Mapping[str, Dict[str, Any]]
    reactions: Mapping[str, Dict[str, Any]]
    genes: Mapping[str, Dict[str, Any]]
    cell: Mapping[str, Any]
    molecule_history: Mapping[str, List[float]]
    enzyme_history: Mapping[str, List[float]]
    time_history: List[float]
    protein_stats: Mapping[str, float]
    mutation_stats: Mapping[str, int]
    evolution_stats: Mapping[str, float]
    locks: Mapping[str, bool]
    fitness: Mapping[str, Dict[str, float]] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "molecules": dict(self.molecules),
            "enzymes": dict(self.enzymes),
            "reactions": dict(self.reactions),
            "genes": dict(self.genes),
            "cell": dict(self.cell),
            "molecule_history": dict(self.molecule_history),
            "enzyme_history": dict(self.enzyme_history),
            "time_history": list(self.time_history),
            "protein_stats": dict(self.protein_stats),
            "mutation_stats": dict(self.mutation_stats),
            "evolution_stats": dict(self.evolution_stats),
            "locks": dict(self.locks),
            "fitness": dict(self.fitness),
        }


SimulationObserver = Callable[[SimulationData], None]


def _as_map(items: Mapping[str, Any] | Iterable[Any] | None, key: str) -> Dict[str, Any]:
    if items is None:
        return {}
    if isinstance(items, Mapping):
        return dict(items)
    return index_by_key(items, key)


def _check_restored_enzymes(enzymes: Iterable[Enzyme]) -> None:
    """Apply the ``add_enzyme`` rules to a whole restored enzyme set."""

    owners: Dict[str, str] = {}
    for enzyme in enzymes:
        validation = enzyme.validate()
        if not validation.valid:
            raise SimulationError(f"invalid enzyme '{enzyme.id}' in state record: {validation.reason}")
        for reaction in enzyme.reactions:
            owner = owners.setdefault(reaction.id, enzyme.id)
            if owner != enzyme.id:
                raise SimulationError(
                    f"reaction id '{reaction.id}' is used by both '{owner}' and '{enzyme.id}' in state record"
                )


class Simulator:
    """Own the entity maps and advance them tick by tick."""

    def __init__(
        self,
        molecules: Mapping[str, Molecule] | Iterable[Molecule] | None = None,
        enzymes: Mapping[str, Enzyme] | Iterable[Enzyme] | None = None,
        genes: Mapping[str, Gene] | Iterable[Gene] | None = None,
        *,
        settings: SimulationSettings | None = None,
        seed: int | None = None,
        rng: np.random.Generator | None = None,
        locks: CategoryLocks | None = None,
        mutation_system: MutationSystem | None = None,
        evolution_system: EvolutionSystem | None = None,
    ) -> None:
        self.settings = settings or SimulationSettings()
        if rng is None:
            rng = np.random.default_rng(seed if seed is not None else self.settings.seed)
        self.rng = rng
        self.locks = locks or CategoryLocks()
        self.mutation_system = mutation_system or MutationSystem(self.settings.mutation, rng)
        self.evolution_system = evolution_system or EvolutionSystem(self.settings.evolution, rng)

        self.molecules: Dict[str, Molecule] = _as_map(molecules, "name")
        self.enzymes: Dict[str, Enzyme] = _as_map(enzymes, "id")
        self.genes: Dict[str, Gene] = _as_map(genes, "enzyme_id")

        self.time = 0.0
        self.tick_count = 0
        self.time_scale = max(0.0, self.settings.time_scale)
        self._paused = False
        self.cell = CellState()
        self._observers: List[SimulationObserver] = []
        self._last_fitness: Dict[str, FitnessBreakdown] = {}
        self._reset_counters()
        self._reset_history()

        self._initial_state = self.capture_state()
        for enzyme_id in self.enzymes:
            self.evolution_system.register_birth(enzyme_id, None, self.time)
        self.refresh_rates()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _reset_counters(self) -> None:
        self.total_synthesized = 0.0
        self.total_degraded = 0.0
        self.mutation_totals: Dict[str, int] = {
            "point_mutations": 0,
            "duplications": 0,
            "novel_enzymes": 0,
            "regulatory_mutations": 0,
            "molecules_discovered": 0,
        }

    def _reset_history(self) -> None:
        length = self.settings.history_length
        self.time_history: Deque[float] = deque(maxlen=length)
        self.molecule_history: Dict[str, Deque[float]] = {}
        self.enzyme_history: Dict[str, Deque[float]] = {}

    @property
    def is_paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def set_time_scale(self, scale: float) -> None:
        self.time_scale = max(0.0, float(scale))

    def reset(self) -> None:
        """Return to the entity set captured at construction."""

        self.evolution_system.reset()
        self._reset_counters()
        self.restore_state(self._initial_state)
        self.cell = CellState()
        LOGGER.info("Simulation reset (%d molecules, %d enzymes)", len(self.molecules), len(self.enzymes))

    def subscribe(self, observer: SimulationObserver) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: SimulationObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def tick(self, real_delta: float | None = None) -> SimulationData | None:
        """Advance one scaled step unless paused or the cell has died."""

        if self._paused or not self.cell.is_alive:
            return None
        base = self.settings.time_step if real_delta is None else float(real_delta)
        delta_time = base * self.time_scale
        if delta_time <= 0.0:
            return None
        self.simulate_step(delta_time)
        data = self.get_simulation_data()
        for observer in list(self._observers):
            observer(data)
        return data

    def run(self, duration: float, delta_time: float | None = None) -> int:
        """Run ``duration`` seconds of simulated time in fixed steps."""

        step = float(delta_time or self.settings.time_step)
        if step <= 0.0 or duration <= 0.0:
            return 0
        steps = int(round(duration / step))
        for index in range(steps):
            if not self.cell.is_alive:
                return index
            self.simulate_step(step)
        return steps

    def simulate_step(self, delta_time: float) -> TickReport:
        self.refresh_rates()
        snapshot = self.snapshot()

        reaction_deltas = self.calculate_reaction_deltas(snapshot, delta_time)
        synthesis = self.calculate_gene_synthesis(snapshot, delta_time)
        degradation = self.calculate_enzyme_degradation(snapshot, delta_time)
        mutation = self.calculate_mutations(snapshot, delta_time)
        selection = self.calculate_selection(snapshot, delta_time)

        self._apply_concentration_deltas(reaction_deltas)
        self._apply_enzyme_turnover(synthesis, degradation)
        self._apply_mutations(mutation)
        self._apply_selection(selection)
        self._clamp_concentrations()

        self.time += delta_time
        self.tick_count += 1
        self._update_cell(delta_time)
        self._append_history()

        return TickReport(
            time=self.time,
            delta_time=delta_time,
            reaction_deltas=reaction_deltas,
            synthesis=synthesis,
            degradation=degradation,
            mutation=mutation,
            selection=selection,
        )

    # ------------------------------------------------------------------
    # Calculate phase
    # ------------------------------------------------------------------

    def molecule_concentrations(self) -> Dict[str, float]:
        return {name: molecule.concentration for name, molecule in self.molecules.items()}

    def refresh_rates(self) -> None:
        """Write current rates onto live reactions and genes for display."""

        concentrations = self.molecule_concentrations()
        for enzyme in self.enzymes.values():
            effective = enzyme.concentration * enzyme.modulation_factor(concentrations)
            for reaction in enzyme.reactions:
                update_reaction_state(reaction, concentrations, effective)
        for gene in self.genes.values():
            update_gene_state(gene, concentrations)

    def snapshot(self) -> SimulationSnapshot:
        return SimulationSnapshot.capture(self.molecules, self.enzymes, self.genes, time=self.time)

    def calculate_reaction_deltas(self, snapshot: SimulationSnapshot, delta_time: float) -> Dict[str, float]:
        if self.locks.is_locked(LockCategory.REACTIONS):
            return {}
        concentrations = snapshot.molecule_concentrations
        deltas: Dict[str, float] = {}
        for enzyme in snapshot.enzymes.values():
            effective = enzyme.concentration * enzyme.modulation_factor(concentrations)
            for reaction in enzyme.reactions:
                net = calculate_reaction_rates(reaction, concentrations, effective).net * delta_time
                if net == 0.0:
                    continue
                for name, stoich in reaction.substrates.items():
                    deltas[name] = deltas.get(name, 0.0) - stoich * net
                for name, stoich in reaction.products.items():
                    deltas[name] = deltas.get(name, 0.0) + stoich * net
        return deltas

    def calculate_gene_synthesis(self, snapshot: SimulationSnapshot, delta_time: float) -> Dict[str, float]:
        if self.locks.is_locked(LockCategory.GENES):
            return {}
        synthesis: Dict[str, float] = {}
        for enzyme_id, gene in snapshot.genes.items():
            if enzyme_id not in snapshot.enzymes:
                continue
            amount = expression_rate(gene, snapshot.molecule_concentrations) * delta_time
            if amount > 0.0:
                synthesis[enzyme_id] = amount
        return synthesis

    def calculate_enzyme_degradation(self, snapshot: SimulationSnapshot, delta_time: float) -> Dict[str, float]:
        if self.locks.is_locked(LockCategory.ENZYMES):
            return {}
        degradation: Dict[str, float] = {}
        for enzyme_id, enzyme in snapshot.enzymes.items():
            amount = enzyme.degradation_rate * enzyme.concentration * delta_time
            if amount > 0.0:
                degradation[enzyme_id] = min(amount, enzyme.concentration)
        return degradation

    def calculate_mutations(self, snapshot: SimulationSnapshot, delta_time: float) -> MutationResult:
        if self.locks.is_locked(LockCategory.MUTATIONS):
            return MutationResult.empty()
        return self.mutation_system.calculate(snapshot, delta_time)

    def calculate_selection(self, snapshot: SimulationSnapshot, delta_time: float) -> SelectionResult:
        if self.locks.is_locked(LockCategory.EVOLUTION):
            return SelectionResult.empty()
        return self.evolution_system.calculate(snapshot, delta_time)

    # ------------------------------------------------------------------
    # Apply phase
    # ------------------------------------------------------------------

    def _apply_concentration_deltas(self, deltas: Mapping[str, float]) -> None:
        if self.locks.is_locked(LockCategory.MOLECULES):
            return
        for name, delta in deltas.items():
            molecule = self.molecules.get(name)
            if molecule is None or molecule.is_locked:
                continue
            molecule.set_concentration(molecule.concentration + delta)

    def _apply_enzyme_turnover(self, synthesis: Mapping[str, float], degradation: Mapping[str, float]) -> None:
        if self.locks.is_locked(LockCategory.ENZYMES):
            return
        for enzyme_id in set(synthesis) | set(degradation):
            enzyme = self.enzymes.get(enzyme_id)
            if enzyme is None or enzyme.is_locked:
                continue
            made = synthesis.get(enzyme_id, 0.0)
            lost = degradation.get(enzyme_id, 0.0)
            enzyme.set_concentration(enzyme.concentration + made - lost)
            self.total_synthesized += made
            self.total_degraded += lost

    def _apply_mutations(self, result: MutationResult) -> None:
        if result.is_empty:
            return
        for enzyme_id, modification in result.enzyme_modifications.items():
            enzyme = self.enzymes.get(enzyme_id)
            if enzyme is None or enzyme.is_locked:
                continue
            if modification.half_life is not None:
                enzyme.half_life = modification.half_life
            for reaction in enzyme.reactions:
                for parameter, value in modification.reaction_parameters.get(reaction.id, {}).items():
                    setattr(reaction, parameter, value)

        for molecule in result.new_molecules:
            if molecule.name not in self.molecules:
                self.molecules[molecule.name] = copy.deepcopy(molecule)

        genes_by_enzyme = {gene.enzyme_id: gene for gene in result.new_genes}
        for enzyme in result.new_enzymes:
            outcome = self.add_enzyme(
                copy.deepcopy(enzyme),
                copy.deepcopy(genes_by_enzyme.get(enzyme.id)),
                parent_id=result.parents.get(enzyme.id),
            )
            if not outcome.valid:
                LOGGER.debug("Dropped mutant %s: %s", enzyme.id, outcome.reason)

        for enzyme_id, gene in result.gene_modifications.items():
            if enzyme_id in self.genes:
                self.genes[enzyme_id] = copy.deepcopy(gene)

        for key, value in result.counts().items():
            self.mutation_totals[key] = self.mutation_totals.get(key, 0) + value

    def _apply_selection(self, result: SelectionResult) -> None:
        if result.fitness:
            self._last_fitness = dict(result.fitness)
            self.evolution_system.record_fitness(result.fitness)
        if result.is_empty:
            return

        minimum = self.settings.evolution.min_enzymes
        for enzyme_id in result.eliminations:
            if len(self.enzymes) <= minimum:
                break
            self.remove_enzyme(enzyme_id)

        low, high = self.settings.min_basal_rate, self.settings.max_basal_rate
        for enzyme_id, factor in result.boosts.items():
            gene = self.genes.get(enzyme_id)
            if gene is not None:
                gene.basal_rate = float(np.clip(gene.basal_rate * factor, low, high))
        for enzyme_id in result.competition_losses:
            gene = self.genes.get(enzyme_id)
            if gene is not None:
                gene.basal_rate = float(np.clip(gene.basal_rate * self.settings.competition_penalty, low, high))
        for enzyme_id, basal_rate in result.regulation_adjustments.items():
            gene = self.genes.get(enzyme_id)
            if gene is not None:
                gene.basal_rate = float(np.clip(basal_rate, low, high))

        self.evolution_system.record_selection(result)

    def _clamp_concentrations(self) -> None:
        for molecule in self.molecules.values():
            if molecule.concentration < 0.0:
                molecule.concentration = 0.0
        for enzyme in self.enzymes.values():
            if enzyme.concentration < 0.0:
                enzyme.concentration = 0.0

    def _update_cell(self, delta_time: float) -> None:
        useful = 0.0
        heat = 0.0
        for enzyme in self.enzymes.values():
            for reaction in enzyme.reactions:
                useful += reaction.current_useful_work
                heat += reaction.current_heat_generated
        was_alive = self.cell.is_alive
        self.cell.update(
            useful,
            heat,
            delta_time,
            self.settings.heat_dissipation_rate,
            self.settings.lethal_heat,
        )
        if was_alive and not self.cell.is_alive:
            LOGGER.warning("Cell died of overheating at t=%.2f (heat=%.1f)", self.time, self.cell.heat)

    def _append_history(self) -> None:
        length = self.settings.history_length
        self.time_history.append(self.time)
        for name, molecule in self.molecules.items():
            self.molecule_history.setdefault(name, deque(maxlen=length)).append(molecule.concentration)
        for enzyme_id, enzyme in self.enzymes.items():
            self.enzyme_history.setdefault(enzyme_id, deque(maxlen=length)).append(enzyme.concentration)
        for enzyme_id in [key for key in self.enzyme_history if key not in self.enzymes]:
            del self.enzyme_history[enzyme_id]

    # ------------------------------------------------------------------
    # Entity management
    # ------------------------------------------------------------------

    def add_molecule(self, molecule: Molecule) -> bool:
        if molecule.name in self.molecules:
            return False
        self.molecules[molecule.name] = molecule
        return True

    def add_enzyme(self, enzyme: Enzyme, gene: Gene | None = None, *, parent_id: str | None = None) -> ValidationResult:
        """Add an enzyme (and its gene) if it passes validation."""

        if enzyme.id in self.enzymes:
            return ValidationResult(False, f"enzyme id '{enzyme.id}' already exists", "choose a new id")
        existing = {reaction.id for other in self.enzymes.values() for reaction in other.reactions}
        clashes = sorted(existing & {reaction.id for reaction in enzyme.reactions})
        if clashes:
            return ValidationResult(
                False,
                f"reaction ids already in use: {', '.join(clashes)}",
                "rename the reactions before adding the enzyme",
            )
        validation = enzyme.validate()
        if not validation.valid:
            LOGGER.warning("Rejected enzyme %s: %s", enzyme.id, validation.reason)
            return validation
        self.enzymes[enzyme.id] = enzyme
        if gene is not None:
            gene.enzyme_id = enzyme.id
            self.genes[enzyme.id] = gene
        self.evolution_system.register_birth(enzyme.id, parent_id, self.time)
        LOGGER.info("Enzyme %s born at t=%.2f (parent=%s)", enzyme.id, self.time, parent_id)
        return validation

    def remove_enzyme(self, enzyme_id: str) -> bool:
        enzyme = self.enzymes.pop(enzyme_id, None)
        if enzyme is None:
            return False
        self.genes.pop(enzyme_id, None)
        self.evolution_system.register_death(enzyme_id, self.time)
        self._last_fitness.pop(enzyme_id, None)
        LOGGER.info("Enzyme %s removed at t=%.2f", enzyme_id, self.time)
        return True

    def set_molecule_concentration(self, name: str, value: float) -> bool:
        molecule = self.molecules.get(name)
        if molecule is None:
            return False
        molecule.set_concentration(value)
        return True

    def set_enzyme_concentration(self, enzyme_id: str, value: float) -> bool:
        enzyme = self.enzymes.get(enzyme_id)
        if enzyme is None:
            return False
        enzyme.set_concentration(value)
        return True

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def protein_stats(self) -> Dict[str, float]:
        return {
            "enzyme_count": float(len(self.enzymes)),
            "total_enzyme_concentration": float(sum(enzyme.concentration for enzyme in self.enzymes.values())),
            "total_synthesized": self.total_synthesized,
            "total_degraded": self.total_degraded,
            "active_genes": float(sum(1 for gene in self.genes.values() if gene.is_active)),
        }

    def get_simulation_data(self) -> SimulationData:
        reactions: Dict[str, Dict[str, Any]] = {}
        for enzyme in self.enzymes.values():
            for reaction in enzyme.reactions:
                record = reaction.runtime_record()
                record["enzyme_id"] = enzyme.id
                reactions[reaction.id] = record
        genes = {}
        for enzyme_id, gene in self.genes.items():
            record = gene.to_record()
            record["current_fold_change"] = gene.current_fold_change
            record["current_expression_rate"] = gene.current_expression_rate
            genes[enzyme_id] = record
        return SimulationData(
            time=self.time,
            molecules={name: molecule.to_record() for name, molecule in self.molecules.items()},
            enzymes={enzyme_id: enzyme.to_record() for enzyme_id, enzyme in self.enzymes.items()},
            reactions=reactions,
            genes=genes,
            cell=self.cell.as_dict(),
            molecule_history={name: list(values) for name, values in self.molecule_history.items()},
            enzyme_history={enzyme_id: list(values) for enzyme_id, values in self.enzyme_history.items()},
            time_history=list(self.time_history),
            protein_stats=self.protein_stats(),
            mutation_stats=dict(self.mutation_totals),
            evolution_stats=self.evolution_system.stats(self._last_fitness),
            locks=self.locks.as_dict(),
            fitness={enzyme_id: breakdown.as_dict() for enzyme_id, breakdown in self._last_fitness.items()},
        )

    # ------------------------------------------------------------------
    # State capture
    # ------------------------------------------------------------------

    def capture_state(self) -> Dict[str, Any]:
        """Plain, JSON-compatible record of every entity plus timing and locks."""

        return {
            "format_version": FORMAT_VERSION,
            "time": self.time,
            "tick_count": self.tick_count,
            "time_scale": self.time_scale,
            "locks": self.locks.as_dict(),
            "cell": self.cell.as_dict(),
            "molecules": [molecule.to_record() for molecule in self.molecules.values()],
            "enzymes": [enzyme.to_record() for enzyme in self.enzymes.values()],
            "genes": [gene.to_record() for gene in self.genes.values()],
        }

    def restore_state(self, record: Mapping[str, Any]) -> None:
        version = record.get("format_version")
        if version != FORMAT_VERSION:
            raise SimulationError(f"unsupported state format version: {version!r}")
        try:
            molecules = {item["name"]: Molecule.from_record(item) for item in record.get("molecules", [])}
            enzymes = {item["id"]: Enzyme.from_record(item) for item in record.get("enzymes", [])}
            genes = {item["enzyme_id"]: Gene.from_record(item) for item in record.get("genes", [])}
            raw_locks = record.get("locks", {})
            raw_cell = record.get("cell", {})
            if not isinstance(raw_locks, Mapping) or not isinstance(raw_cell, Mapping):
                raise TypeError("locks and cell must be mappings")
            locks = {LockCategory(key): bool(value) for key, value in raw_locks.items()}
            time = float(record.get("time", 0.0))
            tick_count = int(record.get("tick_count", 0))
            time_scale = float(record.get("time_scale", self.settings.time_scale))
            cell = CellState.from_dict(raw_cell)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise SimulationError(f"malformed state record: {exc}") from exc
        _check_restored_enzymes(enzymes.values())
        self.locks.update(locks)
        self.molecules = molecules
        self.enzymes = enzymes
        self.genes = genes
        self.time = time
        self.tick_count = tick_count
        self.time_scale = max(0.0, time_scale)
        self.cell = cell
        self._last_fitness = {}
        self._reset_history()
        self.evolution_system.reconcile(self.enzymes, self.time)
        self.refresh_rates()
        LOGGER.info("Restored state at t=%.2f (%d enzymes)", self.time, len(self.enzymes))


__all__ = [
    "CellState",
    "FORMAT_VERSION",
    "SimulationData",
    "SimulationError",
    "SimulationObserver",
    "Simulator",
    "TickReport",
]
