"""Selection engine: fitness scoring and selection proposals.

Fitness is a weighted sum of five sub-scores in ``[0, 1]``:

``efficiency``
    Mean reaction efficiency plus a bonus for strongly negative actual dG.
``flux``
    Log-scaled total net rate.
``cost``
    Specific activity, net rate per unit enzyme concentration.
``thermal``
    Useful work as a fraction of released energy.
``regulation``
    Reward for regulators sitting in a responsive occupancy range, with a
    penalty for crowded promoters.

:meth:`EvolutionSystem.calculate` turns the scores into a
:class:`SelectionResult` (eliminations, elite boosts, competition outcomes and
adaptive basal-rate adjustments).  It does not modify the system's own
history; the orchestrator commits fitness samples and lineage events through
:meth:`EvolutionSystem.record_fitness`, :meth:`EvolutionSystem.register_birth`
and :meth:`EvolutionSystem.register_death` during the apply phase.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from ..config import EvolutionSettings
from .entities import Enzyme, Gene
from .snapshot import SimulationSnapshot

LOGGER = logging.getLogger(__name__)

MIN_BOOST = 1.2
MAX_BOOST = 3.0
RESPONSIVE_OCCUPANCY = (0.1, 0.9)
CROWDED_PROMOTER = 3


@dataclass(frozen=True)
class FitnessWeights:
    efficiency: float = 0.30
    flux: float = 0.25
    cost: float = 0.20
    thermal: float = 0.15
    regulation: float = 0.10

    def total(self) -> float:
        return self.efficiency + self.flux + self.cost + self.thermal + self.regulation


@dataclass(frozen=True)
class FitnessBreakdown:
    """Sub-scores and weighted total for one enzyme."""

    enzyme_id: str
    efficiency: float
    flux: float
    cost: float
    thermal: float
    regulation: float
    total: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "efficiency": self.efficiency,
            "flux": self.flux,
            "cost": self.cost,
            "thermal": self.thermal,
            "regulation": self.regulation,
            "total": self.total,
        }


@dataclass(frozen=True)
class CompetitionEvent:
    winner: str
    loser: str
    winner_fitness: float
    loser_fitness: float


@dataclass(frozen=True)
class SelectionResult:
    """Selection proposals for one tick."""

    fitness: Mapping[str, FitnessBreakdown] = field(default_factory=dict)
    eliminations: Tuple[str, ...] = ()
    boosts: Mapping[str, float] = field(default_factory=dict)
    competitions: Tuple[CompetitionEvent, ...] = ()
    competition_losses: Tuple[str, ...] = ()
    regulation_adjustments: Mapping[str, float] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "SelectionResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (
            self.eliminations
            or self.boosts
            or self.competitions
            or self.competition_losses
            or self.regulation_adjustments
        )

    def counts(self) -> Dict[str, int]:
        return {
            "eliminations": len(self.eliminations),
            "boosts": len(self.boosts),
            "competitions": len(self.competitions),
            "regulation_adjustments": len(self.regulation_adjustments),
        }


@dataclass
class LineageRecord:
    enzyme_id: str
    parent_id: str | None
    generation: int
    birth_time: float
    death_time: float | None = None

    @property
    def is_alive(self) -> bool:
        return self.death_time is None

    def as_dict(self) -> Dict[str, object]:
        return {
            "enzyme_id": self.enzyme_id,
            "parent_id": self.parent_id,
            "generation": self.generation,
            "birth_time": self.birth_time,
            "death_time": self.death_time,
        }


def _clip(value: float) -> float:
    if not math.isfinite(value):
        return 0.0
    return float(np.clip(value, 0.0, 1.0))


def resolve_competition(
    first: str,
    second: str,
    first_fitness: float,
    second_fitness: float,
    rng: np.random.Generator,
) -> CompetitionEvent:
    """Pick a winner with probability proportional to fitness."""

    total = first_fitness + second_fitness
    p_first = 0.5 if total <= 0.0 else first_fitness / total
    if rng.random() < p_first:
        return CompetitionEvent(first, second, first_fitness, second_fitness)
    return CompetitionEvent(second, first, second_fitness, first_fitness)


class EvolutionSystem:
    """Score enzymes and propose selection actions."""

    def __init__(
        self,
        settings: EvolutionSettings | None = None,
        rng: np.random.Generator | None = None,
        weights: FitnessWeights | None = None,
    ) -> None:
        self.settings = settings or EvolutionSettings()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.weights = weights or FitnessWeights()
        self._history: Dict[str, Deque[float]] = {}
        self._lineage: Dict[str, LineageRecord] = {}
        self.total_eliminations = 0
        self.total_boosts = 0
        self.total_competitions = 0
        self.total_adjustments = 0

    # ------------------------------------------------------------------
    # Fitness
    # ------------------------------------------------------------------

    def score_enzyme(
        self,
        enzyme: Enzyme,
        gene: Gene | None,
        concentrations: Mapping[str, float],
    ) -> FitnessBreakdown:
        reactions = enzyme.reactions
        if reactions:
            efficiency_terms = []
            for reaction in reactions:
                bonus = min(0.2, max(0.0, -reaction.current_delta_g_actual) / 100.0)
                efficiency_terms.append(reaction.reaction_efficiency + bonus)
            efficiency = _clip(float(np.mean(efficiency_terms)))
        else:
            efficiency = 0.0

        net = sum(abs(reaction.net_rate) for reaction in reactions)
        flux = _clip(math.log10(1.0 + net / 1e-3) / 4.0)

        specific_activity = net / max(enzyme.concentration, 1e-6)
        cost = _clip(specific_activity / (specific_activity + 5.0))

        useful = sum(reaction.current_useful_work for reaction in reactions)
        heat = sum(reaction.current_heat_generated for reaction in reactions)
        thermal = _clip(useful / (useful + heat)) if useful + heat > 0.0 else 0.0

        regulation = self._regulation_score(gene, concentrations)

        weights = self.weights
        total = (
            weights.efficiency * efficiency
            + weights.flux * flux
            + weights.cost * cost
            + weights.thermal * thermal
            + weights.regulation * regulation
        ) / max(weights.total(), 1e-9)
        return FitnessBreakdown(
            enzyme_id=enzyme.id,
            efficiency=efficiency,
            flux=flux,
            cost=cost,
            thermal=thermal,
            regulation=regulation,
            total=_clip(total),
        )

    @staticmethod
    def _regulation_score(gene: Gene | None, concentrations: Mapping[str, float]) -> float:
        if gene is None:
            return 0.3
        score = 0.5
        low, high = RESPONSIVE_OCCUPANCY
        for element in (*gene.activators, *gene.repressors):
            occupancy = element.occupancy(concentrations.get(element.molecule_name, 0.0))
            if low <= occupancy <= high:
                score += 0.15
        if gene.regulator_count > CROWDED_PROMOTER:
            score -= 0.1 * (gene.regulator_count - CROWDED_PROMOTER)
        return _clip(score)

    def calculate_fitness(self, snapshot: SimulationSnapshot) -> Dict[str, FitnessBreakdown]:
        return {
            enzyme_id: self.score_enzyme(enzyme, snapshot.genes.get(enzyme_id), snapshot.molecule_concentrations)
            for enzyme_id, enzyme in snapshot.enzymes.items()
        }

    def rolling_average(self, enzyme_id: str, current: float | None = None) -> float | None:
        samples = list(self._history.get(enzyme_id, ()))
        if current is not None:
            samples = (samples + [current])[-self.settings.fitness_window :]
        if not samples:
            return None
        return float(np.mean(samples))

    def history_length(self, enzyme_id: str) -> int:
        return len(self._history.get(enzyme_id, ()))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def calculate(self, snapshot: SimulationSnapshot, delta_time: float) -> SelectionResult:
        fitness = self.calculate_fitness(snapshot)
        if delta_time <= 0 or not fitness:
            return SelectionResult(fitness=fitness)

        totals = {enzyme_id: breakdown.total for enzyme_id, breakdown in fitness.items()}
        averages = {enzyme_id: self.rolling_average(enzyme_id, value) or value for enzyme_id, value in totals.items()}

        eliminations = self._select_eliminations(snapshot, totals, averages)
        eliminated = set(eliminations)
        boosts = self._select_boosts(snapshot, totals, averages, eliminated, delta_time)
        competitions = self._run_competitions(snapshot, totals, eliminated, delta_time)
        losses = tuple(dict.fromkeys(event.loser for event in competitions if event.loser not in eliminated))
        adjustments = self._adaptive_regulation(snapshot, totals, eliminated, delta_time)

        result = SelectionResult(
            fitness=fitness,
            eliminations=tuple(eliminations),
            boosts=boosts,
            competitions=tuple(competitions),
            competition_losses=losses,
            regulation_adjustments=adjustments,
        )
        if not result.is_empty:
            LOGGER.debug("Selection pass at t=%.3f: %s", snapshot.time, result.counts())
        return result

    def elimination_threshold(self, population: int) -> float:
        settings = self.settings
        threshold = settings.elimination_threshold
        if population > settings.enzyme_cap:
            threshold += settings.threshold_step * (population - settings.enzyme_cap)
        return min(threshold, settings.max_elimination_threshold)

    def _select_eliminations(
        self,
        snapshot: SimulationSnapshot,
        totals: Mapping[str, float],
        averages: Mapping[str, float],
    ) -> List[str]:
        settings = self.settings
        population = len(snapshot.enzymes)
        budget = population - settings.min_enzymes
        if budget <= 0:
            return []
        threshold = self.elimination_threshold(population)

        candidates: List[str] = []
        for enzyme_id, enzyme in snapshot.enzymes.items():
            if enzyme.is_source or enzyme.is_sink or enzyme.is_locked:
                continue
            if self.history_length(enzyme_id) < settings.min_history:
                continue
            fit = totals[enzyme_id]
            if fit < threshold and averages[enzyme_id] < threshold:
                candidates.append(enzyme_id)
            elif enzyme.is_degradable and enzyme.concentration < settings.near_zero_concentration:
                candidates.append(enzyme_id)
            elif self._is_redundant(enzyme, snapshot, totals):
                candidates.append(enzyme_id)

        candidates.sort(key=lambda enzyme_id: (totals[enzyme_id], enzyme_id))
        return candidates[:budget]

    def _is_redundant(self, enzyme: Enzyme, snapshot: SimulationSnapshot, totals: Mapping[str, float]) -> bool:
        signature = enzyme.reaction_signature()
        if not signature:
            return False
        for other_id, other in snapshot.enzymes.items():
            if other_id == enzyme.id:
                continue
            if other.reaction_signature() == signature and totals[other_id] > totals[enzyme.id] + self.settings.redundancy_margin:
                return True
        return False

    def boost_factor(self, fitness: float) -> float:
        threshold = self.settings.boost_threshold
        headroom = max(1.0 - threshold, 1e-6)
        factor = MIN_BOOST + (MAX_BOOST - MIN_BOOST) * (fitness - threshold) / headroom
        return float(np.clip(factor, MIN_BOOST, MAX_BOOST))

    def _select_boosts(
        self,
        snapshot: SimulationSnapshot,
        totals: Mapping[str, float],
        averages: Mapping[str, float],
        eliminated: set[str],
        delta_time: float,
    ) -> Dict[str, float]:
        threshold = self.settings.boost_threshold
        probability = min(1.0, self.settings.boost_rate * delta_time)
        boosts: Dict[str, float] = {}
        for enzyme_id in sorted(totals):
            if enzyme_id in eliminated or enzyme_id not in snapshot.genes:
                continue
            if totals[enzyme_id] > threshold and averages[enzyme_id] > threshold:
                if self.rng.random() < probability:
                    boosts[enzyme_id] = self.boost_factor(totals[enzyme_id])
        return boosts

    def competition_pairs(self, snapshot: SimulationSnapshot, totals: Mapping[str, float]) -> List[Tuple[str, str]]:
        """Distinct enzyme pairs sharing a molecule with similar fitness."""

        ids = sorted(snapshot.enzymes)
        pairs: List[Tuple[str, str]] = []
        for index, first in enumerate(ids):
            first_molecules = snapshot.enzymes[first].molecules
            for second in ids[index + 1 :]:
                if not first_molecules & snapshot.enzymes[second].molecules:
                    continue
                if abs(totals[first] - totals[second]) <= self.settings.competition_window:
                    pairs.append((first, second))
        return pairs

    def _run_competitions(
        self,
        snapshot: SimulationSnapshot,
        totals: Mapping[str, float],
        eliminated: set[str],
        delta_time: float,
    ) -> List[CompetitionEvent]:
        probability = min(1.0, self.settings.competition_rate * delta_time)
        events: List[CompetitionEvent] = []
        for first, second in self.competition_pairs(snapshot, totals):
            if first in eliminated or second in eliminated:
                continue
            if self.rng.random() >= probability:
                continue
            events.append(resolve_competition(first, second, totals[first], totals[second], self.rng))
        return events

    def _adaptive_regulation(
        self,
        snapshot: SimulationSnapshot,
        totals: Mapping[str, float],
        eliminated: set[str],
        delta_time: float,
    ) -> Dict[str, float]:
        settings = self.settings
        probability = min(1.0, settings.adaptive_rate * delta_time)
        adjustments: Dict[str, float] = {}
        for enzyme_id in sorted(snapshot.genes):
            if enzyme_id in eliminated or enzyme_id not in totals:
                continue
            fit = totals[enzyme_id]
            gene = snapshot.genes[enzyme_id]
            if fit > settings.adaptive_high_fitness:
                if self.rng.random() < probability:
                    adjustments[enzyme_id] = gene.basal_rate * float(self.rng.uniform(1.02, 1.1))
            elif fit < settings.adaptive_low_fitness:
                if self.rng.random() < probability:
                    adjustments[enzyme_id] = gene.basal_rate * float(self.rng.uniform(0.9, 0.98))
        return adjustments

    # ------------------------------------------------------------------
    # Persistent state (apply phase only)
    # ------------------------------------------------------------------

    def record_fitness(self, fitness: Mapping[str, FitnessBreakdown]) -> None:
        window = self.settings.fitness_window
        for enzyme_id, breakdown in fitness.items():
            samples = self._history.setdefault(enzyme_id, deque(maxlen=window))
            samples.append(breakdown.total)

    def record_selection(self, result: SelectionResult) -> None:
        self.total_eliminations += len(result.eliminations)
        self.total_boosts += len(result.boosts)
        self.total_competitions += len(result.competitions)
        self.total_adjustments += len(result.regulation_adjustments)

    def register_birth(self, enzyme_id: str, parent_id: str | None, time: float) -> LineageRecord:
        parent = self._lineage.get(parent_id) if parent_id is not None else None
        record = LineageRecord(
            enzyme_id=enzyme_id,
            parent_id=parent_id,
            generation=parent.generation + 1 if parent is not None else 0,
            birth_time=float(time),
        )
        self._lineage[enzyme_id] = record
        return record

    def register_death(self, enzyme_id: str, time: float) -> None:
        record = self._lineage.get(enzyme_id)
        if record is not None and record.death_time is None:
            record.death_time = float(time)
        self._history.pop(enzyme_id, None)

    def reconcile(self, live_ids: Iterable[str], time: float) -> None:
        """Bring lineage in line with a replaced enzyme set.

        Ids missing from ``live_ids`` die at ``time``; restored ids whose
        record is closed are reopened, unknown ids are born as founders.
        Fitness history no longer describes the restored enzymes, so it is
        dropped.
        """

        live = set(live_ids)
        for enzyme_id, record in self._lineage.items():
            if enzyme_id not in live and record.is_alive:
                record.death_time = float(time)
        for enzyme_id in sorted(live):
            record = self._lineage.get(enzyme_id)
            if record is None:
                self.register_birth(enzyme_id, None, time)
            elif not record.is_alive:
                record.death_time = None
        self._history.clear()

    @property
    def lineage(self) -> Mapping[str, LineageRecord]:
        return dict(self._lineage)

    def descendants(self, enzyme_id: str) -> List[str]:
        children = [record.enzyme_id for record in self._lineage.values() if record.parent_id == enzyme_id]
        result = list(children)
        for child in children:
            result.extend(self.descendants(child))
        return result

    def reset(self) -> None:
        self._history.clear()
        self._lineage.clear()
        self.total_eliminations = 0
        self.total_boosts = 0
        self.total_competitions = 0
        self.total_adjustments = 0

    def stats(self, fitness: Mapping[str, FitnessBreakdown] | None = None) -> Dict[str, float]:
        latest = [samples[-1] for samples in self._history.values() if samples]
        if fitness:
            latest = [breakdown.total for breakdown in fitness.values()]
        generations: Sequence[int] = [record.generation for record in self._lineage.values()]
        return {
            "eliminations": float(self.total_eliminations),
            "boosts": float(self.total_boosts),
            "competitions": float(self.total_competitions),
            "regulation_adjustments": float(self.total_adjustments),
            "mean_fitness": float(np.mean(latest)) if latest else 0.0,
            "max_generation": float(max(generations, default=0)),
            "living_lineages": float(sum(1 for record in self._lineage.values() if record.is_alive)),
        }


__all__ = [
    "CompetitionEvent",
    "EvolutionSystem",
    "FitnessBreakdown",
    "FitnessWeights",
    "LineageRecord",
    "SelectionResult",
    "resolve_competition",
]
