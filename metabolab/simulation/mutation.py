"""Mutation generator.

:class:`MutationSystem` reads a :class:`~metabolab.simulation.snapshot.SimulationSnapshot`
and *proposes* structural variation; it never touches live state.  Every
candidate event is an independent Bernoulli trial with probability
``rate * delta_time`` drawn from the injected :class:`numpy.random.Generator`,
so a fixed seed reproduces the same proposals.

Event families:

* point mutation of one enzyme parameter (kinetics, efficiency, half-life or
  standard free energy), multiplicative drift clamped to a safe range;
* duplication of an enzyme with doubled drift, an optional substrate/product
  substitution and a weakly expressed gene;
* creation of a novel single-substrate enzyme wired to random molecules;
* mutation of a gene's regulatory program;
* discovery of molecules produced by newly created reactions.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, MutableMapping, Sequence, Set, Tuple

import numpy as np

from ..config import MutationSettings
from .entities import Enzyme, Gene, Molecule, Reaction, RegulatoryElement, validate_enzyme_reactions
from .snapshot import SimulationSnapshot

LOGGER = logging.getLogger(__name__)

POINT_MUTATION_KINDS = ("kinetics", "efficiency", "half_life", "thermodynamics")

PARAMETER_RANGES: Mapping[str, Tuple[float, float]] = {
    "vmax": (0.01, 100.0),
    "km": (0.001, 100.0),
    "reaction_efficiency": (0.05, 1.0),
    "half_life": (10.0, 7200.0),
    "delta_g": (-60.0, 60.0),
    "basal_rate": (1e-6, 0.1),
    "kd": (0.001, 100.0),
    "max_fold_change": (1.0, 50.0),
    "hill_coefficient": (0.5, 4.0),
}

CODE_ALPHABET = 10


@dataclass(frozen=True)
class EnzymeModification:
    """Parameter overrides for one existing enzyme."""

    enzyme_id: str
    half_life: float | None = None
    reaction_parameters: Mapping[str, Mapping[str, float]] = field(default_factory=dict)


@dataclass(frozen=True)
class MutationResult:
    """Everything one mutation pass proposes; valid for a single tick."""

    enzyme_modifications: Mapping[str, EnzymeModification] = field(default_factory=dict)
    new_enzymes: Tuple[Enzyme, ...] = ()
    new_genes: Tuple[Gene, ...] = ()
    new_molecules: Tuple[Molecule, ...] = ()
    gene_modifications: Mapping[str, Gene] = field(default_factory=dict)
    parents: Mapping[str, str | None] = field(default_factory=dict)
    point_mutations: int = 0
    duplications: int = 0
    novel_enzymes: int = 0
    regulatory_mutations: int = 0
    molecules_discovered: int = 0

    @classmethod
    def empty(cls) -> "MutationResult":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (
            self.enzyme_modifications
            or self.new_enzymes
            or self.new_genes
            or self.new_molecules
            or self.gene_modifications
        )

    def counts(self) -> Dict[str, int]:
        return {
            "point_mutations": self.point_mutations,
            "duplications": self.duplications,
            "novel_enzymes": self.novel_enzymes,
            "regulatory_mutations": self.regulatory_mutations,
            "molecules_discovered": self.molecules_discovered,
        }


def structural_similarity(first: Sequence[int], second: Sequence[int]) -> float:
    """Fraction of positions that agree, relative to the longer code."""

    if not first and not second:
        return 1.0
    if not first or not second:
        return 0.0
    matches = sum(1 for a, b in zip(first, second) if a == b)
    return matches / max(len(first), len(second))


@dataclass
class _Draft:
    modifications: Dict[str, Dict[str, object]] = field(default_factory=dict)
    new_enzymes: List[Enzyme] = field(default_factory=list)
    new_genes: List[Gene] = field(default_factory=list)
    gene_modifications: Dict[str, Gene] = field(default_factory=dict)
    parents: Dict[str, str | None] = field(default_factory=dict)
    enzyme_ids: Set[str] = field(default_factory=set)
    reaction_ids: Set[str] = field(default_factory=set)
    point_mutations: int = 0
    duplications: int = 0
    novel_enzymes: int = 0
    regulatory_mutations: int = 0


class MutationSystem:
    """Propose mutations from a snapshot without applying them."""

    def __init__(self, settings: MutationSettings | None = None, rng: np.random.Generator | None = None) -> None:
        self.settings = settings or MutationSettings()
        self.rng = rng if rng is not None else np.random.default_rng()

    # ------------------------------------------------------------------
    # Random helpers
    # ------------------------------------------------------------------

    def _trial(self, rate: float, delta_time: float) -> bool:
        probability = min(1.0, max(0.0, rate * delta_time))
        if probability <= 0.0:
            return False
        return bool(self.rng.random() < probability)

    def _pick(self, items: Sequence):
        return items[int(self.rng.integers(len(items)))]

    def _drift(self, value: float, parameter: str, scale: float = 1.0) -> float:
        magnitude = self.settings.drift * scale
        low, high = PARAMETER_RANGES[parameter]
        drifted = value * (1.0 + self.rng.uniform(-magnitude, magnitude))
        return float(min(high, max(low, drifted)))

    def _new_id(self, prefix: str, taken: Set[str]) -> str:
        while True:
            candidate = f"{prefix}_{int(self.rng.integers(0, 16**8)):08x}"
            if candidate not in taken:
                taken.add(candidate)
                return candidate

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def calculate(self, snapshot: SimulationSnapshot, delta_time: float) -> MutationResult:
        """Run every Bernoulli trial once against ``snapshot``."""

        if delta_time <= 0:
            return MutationResult.empty()

        draft = _Draft(
            enzyme_ids=set(snapshot.enzymes),
            reaction_ids={reaction.id for reaction in snapshot.reactions},
        )
        settings = self.settings
        enzyme_ids = sorted(snapshot.enzymes)

        for enzyme_id in enzyme_ids:
            if self._trial(settings.point_mutation_rate, delta_time):
                self._point_mutation(snapshot.enzymes[enzyme_id], draft)

        population = len(snapshot.enzymes)
        for enzyme_id in enzyme_ids:
            if population + len(draft.new_enzymes) >= settings.max_enzymes:
                break
            if self._trial(settings.duplication_rate, delta_time):
                self._duplicate(snapshot.enzymes[enzyme_id], snapshot, draft)

        if (
            snapshot.molecules
            and population + len(draft.new_enzymes) < settings.max_enzymes
            and self._trial(settings.novel_enzyme_rate, delta_time)
        ):
            self._create_novel_enzyme(snapshot, draft)

        for enzyme_id in sorted(snapshot.genes):
            if self._trial(settings.regulatory_mutation_rate, delta_time):
                self._mutate_regulation(snapshot.genes[enzyme_id], snapshot, draft)

        new_molecules = self._discover_molecules(snapshot, draft.new_enzymes)

        result = MutationResult(
            enzyme_modifications={
                enzyme_id: EnzymeModification(
                    enzyme_id=enzyme_id,
                    half_life=entry["half_life"],  # type: ignore[arg-type]
                    reaction_parameters={
                        reaction_id: dict(params)
                        for reaction_id, params in entry["reactions"].items()  # type: ignore[union-attr]
                    },
                )
                for enzyme_id, entry in draft.modifications.items()
            },
            new_enzymes=tuple(draft.new_enzymes),
            new_genes=tuple(draft.new_genes),
            new_molecules=tuple(new_molecules),
            gene_modifications=dict(draft.gene_modifications),
            parents=dict(draft.parents),
            point_mutations=draft.point_mutations,
            duplications=draft.duplications,
            novel_enzymes=draft.novel_enzymes,
            regulatory_mutations=draft.regulatory_mutations,
            molecules_discovered=len(new_molecules),
        )
        if not result.is_empty:
            LOGGER.debug("Mutation pass at t=%.3f: %s", snapshot.time, result.counts())
        return result

    # ------------------------------------------------------------------
    # Point mutation
    # ------------------------------------------------------------------

    def _point_mutation(self, enzyme: Enzyme, draft: _Draft) -> None:
        kind = self._pick(POINT_MUTATION_KINDS)
        entry = draft.modifications.setdefault(enzyme.id, {"half_life": None, "reactions": {}})
        if kind == "half_life":
            current = entry["half_life"] if entry["half_life"] is not None else enzyme.half_life
            entry["half_life"] = self._drift(float(current), "half_life")  # type: ignore[arg-type]
            draft.point_mutations += 1
            return
        if not enzyme.reactions:
            return
        reaction = self._pick(enzyme.reactions)
        params: MutableMapping[str, float] = entry["reactions"].setdefault(reaction.id, {})  # type: ignore[union-attr]
        if kind == "kinetics":
            parameter = "vmax" if self.rng.random() < 0.5 else "km"
        elif kind == "efficiency":
            parameter = "reaction_efficiency"
        else:
            parameter = "delta_g"
        current = params.get(parameter, getattr(reaction, parameter))
        params[parameter] = self._drift(float(current), parameter)
        draft.point_mutations += 1

    # ------------------------------------------------------------------
    # Duplication
    # ------------------------------------------------------------------

    def _duplicate(self, enzyme: Enzyme, snapshot: SimulationSnapshot, draft: _Draft) -> None:
        new_id = self._new_id("enz", draft.enzyme_ids)
        reactions: List[Reaction] = []
        for reaction in enzyme.reactions:
            reactions.append(
                Reaction(
                    id=self._new_id("rxn", draft.reaction_ids),
                    name=f"{reaction.name}'",
                    substrates=dict(reaction.substrates),
                    products=dict(reaction.products),
                    vmax=self._drift(reaction.vmax, "vmax", scale=2.0),
                    km=self._drift(reaction.km, "km", scale=2.0),
                    delta_g=self._drift(reaction.delta_g, "delta_g", scale=2.0),
                    temperature=reaction.temperature,
                    reaction_efficiency=self._drift(reaction.reaction_efficiency, "reaction_efficiency", scale=2.0),
                    is_irreversible=reaction.is_irreversible,
                )
            )

        if reactions and self.rng.random() < self.settings.substitution_chance:
            substituted = self._substitute(copy.deepcopy(reactions), snapshot)
            if substituted is not None and validate_enzyme_reactions(substituted).valid:
                reactions = substituted

        clone = Enzyme(
            id=new_id,
            name=f"{enzyme.name}-dup",
            concentration=enzyme.concentration * self.settings.duplication_concentration_factor,
            is_degradable=enzyme.is_degradable,
            half_life=enzyme.half_life,
            reactions=reactions,
            inhibitors=dict(enzyme.inhibitors),
            activators=dict(enzyme.activators),
        )
        parent_gene = snapshot.genes.get(enzyme.id)
        if parent_gene is not None:
            gene = Gene(
                enzyme_id=new_id,
                basal_rate=parent_gene.basal_rate * self.settings.duplication_expression_factor,
                activators=copy.deepcopy(parent_gene.activators),
                repressors=copy.deepcopy(parent_gene.repressors),
            )
        else:
            gene = Gene(enzyme_id=new_id, basal_rate=self.settings.weak_basal_rate)

        draft.new_enzymes.append(clone)
        draft.new_genes.append(gene)
        draft.parents[new_id] = enzyme.id
        draft.duplications += 1

    def _substitute(self, reactions: List[Reaction], snapshot: SimulationSnapshot) -> List[Reaction] | None:
        """Swap one substrate or product for a structurally related molecule."""

        reaction = self._pick(reactions)
        sides = [side for side in (reaction.substrates, reaction.products) if side]
        if not sides:
            return None
        side = self._pick(sides)
        old_name = self._pick(sorted(side))
        candidates = sorted(name for name in snapshot.molecules if name not in reaction.molecules)
        if not candidates:
            return None
        old_molecule = snapshot.molecules.get(old_name)
        old_code = old_molecule.structural_code if old_molecule is not None else []
        weights = np.array(
            [structural_similarity(old_code, snapshot.molecules[name].structural_code) + 0.1 for name in candidates],
            dtype=float,
        )
        choice = candidates[int(self.rng.choice(len(candidates), p=weights / weights.sum()))]
        side[choice] = side.pop(old_name)
        reaction.name = f"{reaction.name}[{old_name}->{choice}]"
        return reactions

    # ------------------------------------------------------------------
    # Novel enzymes
    # ------------------------------------------------------------------

    def _create_novel_enzyme(self, snapshot: SimulationSnapshot, draft: _Draft) -> None:
        names = sorted(snapshot.molecules)
        substrate = self._pick(names)
        if self.rng.random() < self.settings.novel_product_chance:
            product = self._derived_name(substrate, snapshot, draft)
        else:
            others = [name for name in names if name != substrate] or names
            product = self._pick(others)

        enzyme_id = self._new_id("enz", draft.enzyme_ids)
        reaction = Reaction(
            id=self._new_id("rxn", draft.reaction_ids),
            name=f"{substrate} -> {product}",
            substrates={substrate: 1.0},
            products={product: 1.0},
            vmax=float(self.rng.uniform(0.5, 10.0)),
            km=float(self.rng.uniform(0.1, 5.0)),
            delta_g=float(self.rng.uniform(-30.0, 10.0)),
            reaction_efficiency=float(self.rng.uniform(0.3, 0.9)),
        )
        enzyme = Enzyme(
            id=enzyme_id,
            name=f"Novel {enzyme_id[-4:]}",
            concentration=self.settings.novel_enzyme_concentration,
            half_life=float(self.rng.uniform(300.0, 1800.0)),
            reactions=[reaction],
        )
        gene = Gene(enzyme_id=enzyme_id, basal_rate=self.settings.weak_basal_rate * float(self.rng.uniform(0.5, 1.5)))
        if self.rng.random() < 0.5:
            gene.repressors.append(self._random_element(product))
        if self.rng.random() < 0.3:
            gene.activators.append(self._random_element(substrate))

        draft.new_enzymes.append(enzyme)
        draft.new_genes.append(gene)
        draft.parents[enzyme_id] = None
        draft.novel_enzymes += 1

    def _derived_name(self, substrate: str, snapshot: SimulationSnapshot, draft: _Draft) -> str:
        taken = set(snapshot.molecules)
        for enzyme in draft.new_enzymes:
            taken |= enzyme.molecules
        index = 1
        while f"{substrate}-{index}" in taken:
            index += 1
        return f"{substrate}-{index}"

    def _random_element(self, molecule_name: str) -> RegulatoryElement:
        return RegulatoryElement(
            molecule_name=molecule_name,
            kd=float(self.rng.uniform(0.1, 5.0)),
            max_fold_change=float(self.rng.uniform(1.5, 8.0)),
            hill_coefficient=float(self.rng.uniform(1.0, 3.0)),
        )

    # ------------------------------------------------------------------
    # Regulation
    # ------------------------------------------------------------------

    def _mutate_regulation(self, gene: Gene, snapshot: SimulationSnapshot, draft: _Draft) -> None:
        mutated = copy.deepcopy(draft.gene_modifications.get(gene.enzyme_id, gene))
        options = ["basal"]
        if mutated.activators:
            options.append("activator")
        if mutated.repressors:
            options.append("repressor")
        if mutated.regulator_count < self.settings.max_regulators and snapshot.molecules:
            options.extend(("add_activator", "add_repressor"))

        kind = self._pick(options)
        if kind == "basal":
            mutated.basal_rate = self._drift(mutated.basal_rate, "basal_rate")
        elif kind in ("activator", "repressor"):
            elements = mutated.activators if kind == "activator" else mutated.repressors
            element = self._pick(elements)
            element.kd = self._drift(element.kd, "kd")
            element.max_fold_change = self._drift(element.max_fold_change, "max_fold_change")
            element.hill_coefficient = self._drift(element.hill_coefficient, "hill_coefficient")
        else:
            molecule_name = self._pick(sorted(snapshot.molecules))
            element = self._random_element(molecule_name)
            if kind == "add_activator":
                mutated.activators.append(element)
            else:
                mutated.repressors.append(element)

        draft.gene_modifications[gene.enzyme_id] = mutated
        draft.regulatory_mutations += 1

    # ------------------------------------------------------------------
    # Molecule discovery
    # ------------------------------------------------------------------

    def derive_structural_code(self, code: Sequence[int]) -> List[int]:
        """Point mutation, insertion or deletion on an integer sequence."""

        derived = [int(value) for value in code]
        if not derived:
            return [int(self.rng.integers(CODE_ALPHABET))]
        operations = ["point", "insertion"]
        if len(derived) > 1:
            operations.append("deletion")
        operation = self._pick(operations)
        if operation == "point":
            position = int(self.rng.integers(len(derived)))
            derived[position] = int(self.rng.integers(CODE_ALPHABET))
        elif operation == "insertion":
            position = int(self.rng.integers(len(derived) + 1))
            derived.insert(position, int(self.rng.integers(CODE_ALPHABET)))
        else:
            del derived[int(self.rng.integers(len(derived)))]
        return derived

    def _discover_molecules(self, snapshot: SimulationSnapshot, new_enzymes: Sequence[Enzyme]) -> List[Molecule]:
        known = set(snapshot.molecules)
        discovered: List[Molecule] = []
        for enzyme in new_enzymes:
            for reaction in enzyme.reactions:
                for product in reaction.products:
                    if product in known:
                        continue
                    source_name = next(iter(reaction.substrates), None)
                    source = snapshot.molecules.get(source_name) if source_name is not None else None
                    code = self.derive_structural_code(source.structural_code if source is not None else [])
                    energy = (source.potential_energy if source is not None else 0.0) * float(
                        self.rng.uniform(0.7, 1.1)
                    )
                    discovered.append(
                        Molecule(
                            name=product,
                            concentration=0.0,
                            initial_concentration=0.0,
                            potential_energy=energy,
                            structural_code=code,
                        )
                    )
                    known.add(product)
        return discovered


__all__ = [
    "EnzymeModification",
    "MutationResult",
    "MutationSystem",
    "PARAMETER_RANGES",
    "POINT_MUTATION_KINDS",
    "structural_similarity",
]
