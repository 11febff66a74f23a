"""Entity records for the biochemical network.

Molecules, enzymes, reactions and genes are plain mutable dataclasses.  They
carry small lifecycle helpers (reset, clamped setters, dict conversion) but
no behaviour that depends on another component: kinetics, expression,
mutation and selection all live in their own modules and treat these records
as data.

Ownership follows the biology: an :class:`Enzyme` owns its ordered list of
:class:`Reaction` objects, whereas a :class:`Gene` only *links* to the enzyme
it regulates through ``enzyme_id``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence


DEFAULT_TEMPERATURE = 310.0


@dataclass(slots=True)
class Molecule:
    """A chemical species with a concentration in mM."""

    name: str
    concentration: float = 0.0
    initial_concentration: float | None = None
    is_locked: bool = False
    potential_energy: float = 0.0
    structural_code: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.concentration = max(0.0, float(self.concentration))
        if self.initial_concentration is None:
            self.initial_concentration = self.concentration

    def set_concentration(self, value: float) -> None:
        self.concentration = max(0.0, float(value))

    def reset(self) -> None:
        self.concentration = float(self.initial_concentration or 0.0)

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "concentration": self.concentration,
            "initial_concentration": self.initial_concentration,
            "is_locked": self.is_locked,
            "potential_energy": self.potential_energy,
            "structural_code": list(self.structural_code),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Molecule":
        return cls(
            name=str(record["name"]),
            concentration=float(record.get("concentration", 0.0)),
            initial_concentration=record.get("initial_concentration"),
            is_locked=bool(record.get("is_locked", False)),
            potential_energy=float(record.get("potential_energy", 0.0)),
            structural_code=[int(value) for value in record.get("structural_code", [])],
        )


@dataclass(slots=True)
class Reaction:
    """A stoichiometric conversion catalysed by exactly one enzyme.

    ``substrates`` and ``products`` map molecule names to stoichiometric
    coefficients.  A reaction without substrates is a *source*, one without
    products a *sink*.  The ``current_*`` fields are recomputed by the
    kinetics engine every tick and are never a source of truth.
    """

    id: str
    name: str
    substrates: Dict[str, float] = field(default_factory=dict)
    products: Dict[str, float] = field(default_factory=dict)
    vmax: float = 1.0
    km: float = 0.5
    delta_g: float = -5.0
    temperature: float = DEFAULT_TEMPERATURE
    reaction_efficiency: float = 0.7
    is_irreversible: bool = False

    current_forward_rate: float = 0.0
    current_reverse_rate: float = 0.0
    current_delta_g_actual: float = 0.0
    current_keq: float = 1.0
    current_useful_work: float = 0.0
    current_heat_generated: float = 0.0

    @property
    def is_source(self) -> bool:
        return not self.substrates

    @property
    def is_sink(self) -> bool:
        return not self.products

    @property
    def net_rate(self) -> float:
        return self.current_forward_rate - self.current_reverse_rate

    @property
    def molecules(self) -> frozenset[str]:
        return frozenset(self.substrates) | frozenset(self.products)

    def reset_runtime(self) -> None:
        self.current_forward_rate = 0.0
        self.current_reverse_rate = 0.0
        self.current_delta_g_actual = self.delta_g
        self.current_keq = 1.0
        self.current_useful_work = 0.0
        self.current_heat_generated = 0.0

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "substrates": dict(self.substrates),
            "products": dict(self.products),
            "vmax": self.vmax,
            "km": self.km,
            "delta_g": self.delta_g,
            "temperature": self.temperature,
            "reaction_efficiency": self.reaction_efficiency,
            "is_irreversible": self.is_irreversible,
        }

    def runtime_record(self) -> Dict[str, Any]:
        record = self.to_record()
        record.update(
            {
                "current_forward_rate": self.current_forward_rate,
                "current_reverse_rate": self.current_reverse_rate,
                "net_rate": self.net_rate,
                "current_delta_g_actual": self.current_delta_g_actual,
                "current_keq": self.current_keq,
                "current_useful_work": self.current_useful_work,
                "current_heat_generated": self.current_heat_generated,
            }
        )
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Reaction":
        return cls(
            id=str(record["id"]),
            name=str(record.get("name", record["id"])),
            substrates={str(k): float(v) for k, v in dict(record.get("substrates", {})).items()},
            products={str(k): float(v) for k, v in dict(record.get("products", {})).items()},
            vmax=float(record.get("vmax", 1.0)),
            km=float(record.get("km", 0.5)),
            delta_g=float(record.get("delta_g", -5.0)),
            temperature=float(record.get("temperature", DEFAULT_TEMPERATURE)),
            reaction_efficiency=float(record.get("reaction_efficiency", 0.7)),
            is_irreversible=bool(record.get("is_irreversible", False)),
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking a proposed enzyme; never raised, always returned."""

    valid: bool
    reason: str = ""
    suggestion: str = ""


def validate_enzyme_reactions(reactions: Sequence[Reaction]) -> ValidationResult:
    """Check that no two reactions of one enzyme share a molecule."""

    if len(reactions) < 2:
        return ValidationResult(valid=True)

    seen_ids: set[str] = set()
    for reaction in reactions:
        if reaction.id in seen_ids:
            return ValidationResult(
                valid=False,
                reason=f"reaction id '{reaction.id}' appears more than once",
                suggestion="give every reaction of the enzyme a distinct id",
            )
        seen_ids.add(reaction.id)

    overlaps: List[str] = []
    for index, first in enumerate(reactions):
        for second in reactions[index + 1 :]:
            shared = sorted(first.molecules & second.molecules)
            if shared:
                overlaps.append(f"{first.id}/{second.id} share {', '.join(shared)}")
    if not overlaps:
        return ValidationResult(valid=True)

    groups = _overlap_groups(reactions)
    suggestion = "split into separate enzymes: " + "; ".join(
        "[" + ", ".join(group) + "]" for group in groups
    )
    return ValidationResult(
        valid=False,
        reason="reactions overlap on molecules (" + "; ".join(overlaps) + ")",
        suggestion=suggestion,
    )


def _overlap_groups(reactions: Sequence[Reaction]) -> List[List[str]]:
    """Partition reactions so that each group's members pairwise share nothing."""

    groups: List[List[Reaction]] = []
    for reaction in reactions:
        for group in groups:
            if all(not (reaction.molecules & member.molecules) for member in group):
                group.append(reaction)
                break
        else:
            groups.append([reaction])
    return [[reaction.id for reaction in group] for group in groups]


@dataclass(slots=True)
class Enzyme:
    """A catalyst with a concentration, a turnover half-life and reactions.

    ``inhibitors`` and ``activators`` map molecule names to Ki / Ka (mM) and
    feed :meth:`modulation_factor`, an allosteric multiplier on the effective
    enzyme concentration.
    """

    id: str
    name: str
    concentration: float = 0.0
    initial_concentration: float | None = None
    is_locked: bool = False
    is_degradable: bool = True
    half_life: float = 600.0
    reactions: List[Reaction] = field(default_factory=list)
    inhibitors: Dict[str, float] = field(default_factory=dict)
    activators: Dict[str, float] = field(default_factory=dict)

    MIN_MODULATION = 0.1
    MAX_MODULATION = 1.5

    def __post_init__(self) -> None:
        self.concentration = max(0.0, float(self.concentration))
        if self.initial_concentration is None:
            self.initial_concentration = self.concentration

    @property
    def degradation_rate(self) -> float:
        if not self.is_degradable or self.half_life <= 0:
            return 0.0
        return math.log(2.0) / self.half_life

    @property
    def is_source(self) -> bool:
        return any(reaction.is_source for reaction in self.reactions)

    @property
    def is_sink(self) -> bool:
        return any(reaction.is_sink for reaction in self.reactions)

    @property
    def substrate_names(self) -> frozenset[str]:
        return frozenset(name for reaction in self.reactions for name in reaction.substrates)

    @property
    def product_names(self) -> frozenset[str]:
        return frozenset(name for reaction in self.reactions for name in reaction.products)

    @property
    def molecules(self) -> frozenset[str]:
        return self.substrate_names | self.product_names

    def reaction_signature(self) -> frozenset[tuple[frozenset[str], frozenset[str]]]:
        return frozenset(
            (frozenset(reaction.substrates), frozenset(reaction.products)) for reaction in self.reactions
        )

    def validate(self) -> ValidationResult:
        return validate_enzyme_reactions(self.reactions)

    def set_concentration(self, value: float) -> None:
        self.concentration = max(0.0, float(value))

    def reset(self) -> None:
        self.concentration = float(self.initial_concentration or 0.0)
        for reaction in self.reactions:
            reaction.reset_runtime()

    def modulation_factor(self, concentrations: Mapping[str, float]) -> float:
        """Allosteric multiplier, clamped to ``[0.1, 1.5]``."""

        if not self.inhibitors and not self.activators:
            return 1.0
        factor = 1.0
        for name, ki in self.inhibitors.items():
            level = max(0.0, concentrations.get(name, 0.0))
            factor *= 1.0 / (1.0 + level / max(ki, 1e-6))
        for name, ka in self.activators.items():
            level = max(0.0, concentrations.get(name, 0.0))
            factor *= 1.0 + level / (max(ka, 1e-6) + level)
        return float(min(self.MAX_MODULATION, max(self.MIN_MODULATION, factor)))

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "concentration": self.concentration,
            "initial_concentration": self.initial_concentration,
            "is_locked": self.is_locked,
            "is_degradable": self.is_degradable,
            "half_life": self.half_life,
            "reactions": [reaction.to_record() for reaction in self.reactions],
            "inhibitors": dict(self.inhibitors),
            "activators": dict(self.activators),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Enzyme":
        return cls(
            id=str(record["id"]),
            name=str(record.get("name", record["id"])),
            concentration=float(record.get("concentration", 0.0)),
            initial_concentration=record.get("initial_concentration"),
            is_locked=bool(record.get("is_locked", False)),
            is_degradable=bool(record.get("is_degradable", True)),
            half_life=float(record.get("half_life", 600.0)),
            reactions=[Reaction.from_record(item) for item in record.get("reactions", [])],
            inhibitors={str(k): float(v) for k, v in dict(record.get("inhibitors", {})).items()},
            activators={str(k): float(v) for k, v in dict(record.get("activators", {})).items()},
        )


@dataclass(slots=True)
class RegulatoryElement:
    """A transcription-factor binding site responding to one molecule."""

    molecule_name: str
    kd: float = 1.0
    max_fold_change: float = 5.0
    hill_coefficient: float = 1.0

    def occupancy(self, concentration: float) -> float:
        level = max(0.0, float(concentration))
        if level <= 0.0:
            return 0.0
        n = max(self.hill_coefficient, 1e-3)
        kd_n = max(self.kd, 1e-9) ** n
        level_n = level**n
        return float(level_n / (kd_n + level_n))

    def to_record(self) -> Dict[str, Any]:
        return {
            "molecule_name": self.molecule_name,
            "kd": self.kd,
            "max_fold_change": self.max_fold_change,
            "hill_coefficient": self.hill_coefficient,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "RegulatoryElement":
        return cls(
            molecule_name=str(record["molecule_name"]),
            kd=float(record.get("kd", 1.0)),
            max_fold_change=float(record.get("max_fold_change", 5.0)),
            hill_coefficient=float(record.get("hill_coefficient", 1.0)),
        )


@dataclass(slots=True)
class Gene:
    """Synthesis control for one enzyme."""

    enzyme_id: str
    basal_rate: float = 0.001
    is_active: bool = True
    activators: List[RegulatoryElement] = field(default_factory=list)
    repressors: List[RegulatoryElement] = field(default_factory=list)
    current_fold_change: float = 1.0
    current_expression_rate: float = 0.0

    @property
    def regulator_count(self) -> int:
        return len(self.activators) + len(self.repressors)

    @property
    def is_constitutive(self) -> bool:
        return self.regulator_count == 0

    def regulator_molecules(self) -> frozenset[str]:
        return frozenset(element.molecule_name for element in (*self.activators, *self.repressors))

    def to_record(self) -> Dict[str, Any]:
        return {
            "enzyme_id": self.enzyme_id,
            "basal_rate": self.basal_rate,
            "is_active": self.is_active,
            "activators": [element.to_record() for element in self.activators],
            "repressors": [element.to_record() for element in self.repressors],
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Gene":
        return cls(
            enzyme_id=str(record["enzyme_id"]),
            basal_rate=float(record.get("basal_rate", 0.001)),
            is_active=bool(record.get("is_active", True)),
            activators=[RegulatoryElement.from_record(item) for item in record.get("activators", [])],
            repressors=[RegulatoryElement.from_record(item) for item in record.get("repressors", [])],
        )


def index_by_key(items: Iterable[Any], key: str) -> Dict[str, Any]:
    """Build a mapping from an iterable of entities keyed on ``key``."""

    return {str(getattr(item, key)): item for item in items}


__all__ = [
    "DEFAULT_TEMPERATURE",
    "Enzyme",
    "Gene",
    "Molecule",
    "Reaction",
    "RegulatoryElement",
    "ValidationResult",
    "index_by_key",
    "validate_enzyme_reactions",
]
