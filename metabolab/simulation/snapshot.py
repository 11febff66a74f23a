"""Immutable per-tick view of the network state."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from .entities import Enzyme, Gene, Molecule, Reaction


@dataclass(frozen=True)
class SimulationSnapshot:
    """Frozen view shared by every calculator within one tick.

    Entities are deep copies, so a calculator that pokes at them cannot reach
    the orchestrator's live objects, and the maps are read-only proxies.
    """

    time: float
    molecule_concentrations: Mapping[str, float]
    enzyme_concentrations: Mapping[str, float]
    molecules: Mapping[str, Molecule]
    enzymes: Mapping[str, Enzyme]
    genes: Mapping[str, Gene]
    reactions: Tuple[Reaction, ...]

    @classmethod
    def capture(
        cls,
        molecules: Mapping[str, Molecule],
        enzymes: Mapping[str, Enzyme],
        genes: Mapping[str, Gene],
        *,
        time: float = 0.0,
    ) -> "SimulationSnapshot":
        molecule_copies = {name: copy.deepcopy(molecule) for name, molecule in molecules.items()}
        enzyme_copies = {enzyme_id: copy.deepcopy(enzyme) for enzyme_id, enzyme in enzymes.items()}
        gene_copies = {enzyme_id: copy.deepcopy(gene) for enzyme_id, gene in genes.items()}
        reactions = tuple(reaction for enzyme in enzyme_copies.values() for reaction in enzyme.reactions)
        return cls(
            time=float(time),
            molecule_concentrations=MappingProxyType(
                {name: molecule.concentration for name, molecule in molecule_copies.items()}
            ),
            enzyme_concentrations=MappingProxyType(
                {enzyme_id: enzyme.concentration for enzyme_id, enzyme in enzyme_copies.items()}
            ),
            molecules=MappingProxyType(molecule_copies),
            enzymes=MappingProxyType(enzyme_copies),
            genes=MappingProxyType(gene_copies),
            reactions=reactions,
        )

    def enzyme_for_reaction(self, reaction_id: str) -> Enzyme | None:
        for enzyme in self.enzymes.values():
            if any(reaction.id == reaction_id for reaction in enzyme.reactions):
                return enzyme
        return None


__all__ = ["SimulationSnapshot"]
