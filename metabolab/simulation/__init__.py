"""Biochemical network simulation components.

The :mod:`metabolab.simulation` package holds the entity records (molecules,
enzymes, reactions, genes), the pure calculators that turn a frozen snapshot
into proposed changes (kinetics, gene expression, mutation, selection) and the
:class:`Simulator` that owns the live state and applies those proposals once
per tick.  Calculators take an injectable :class:`numpy.random.Generator` so
stochastic runs are reproducible under a fixed seed.
"""

from .entities import Enzyme, Gene, Molecule, Reaction, RegulatoryElement, ValidationResult
from .evolution import EvolutionSystem, FitnessBreakdown, LineageRecord, SelectionResult
from .locks import CategoryLocks, LockCategory
from .mutation import MutationResult, MutationSystem
from .pathway import build_simulator, generate_pathway
from .simulator import CellState, SimulationData, SimulationError, Simulator, TickReport
from .snapshot import SimulationSnapshot

__all__ = [
    "CategoryLocks",
    "CellState",
    "Enzyme",
    "EvolutionSystem",
    "FitnessBreakdown",
    "Gene",
    "LineageRecord",
    "LockCategory",
    "Molecule",
    "MutationResult",
    "MutationSystem",
    "Reaction",
    "RegulatoryElement",
    "SelectionResult",
    "SimulationData",
    "SimulationError",
    "SimulationSnapshot",
    "Simulator",
    "TickReport",
    "ValidationResult",
    "build_simulator",
    "generate_pathway",
]
