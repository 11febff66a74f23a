"""Config-driven pathway generation.

Builds the initial molecule, enzyme and gene maps the simulator starts from.
Topologies:

``linear``
    M0 -> M1 -> ... -> Mn
``branched``
    a linear trunk with side branches leaving from its midpoint
``cyclic``
    a linear chain whose last molecule feeds back into the first
``random``
    random single-substrate/single-product wiring without self loops

A source enzyme feeds the first molecule and a sink drains the last one when
the config asks for them; both are non-degradable so the pathway keeps a
steady input and output.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

import numpy as np

from ..config import PathwayConfig, SimulationSettings
from .entities import Enzyme, Gene, Molecule, Reaction, RegulatoryElement
from .simulator import Simulator

LOGGER = logging.getLogger(__name__)

PathwayMaps = Tuple[Dict[str, Molecule], Dict[str, Enzyme], Dict[str, Gene]]


def _positive_normal(rng: np.random.Generator, mean: float, relative_variance: float) -> float:
    value = rng.normal(mean, abs(mean) * relative_variance)
    return float(max(value, abs(mean) * 0.05, 1e-6))


def _edges(config: PathwayConfig, names: List[str], rng: np.random.Generator) -> List[Tuple[str, str]]:
    n = len(names)
    if config.topology == "random":
        edges: List[Tuple[str, str]] = []
        while len(edges) < config.num_enzymes:
            first, second = rng.choice(n, size=2, replace=False)
            edges.append((names[int(first)], names[int(second)]))
        return edges

    chain = [(names[i], names[i + 1]) for i in range(n - 1)]
    if config.topology == "cyclic":
        chain.append((names[-1], names[0]))
    elif config.topology == "branched" and n > 3:
        hub = n // 2
        chain = chain[:hub]
        rest = names[hub + 1 :]
        for arm in (rest[0::2], rest[1::2]):
            previous = names[hub]
            for name in arm:
                chain.append((previous, name))
                previous = name
    return chain[: config.num_enzymes]


def _gene_for(enzyme_id: str, substrate: str | None, product: str | None, config: PathwayConfig, rng: np.random.Generator) -> Gene:
    gene = Gene(enzyme_id=enzyme_id, basal_rate=_positive_normal(rng, config.basal_rate, 0.2))
    if product is not None and rng.random() < config.regulation_probability:
        gene.repressors.append(
            RegulatoryElement(
                molecule_name=product,
                kd=_positive_normal(rng, config.molecule_concentration, 0.3),
                max_fold_change=config.max_fold_change,
                hill_coefficient=float(rng.uniform(1.0, 2.5)),
            )
        )
    if substrate is not None and rng.random() < config.regulation_probability:
        gene.activators.append(
            RegulatoryElement(
                molecule_name=substrate,
                kd=_positive_normal(rng, config.molecule_concentration, 0.3),
                max_fold_change=config.max_fold_change,
                hill_coefficient=float(rng.uniform(1.0, 2.5)),
            )
        )
    return gene


def generate_pathway(config: PathwayConfig | None = None, rng: np.random.Generator | None = None) -> PathwayMaps:
    """Return ``(molecules, enzymes, genes)`` for ``config``."""

    config = config or PathwayConfig()
    rng = rng if rng is not None else np.random.default_rng()

    molecules: Dict[str, Molecule] = {}
    for index in range(config.num_molecules):
        name = f"M{index}"
        molecules[name] = Molecule(
            name=name,
            concentration=_positive_normal(rng, config.molecule_concentration, config.molecule_variance),
            potential_energy=float(rng.uniform(20.0, 200.0)),
            structural_code=[int(value) for value in rng.integers(0, 10, size=6)],
        )
    names = list(molecules)

    enzymes: Dict[str, Enzyme] = {}
    genes: Dict[str, Gene] = {}
    for index, (substrate, product) in enumerate(_edges(config, names, rng)):
        enzyme_id = f"E{index}"
        reaction = Reaction(
            id=f"R{index}",
            name=f"{substrate} -> {product}",
            substrates={substrate: 1.0},
            products={product: 1.0},
            vmax=_positive_normal(rng, config.vmax, config.kinetic_variance),
            km=_positive_normal(rng, config.km, config.kinetic_variance),
            delta_g=float(rng.normal(config.delta_g, config.delta_g_variance)),
            temperature=config.temperature,
            reaction_efficiency=float(np.clip(rng.normal(config.reaction_efficiency, 0.05), 0.05, 1.0)),
        )
        enzymes[enzyme_id] = Enzyme(
            id=enzyme_id,
            name=f"Enzyme {index}",
            concentration=_positive_normal(rng, config.enzyme_concentration, config.enzyme_variance),
            half_life=_positive_normal(rng, config.half_life, 0.2),
            reactions=[reaction],
        )
        genes[enzyme_id] = _gene_for(enzyme_id, substrate, product, config, rng)

    if config.include_source:
        enzymes["E_source"] = Enzyme(
            id="E_source",
            name="Source",
            concentration=config.enzyme_concentration,
            is_degradable=False,
            reactions=[
                Reaction(
                    id="R_source",
                    name=f"-> {names[0]}",
                    products={names[0]: 1.0},
                    vmax=config.vmax * 0.2,
                    km=config.km,
                    delta_g=config.delta_g,
                    temperature=config.temperature,
                    reaction_efficiency=config.reaction_efficiency,
                    is_irreversible=True,
                )
            ],
        )
    if config.include_sink:
        enzymes["E_sink"] = Enzyme(
            id="E_sink",
            name="Sink",
            concentration=config.enzyme_concentration,
            is_degradable=False,
            reactions=[
                Reaction(
                    id="R_sink",
                    name=f"{names[-1]} ->",
                    substrates={names[-1]: 1.0},
                    vmax=config.vmax * 0.3,
                    km=config.km,
                    delta_g=config.delta_g,
                    temperature=config.temperature,
                    reaction_efficiency=config.reaction_efficiency,
                    is_irreversible=True,
                )
            ],
        )

    LOGGER.info(
        "Generated %s pathway: %d molecules, %d enzymes",
        config.topology,
        len(molecules),
        len(enzymes),
    )
    return molecules, enzymes, genes


def build_simulator(
    config: PathwayConfig | None = None,
    settings: SimulationSettings | None = None,
    *,
    seed: int | None = None,
) -> Simulator:
    """Generate a pathway and wrap it in a :class:`Simulator` sharing one RNG."""

    settings = settings or SimulationSettings()
    rng = np.random.default_rng(seed if seed is not None else settings.seed)
    molecules, enzymes, genes = generate_pathway(config, rng)
    return Simulator(molecules, enzymes, genes, settings=settings, rng=rng)


__all__ = ["PathwayMaps", "build_simulator", "generate_pathway"]
