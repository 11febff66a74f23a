import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import numpy as np
import pytest

from metabolab.config import EvolutionSettings, MutationSettings, SimulationSettings
from metabolab.simulation import CategoryLocks, Enzyme, Gene, Molecule, Reaction, RegulatoryElement, Simulator


def quiet_settings(**overrides) -> SimulationSettings:
    """Settings with every stochastic event switched off."""

    mutation = MutationSettings(
        point_mutation_rate=0.0,
        duplication_rate=0.0,
        novel_enzyme_rate=0.0,
        regulatory_mutation_rate=0.0,
    )
    evolution = EvolutionSettings(boost_rate=0.0, competition_rate=0.0, adaptive_rate=0.0)
    values = {"mutation": mutation, "evolution": evolution}
    values.update(overrides)
    return SimulationSettings(**values)


@pytest.fixture()
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture()
def linear_network() -> tuple[dict[str, Molecule], dict[str, Enzyme], dict[str, Gene]]:
    """Source -> A -> B -> C -> sink with a repressed middle enzyme."""

    molecules = {
        name: Molecule(name=name, concentration=conc, structural_code=code)
        for name, conc, code in (
            ("A", 2.0, [1, 2, 3, 4]),
            ("B", 0.5, [1, 2, 3, 5]),
            ("C", 0.1, [7, 2, 3, 5]),
        )
    }
    enzymes = {
        "E_source": Enzyme(
            id="E_source",
            name="Source",
            concentration=0.05,
            is_degradable=False,
            reactions=[Reaction(id="R_source", name="-> A", products={"A": 1.0}, vmax=1.0, is_irreversible=True)],
        ),
        "E1": Enzyme(
            id="E1",
            name="A to B",
            concentration=0.05,
            reactions=[Reaction(id="R1", name="A -> B", substrates={"A": 1.0}, products={"B": 1.0}, vmax=5.0, delta_g=-8.0)],
        ),
        "E2": Enzyme(
            id="E2",
            name="B to C",
            concentration=0.05,
            reactions=[Reaction(id="R2", name="B -> C", substrates={"B": 1.0}, products={"C": 1.0}, vmax=4.0, delta_g=-3.0)],
        ),
        "E_sink": Enzyme(
            id="E_sink",
            name="Sink",
            concentration=0.05,
            is_degradable=False,
            reactions=[Reaction(id="R_sink", name="C ->", substrates={"C": 1.0}, vmax=1.5, is_irreversible=True)],
        ),
    }
    genes = {
        "E1": Gene(enzyme_id="E1", basal_rate=0.002),
        "E2": Gene(enzyme_id="E2", basal_rate=0.002),
    }
    genes["E2"].repressors.append(RegulatoryElement(molecule_name="C", kd=0.5, max_fold_change=4.0))
    return molecules, enzymes, genes


@pytest.fixture()
def simulator(linear_network) -> Simulator:
    molecules, enzymes, genes = linear_network
    return Simulator(molecules, enzymes, genes, settings=quiet_settings(), seed=7)


@pytest.fixture()
def locks() -> CategoryLocks:
    return CategoryLocks()


@pytest.fixture()
def make_settings():
    return quiet_settings
