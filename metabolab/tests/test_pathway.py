import numpy as np
import pytest

from metabolab.config import PathwayConfig
from metabolab.simulation import build_simulator, generate_pathway


@pytest.mark.parametrize("topology", ["linear", "branched", "cyclic", "random"])
def test_generated_pathway_is_consistent(topology):
    config = PathwayConfig(num_molecules=7, num_enzymes=6, topology=topology)
    molecules, enzymes, genes = generate_pathway(config, np.random.default_rng(0))

    assert len(molecules) == 7
    internal = [enzyme for enzyme_id, enzyme in enzymes.items() if enzyme_id not in {"E_source", "E_sink"}]
    assert 1 <= len(internal) <= 6
    assert set(genes) == {enzyme.id for enzyme in internal}
    for enzyme in enzymes.values():
        assert enzyme.validate().valid
        assert enzyme.molecules <= set(molecules)
        for reaction in enzyme.reactions:
            assert reaction.vmax > 0.0 and reaction.km > 0.0
            assert 0.0 < reaction.reaction_efficiency <= 1.0


def test_linear_chain_with_source_and_sink():
    config = PathwayConfig(num_molecules=4, num_enzymes=3, topology="linear")
    molecules, enzymes, _ = generate_pathway(config, np.random.default_rng(1))

    assert [enzymes[f"E{index}"].reactions[0].name for index in range(3)] == ["M0 -> M1", "M1 -> M2", "M2 -> M3"]
    assert enzymes["E_source"].is_source and not enzymes["E_source"].is_degradable
    assert enzymes["E_sink"].is_sink
    assert enzymes["E_source"].reactions[0].products == {"M0": 1.0}
    assert enzymes["E_sink"].reactions[0].substrates == {"M3": 1.0}


def test_cyclic_closes_the_loop():
    config = PathwayConfig(num_molecules=4, num_enzymes=4, topology="cyclic", include_source=False, include_sink=False)
    _, enzymes, _ = generate_pathway(config, np.random.default_rng(2))
    assert enzymes["E3"].reactions[0].substrates == {"M3": 1.0}
    assert enzymes["E3"].reactions[0].products == {"M0": 1.0}
    assert "E_source" not in enzymes


def test_branched_pathway_splits_at_hub():
    config = PathwayConfig(num_molecules=7, num_enzymes=6, topology="branched", include_source=False, include_sink=False)
    _, enzymes, _ = generate_pathway(config, np.random.default_rng(3))
    consumers_of_hub = [
        enzyme_id for enzyme_id, enzyme in enzymes.items() if "M3" in enzyme.reactions[0].substrates
    ]
    assert len(consumers_of_hub) == 2


def test_same_seed_same_pathway():
    config = PathwayConfig(topology="random", num_molecules=5, num_enzymes=5)
    first = generate_pathway(config, np.random.default_rng(7))
    second = generate_pathway(config, np.random.default_rng(7))
    assert first == second


def test_build_simulator_registers_every_enzyme():
    simulator = build_simulator(PathwayConfig(num_molecules=5, num_enzymes=4), seed=3)
    assert set(simulator.evolution_system.lineage) == set(simulator.enzymes)
    assert simulator.time == 0.0
