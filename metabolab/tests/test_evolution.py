import numpy as np
import pytest
from scipy.stats import binomtest

from metabolab.config import EvolutionSettings
from metabolab.simulation.entities import Enzyme, Gene, Molecule, Reaction, RegulatoryElement
from metabolab.simulation.evolution import (
    MAX_BOOST,
    MIN_BOOST,
    EvolutionSystem,
    FitnessBreakdown,
    resolve_competition,
)
from metabolab.simulation.kinetics import update_reaction_state
from metabolab.simulation.snapshot import SimulationSnapshot


def _live_snapshot(molecules, enzymes, genes) -> SimulationSnapshot:
    concentrations = {name: molecule.concentration for name, molecule in molecules.items()}
    for enzyme in enzymes.values():
        for reaction in enzyme.reactions:
            update_reaction_state(reaction, concentrations, enzyme.concentration)
    return SimulationSnapshot.capture(molecules, enzymes, genes)


def _twin_network(concentrations=(0.05, 0.05)):
    molecules = {"A": Molecule(name="A", concentration=2.0), "B": Molecule(name="B", concentration=0.2)}
    enzymes = {
        f"E{index}": Enzyme(
            id=f"E{index}",
            name=f"E{index}",
            concentration=conc,
            reactions=[
                Reaction(id=f"R{index}", name="A -> B", substrates={"A": 1.0}, products={"B": 1.0}, vmax=5.0, delta_g=-10.0)
            ],
        )
        for index, conc in enumerate(concentrations)
    }
    genes = {enzyme_id: Gene(enzyme_id=enzyme_id, basal_rate=0.002) for enzyme_id in enzymes}
    return molecules, enzymes, genes


def test_fitness_scores_are_bounded(simulator):
    simulator.refresh_rates()
    fitness = EvolutionSystem().calculate_fitness(simulator.snapshot())

    assert set(fitness) == set(simulator.enzymes)
    for breakdown in fitness.values():
        for value in breakdown.as_dict().values():
            assert 0.0 <= value <= 1.0


def test_regulation_score_rewards_responsive_and_penalises_crowding():
    concentrations = {"M": 1.0, "N": 1000.0}
    assert EvolutionSystem._regulation_score(None, concentrations) == pytest.approx(0.3)

    responsive = Gene(enzyme_id="E", activators=[RegulatoryElement(molecule_name="M", kd=1.0)])
    assert EvolutionSystem._regulation_score(responsive, concentrations) == pytest.approx(0.65)

    crowded = Gene(enzyme_id="E", repressors=[RegulatoryElement(molecule_name="N", kd=1.0) for _ in range(5)])
    assert EvolutionSystem._regulation_score(crowded, concentrations) == pytest.approx(0.3)


def test_elimination_threshold_scales_with_population():
    system = EvolutionSystem(EvolutionSettings(elimination_threshold=0.2, enzyme_cap=20, threshold_step=0.02))
    assert system.elimination_threshold(10) == pytest.approx(0.2)
    assert system.elimination_threshold(25) == pytest.approx(0.3)
    assert system.elimination_threshold(200) == pytest.approx(0.5)


def test_elimination_respects_minimum_population_and_protected_enzymes():
    molecules = {"A": Molecule(name="A", concentration=1.0), "B": Molecule(name="B", concentration=1.0)}
    enzymes = {
        "E_source": Enzyme(
            id="E_source", name="source", concentration=0.0,
            reactions=[Reaction(id="R_source", name="-> A", products={"A": 1.0})],
        ),
        "E_sink": Enzyme(
            id="E_sink", name="sink", concentration=0.0,
            reactions=[Reaction(id="R_sink", name="B ->", substrates={"B": 1.0})],
        ),
    }
    for index in range(4):
        enzymes[f"E{index}"] = Enzyme(
            id=f"E{index}",
            name=f"E{index}",
            concentration=0.0,
            reactions=[Reaction(id=f"R{index}", name="A -> B", substrates={"A": 1.0}, products={"B": 1.0})],
        )
    snapshot = _live_snapshot(molecules, enzymes, {})
    settings = EvolutionSettings(min_enzymes=3, boost_rate=0.0, competition_rate=0.0, adaptive_rate=0.0)
    system = EvolutionSystem(settings, np.random.default_rng(0))
    for _ in range(settings.min_history):
        system.record_fitness(system.calculate_fitness(snapshot))

    result = system.calculate(snapshot, 1.0)

    assert len(result.eliminations) == len(enzymes) - settings.min_enzymes
    assert "E_source" not in result.eliminations
    assert "E_sink" not in result.eliminations


def test_no_elimination_without_fitness_history():
    molecules, enzymes, genes = _twin_network(concentrations=(0.0, 0.0))
    enzymes["E2"] = Enzyme(id="E2", name="E2", reactions=[Reaction(id="R2", name="B -> A", substrates={"B": 1.0}, products={"A": 1.0})])
    enzymes["E3"] = Enzyme(id="E3", name="E3", reactions=[Reaction(id="R3", name="B -> C", substrates={"B": 1.0}, products={"C": 1.0})])
    system = EvolutionSystem(EvolutionSettings(min_enzymes=1), np.random.default_rng(0))
    result = system.calculate(_live_snapshot(molecules, enzymes, genes), 1.0)
    assert result.eliminations == ()


def test_redundant_enzyme_is_flagged():
    molecules, enzymes, genes = _twin_network(concentrations=(0.5, 0.01))
    snapshot = _live_snapshot(molecules, enzymes, genes)
    system = EvolutionSystem()
    totals = {"E0": 0.8, "E1": 0.4}
    assert system._is_redundant(snapshot.enzymes["E1"], snapshot, totals)
    assert not system._is_redundant(snapshot.enzymes["E0"], snapshot, totals)


def test_boost_factor_is_clamped():
    system = EvolutionSystem(EvolutionSettings(boost_threshold=0.7))
    assert system.boost_factor(0.7) == pytest.approx(MIN_BOOST)
    assert system.boost_factor(1.0) == pytest.approx(MAX_BOOST)
    assert system.boost_factor(0.85) == pytest.approx((MIN_BOOST + MAX_BOOST) / 2)
    assert system.boost_factor(0.1) == pytest.approx(MIN_BOOST)


def test_competition_winner_probability_matches_fitness_ratio():
    rng = np.random.default_rng(2024)
    first_fitness, second_fitness = 0.62, 0.55
    trials = 4000
    wins = sum(
        resolve_competition("E0", "E1", first_fitness, second_fitness, rng).winner == "E0" for _ in range(trials)
    )
    expected = first_fitness / (first_fitness + second_fitness)
    assert binomtest(wins, trials, expected).pvalue > 0.001


def test_twin_enzymes_compete_and_loser_is_marked():
    molecules, enzymes, genes = _twin_network()
    snapshot = _live_snapshot(molecules, enzymes, genes)
    settings = EvolutionSettings(competition_rate=100.0, boost_rate=0.0, adaptive_rate=0.0)
    result = EvolutionSystem(settings, np.random.default_rng(8)).calculate(snapshot, 1.0)

    (event,) = result.competitions
    assert {event.winner, event.loser} == {"E0", "E1"}
    assert result.competition_losses == (event.loser,)
    assert result.eliminations == ()


def test_calculate_is_repeatable_and_does_not_touch_history():
    molecules, enzymes, genes = _twin_network()
    snapshot = _live_snapshot(molecules, enzymes, genes)
    settings = EvolutionSettings(competition_rate=0.5, boost_rate=0.5, adaptive_rate=0.5)
    first_system = EvolutionSystem(settings, np.random.default_rng(3))
    second_system = EvolutionSystem(settings, np.random.default_rng(3))

    assert first_system.calculate(snapshot, 1.0) == second_system.calculate(snapshot, 1.0)
    assert first_system.history_length("E0") == 0


def test_rolling_average_window():
    system = EvolutionSystem(EvolutionSettings(fitness_window=3))
    for value in (0.1, 0.2, 0.3, 0.4):
        breakdown = FitnessBreakdown("E0", 0, 0, 0, 0, 0, value)
        system.record_fitness({"E0": breakdown})
    assert system.history_length("E0") == 3
    assert system.rolling_average("E0") == pytest.approx(0.3)
    assert system.rolling_average("E0", 0.7) == pytest.approx((0.3 + 0.4 + 0.7) / 3)
    assert system.rolling_average("missing") is None


def test_lineage_generations_and_deaths():
    system = EvolutionSystem()
    system.register_birth("E0", None, 0.0)
    system.register_birth("E1", "E0", 1.0)
    system.register_birth("E2", "E1", 2.0)
    system.register_death("E1", 3.0)

    lineage = system.lineage
    assert lineage["E2"].generation == 2
    assert lineage["E1"].death_time == 3.0
    assert not lineage["E1"].is_alive
    assert system.descendants("E0") == ["E1", "E2"]
    stats = system.stats()
    assert stats["max_generation"] == 2.0
    assert stats["living_lineages"] == 2.0


def test_lineage_reconcile_follows_replaced_enzyme_set():
    system = EvolutionSystem()
    system.register_birth("E0", None, 0.0)
    system.register_birth("E1", "E0", 1.0)
    system.register_death("E0", 2.0)
    system.record_fitness({"E1": FitnessBreakdown("E1", 0, 0, 0, 0, 0, 0.5)})

    system.reconcile(["E0", "E5"], 4.0)

    lineage = system.lineage
    assert lineage["E0"].is_alive
    assert lineage["E1"].death_time == 4.0
    assert lineage["E5"].generation == 0 and lineage["E5"].birth_time == 4.0
    assert system.history_length("E1") == 0
    assert system.stats()["living_lineages"] == 2.0


def test_boosts_need_current_and_rolling_fitness_above_threshold():
    molecules, enzymes, genes = _twin_network()
    snapshot = SimulationSnapshot.capture(molecules, enzymes, genes)
    system = EvolutionSystem(EvolutionSettings(boost_threshold=0.7, boost_rate=100.0), np.random.default_rng(3))

    boosts = system._select_boosts(snapshot, {"E0": 0.9, "E1": 0.9}, {"E0": 0.8, "E1": 0.6}, set(), 1.0)
    assert set(boosts) == {"E0"}
    assert boosts["E0"] == pytest.approx(system.boost_factor(0.9))

    assert system._select_boosts(snapshot, {"E0": 0.6, "E1": 0.6}, {"E0": 0.9, "E1": 0.9}, set(), 1.0) == {}
    assert system._select_boosts(snapshot, {"E0": 0.9, "E1": 0.9}, {"E0": 0.8, "E1": 0.8}, {"E0", "E1"}, 1.0) == {}


def test_adaptive_regulation_follows_fitness_direction():
    molecules, enzymes, genes = _twin_network(concentrations=(0.05, 0.05, 0.05))
    snapshot = SimulationSnapshot.capture(molecules, enzymes, genes)
    settings = EvolutionSettings(adaptive_rate=100.0, adaptive_high_fitness=0.65, adaptive_low_fitness=0.3)
    system = EvolutionSystem(settings, np.random.default_rng(5))

    adjustments = system._adaptive_regulation(snapshot, {"E0": 0.9, "E1": 0.1, "E2": 0.5}, set(), 1.0)

    assert set(adjustments) == {"E0", "E1"}
    assert 0.002 * 1.02 <= adjustments["E0"] <= 0.002 * 1.1
    assert 0.002 * 0.9 <= adjustments["E1"] <= 0.002 * 0.98
