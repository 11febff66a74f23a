import math

import pytest

from metabolab.simulation.entities import (
    Enzyme,
    Gene,
    Molecule,
    Reaction,
    RegulatoryElement,
    index_by_key,
    validate_enzyme_reactions,
)


def test_molecule_concentration_never_negative_and_resets():
    molecule = Molecule(name="ATP", concentration=3.0)
    molecule.set_concentration(-1.0)
    assert molecule.concentration == 0.0
    molecule.reset()
    assert molecule.concentration == pytest.approx(3.0)
    assert Molecule(name="X", concentration=-2.0).concentration == 0.0


def test_reaction_source_and_sink_flags():
    source = Reaction(id="R0", name="-> A", products={"A": 1.0})
    sink = Reaction(id="R1", name="A ->", substrates={"A": 1.0})
    internal = Reaction(id="R2", name="A -> B", substrates={"A": 1.0}, products={"B": 1.0})

    assert source.is_source and not source.is_sink
    assert sink.is_sink and not sink.is_source
    assert not internal.is_source and not internal.is_sink
    assert internal.molecules == frozenset({"A", "B"})


def test_enzyme_degradation_rate_follows_half_life():
    enzyme = Enzyme(id="E", name="E", half_life=600.0)
    assert enzyme.degradation_rate == pytest.approx(math.log(2) / 600.0)
    assert Enzyme(id="S", name="S", is_degradable=False).degradation_rate == 0.0
    assert Enzyme(id="Z", name="Z", half_life=0.0).degradation_rate == 0.0


def test_validation_accepts_disjoint_reactions():
    reactions = [
        Reaction(id="R1", name="A -> B", substrates={"A": 1.0}, products={"B": 1.0}),
        Reaction(id="R2", name="C -> D", substrates={"C": 1.0}, products={"D": 1.0}),
    ]
    result = validate_enzyme_reactions(reactions)
    assert result.valid
    assert result.reason == ""


def test_validation_rejects_overlap_and_suggests_split():
    reactions = [
        Reaction(id="R1", name="A -> B", substrates={"A": 1.0}, products={"B": 1.0}),
        Reaction(id="R2", name="B -> C", substrates={"B": 1.0}, products={"C": 1.0}),
        Reaction(id="R3", name="D -> E", substrates={"D": 1.0}, products={"E": 1.0}),
    ]
    result = Enzyme(id="E", name="E", reactions=reactions).validate()

    assert not result.valid
    assert "R1/R2 share B" in result.reason
    assert result.suggestion == "split into separate enzymes: [R1, R3]; [R2]"


def test_validation_rejects_duplicate_reaction_ids():
    reactions = [
        Reaction(id="R1", name="A -> B", substrates={"A": 1.0}, products={"B": 1.0}),
        Reaction(id="R1", name="C -> D", substrates={"C": 1.0}, products={"D": 1.0}),
    ]
    result = validate_enzyme_reactions(reactions)
    assert not result.valid
    assert "more than once" in result.reason


def test_modulation_factor_is_clamped():
    plain = Enzyme(id="E0", name="plain")
    assert plain.modulation_factor({"I": 5.0}) == 1.0

    inhibited = Enzyme(id="E1", name="inhibited", inhibitors={"I": 0.001})
    assert inhibited.modulation_factor({"I": 10.0}) == pytest.approx(Enzyme.MIN_MODULATION)

    activated = Enzyme(id="E2", name="activated", activators={"A": 1.0})
    assert activated.modulation_factor({"A": 1.0}) == pytest.approx(1.5)

    doubly = Enzyme(id="E3", name="doubly", activators={"A": 1.0, "B": 1.0})
    assert doubly.modulation_factor({"A": 1.0, "B": 1.0}) == pytest.approx(Enzyme.MAX_MODULATION)

    mixed = Enzyme(id="E4", name="mixed", inhibitors={"I": 1.0}, activators={"A": 1.0})
    assert mixed.modulation_factor({"I": 1.0, "A": 1.0}) == pytest.approx(0.75)


def test_regulatory_occupancy_is_half_at_kd():
    element = RegulatoryElement(molecule_name="M", kd=2.0, hill_coefficient=2.0)
    assert element.occupancy(2.0) == pytest.approx(0.5)
    assert element.occupancy(0.0) == 0.0
    assert element.occupancy(-1.0) == 0.0
    assert element.occupancy(200.0) > 0.99


def test_gene_regulator_bookkeeping():
    gene = Gene(enzyme_id="E1")
    assert gene.is_constitutive
    gene.activators.append(RegulatoryElement(molecule_name="A"))
    gene.repressors.append(RegulatoryElement(molecule_name="B"))
    assert gene.regulator_count == 2
    assert gene.regulator_molecules() == frozenset({"A", "B"})


def test_enzyme_record_preserves_reactions_and_modulators():
    enzyme = Enzyme(
        id="E1",
        name="E1",
        concentration=0.2,
        half_life=120.0,
        reactions=[Reaction(id="R1", name="A -> B", substrates={"A": 1.0}, products={"B": 2.0}, vmax=3.0)],
        inhibitors={"C": 0.4},
    )
    restored = Enzyme.from_record(enzyme.to_record())

    assert restored.concentration == pytest.approx(0.2)
    assert restored.initial_concentration == pytest.approx(0.2)
    assert restored.reactions[0].products == {"B": 2.0}
    assert restored.reactions[0].vmax == pytest.approx(3.0)
    assert restored.inhibitors == {"C": 0.4}


def test_index_by_key():
    molecules = [Molecule(name="A"), Molecule(name="B")]
    assert list(index_by_key(molecules, "name")) == ["A", "B"]
