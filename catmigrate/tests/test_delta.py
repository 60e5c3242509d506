"""Tests for pullback (Delta) migrations along plain functors."""

import pytest

from catmigrate.errors import AritySizeMismatch, NonFunctorial, SchemaMismatch
from catmigrate.instance import Instance, coproduct, cycle_graph, empty_graph
from catmigrate.mapping import Functor
from catmigrate.migration import DeltaMigration, delta, migrate, migrate_into
from catmigrate.schema import (
    DDS,
    GRAPH,
    LABELED_DDS,
    REFLEXIVE_GRAPH,
    WEIGHTED_GRAPH,
    Equation,
    Hom,
    Path,
    Schema,
)


def make_dds(phi):
    dds = Instance(DDS)
    dds.add_parts("X", len(phi), phi=phi)
    return dds


DDS_TO_GRAPH = {"V": "X", "E": "X"}
DDS_TO_GRAPH_HOMS = {"src": {"id": "X"}, "tgt": "phi"}


def test_identity_migration():
    """Test that migrating along the identity returns an equal instance."""
    h = cycle_graph(3)
    assert migrate(GRAPH, h, {"V": "V", "E": "E"}, {"src": "src", "tgt": "tgt"}) == h
    assert migrate(GRAPH, h, Functor.identity(GRAPH)) == h


def test_dds_to_graph():
    """Test viewing a dynamical system as its graph of transitions."""
    dds = make_dds([1, 2, 0])
    assert migrate(GRAPH, dds, DDS_TO_GRAPH, DDS_TO_GRAPH_HOMS) == cycle_graph(3)


def test_migrate_into_is_coproduct():
    """Test that merging in place appends a disjoint copy."""
    dds = make_dds([1, 2, 0])
    h = cycle_graph(3)
    h2 = h.copy()
    result = migrate_into(h2, dds, DDS_TO_GRAPH, DDS_TO_GRAPH_HOMS)
    assert result is h2
    assert h2 == coproduct(h, h)


def test_advance_four_steps():
    """Test that phi^4 equals phi on a 3-cycle."""
    dds = make_dds([1, 2, 0])
    assert migrate(DDS, dds, {"X": "X"}, {"phi": ["phi", "phi", "phi", "phi"]}) == dds


def test_labeled_dds_to_weighted_graph():
    """Test migrating attributes along composite paths."""
    ldds = Instance(LABELED_DDS)
    ldds.add_parts("X", 4, phi=[1, 2, 3, 0], label=[100, 101, 102, 103])

    wg = Instance(WEIGHTED_GRAPH)
    wg.add_parts("V", 4)
    wg.add_parts("E", 4, src=[0, 1, 2, 3], tgt=[1, 2, 3, 0], weight=[101, 102, 103, 100])

    functor = Functor(
        dom=WEIGHTED_GRAPH,
        codom=LABELED_DDS,
        ob_map={"V": "X", "E": "X", "Weight": "Label"},
        hom_map={"src": {"id": "X"}, "tgt": "phi", "weight": ["phi", "label"]},
    )
    assert delta(functor)(ldds) == wg
    assert migrate(WEIGHTED_GRAPH, ldds, functor) == wg
    assert migrate(LABELED_DDS, ldds, Functor.identity(LABELED_DDS)) == ldds


def test_composition():
    """Test that migrating along F then G equals migrating along their composite."""
    to_graph = Functor(dom=GRAPH, codom=DDS, ob_map=DDS_TO_GRAPH, hom_map=DDS_TO_GRAPH_HOMS)
    square = Functor(dom=DDS, codom=DDS, ob_map={"X": "X"}, hom_map={"phi": ["phi", "phi"]})
    dds = make_dds([1, 2, 3, 4, 0])

    stepwise = DeltaMigration(to_graph)(DeltaMigration(square)(dds))
    composite = DeltaMigration(to_graph.compose(square))(dds)
    assert stepwise == composite
    assert composite["tgt"] == [2, 3, 4, 0, 1]


def test_rejects_ill_typed_functor():
    """Test construction-time validation of functors."""
    with pytest.raises(AritySizeMismatch):
        DeltaMigration(Functor(dom=GRAPH, codom=LABELED_DDS, ob_map=DDS_TO_GRAPH,
                               hom_map={"src": {"id": "X"}, "tgt": ["phi", "label"]}))
    with pytest.raises(SchemaMismatch):
        DeltaMigration(Functor(dom=GRAPH, codom=DDS, ob_map={"V": "X"},
                               hom_map=DDS_TO_GRAPH_HOMS))
    with pytest.raises(SchemaMismatch):
        DeltaMigration(Functor(dom=GRAPH, codom=DDS, ob_map={"V": "X", "E": "Y"},
                               hom_map=DDS_TO_GRAPH_HOMS))


def test_rejects_functor_breaking_equations():
    """Test that equations of the domain must hold in the codomain."""
    involution = DDS.extend(
        name="Involution",
        equations=[Equation(lhs=Path.of("phi", "phi"), rhs=Path.identity("X"))],
    )
    with pytest.raises(NonFunctorial):
        DeltaMigration(Functor(dom=involution, codom=DDS, ob_map={"X": "X"}, hom_map={"phi": "phi"}))
    # Sending phi to the identity does satisfy it
    trivial = DeltaMigration(
        Functor(dom=involution, codom=DDS, ob_map={"X": "X"}, hom_map={"phi": {"id": "X"}})
    )
    assert trivial(make_dds([1, 0]))["phi"] == [0, 1]


def test_equation_with_identity_side_is_preserved():
    """Test a functor whose equation holds only through an identity-sided equation."""
    two_loops = Schema(
        name="TwoLoops",
        obs=("A",),
        homs=(Hom(name="f", dom="A", codom="A"), Hom(name="g", dom="A", codom="A")),
        equations=(Equation(lhs=Path.of("f"), rhs=Path.of("g")),),
    )
    functor = Functor(
        dom=two_loops,
        codom=REFLEXIVE_GRAPH,
        ob_map={"A": "V"},
        hom_map={"f": {"id": "V"}, "g": ["refl", "src"]},
    )
    h = DeltaMigration(functor)(cycle_graph(3, REFLEXIVE_GRAPH))
    assert h.nparts("A") == 3
    assert h["f"] == h["g"] == [0, 1, 2]

    swapped = Functor(
        dom=two_loops,
        codom=REFLEXIVE_GRAPH,
        ob_map={"A": "V"},
        hom_map={"f": ["refl", "tgt"], "g": {"id": "V"}},
    )
    assert DeltaMigration(swapped)(cycle_graph(3, REFLEXIVE_GRAPH))["f"] == [0, 1, 2]


def test_rejects_instance_of_wrong_schema():
    """Test that the instance must live over the functor's codomain."""
    migration = DeltaMigration(Functor.identity(DDS))
    with pytest.raises(SchemaMismatch):
        migration(empty_graph(2))
