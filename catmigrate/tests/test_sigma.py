"""Tests for pushforward (Sigma) migrations."""

import pytest

from catmigrate.errors import NonFunctorial, SchemaMismatch, UnreachableMorphism
from catmigrate.instance import Instance, path_graph
from catmigrate.mapping import Functor
from catmigrate.migration import SigmaMigration, UnionFind, sigma
from catmigrate.schema import (
    BIPARTITE_GRAPH,
    DDS,
    GRAPH,
    LABELED_DDS,
    POINT,
    REFLEXIVE_GRAPH,
    SPAN,
    Attr,
    Hom,
    Schema,
)

BIPARTITE_TO_GRAPH = Functor(
    dom=BIPARTITE_GRAPH,
    codom=GRAPH,
    ob_map={"V1": "V", "V2": "V", "E": "E"},
    hom_map={"src": "src", "tgt": "tgt"},
)

SPAN_TO_POINT = Functor(
    dom=SPAN,
    codom=POINT,
    ob_map={"L1": "I", "L2": "I", "A": "I"},
    hom_map={"l1": {"id": "I"}, "l2": {"id": "I"}},
)


def bipartite_example():
    X = Instance(BIPARTITE_GRAPH)
    X.add_parts("V1", 4)
    X.add_parts("V2", 3)
    X.add_parts("E", 4, src=[0, 1, 1, 2], tgt=[0, 0, 1, 2])
    return X


def span_example():
    X = Instance(SPAN)
    X.add_parts("L1", 3)
    X.add_parts("L2", 4)
    X.add_parts("A", 3, l1=[0, 0, 1], l2=[0, 1, 2])
    return X


def test_union_find():
    """Test merging and class numbering of the disjoint-set forest."""
    uf = UnionFind(5)
    assert uf.union(3, 1) is not None
    assert uf.union(1, 3) is None
    uf.union(4, 2)
    assert uf.find(1) == uf.find(3)
    numbering = uf.classes()
    assert [numbering[uf.find(x)] for x in range(5)] == [0, 1, 2, 1, 2]
    assert uf.add() == 5
    assert len(uf) == 6


def test_sigma_of_empty_instance():
    """Test that nothing is created from nothing."""
    Y = SigmaMigration(BIPARTITE_TO_GRAPH)(Instance(BIPARTITE_GRAPH))
    assert (Y.nparts("V"), Y.nparts("E")) == (0, 0)


def test_sigma_keeps_unrelated_rows_apart():
    """Test that two source objects sent to one target object are not merged."""
    Y = SigmaMigration(BIPARTITE_TO_GRAPH)(bipartite_example())
    assert Y.nparts("V") == 7
    assert Y.nparts("E") == 4
    assert not set(Y["src"]) & set(Y["tgt"])
    assert Y["src"] == [0, 1, 1, 2]
    assert Y["tgt"] == [4, 4, 5, 6]


def test_sigma_identity():
    """Test that pushing along the identity returns an equal instance."""
    Y = SigmaMigration(BIPARTITE_TO_GRAPH)(bipartite_example())
    assert sigma(Functor.identity(GRAPH))(Y) == Y


def test_sigma_span_to_point():
    """Test the quotient of a span by its legs."""
    Y = SigmaMigration(SPAN_TO_POINT)(span_example())
    assert Y.nparts("I") == 4


def test_sigma_point_to_vertices_and_edges():
    """Test pushing points to vertices and to freely generated edges."""
    Y = SigmaMigration(SPAN_TO_POINT)(span_example())

    vertex = Functor(dom=POINT, codom=GRAPH, ob_map={"I": "V"})
    Z = sigma(vertex)(Y)
    assert (Z.nparts("V"), Z.nparts("E")) == (4, 0)

    edge = Functor(dom=POINT, codom=GRAPH, ob_map={"I": "E"})
    Z = sigma(edge)(Y)
    assert (Z.nparts("V"), Z.nparts("E")) == (8, 4)
    assert sorted(set(Z["src"]) | set(Z["tgt"])) == list(range(8))


def test_sigma_free_reflexive_graph():
    """Test that target equations identify generated rows."""
    inclusion = Functor(
        dom=GRAPH,
        codom=REFLEXIVE_GRAPH,
        ob_map={"V": "V", "E": "E"},
        hom_map={"src": "src", "tgt": "tgt"},
    )
    Y = sigma(inclusion)(path_graph(3))
    assert (Y.nparts("V"), Y.nparts("E")) == (3, 5)
    assert Y["refl"] == [2, 3, 4]
    assert Y["src"] == [0, 1, 0, 1, 2]
    assert Y["tgt"] == [1, 2, 0, 1, 2]


def test_sigma_pushes_attributes():
    """Test attribute values along the pushforward."""
    labeled_point = Schema(
        name="LabeledPoint",
        obs=("I",),
        attrtypes=("Label",),
        attrs=(Attr(name="label", dom="I", codom="Label"),),
    )
    collapse = Functor(
        dom=LABELED_DDS,
        codom=labeled_point,
        ob_map={"X": "I", "Label": "Label"},
        hom_map={"phi": {"id": "I"}, "label": "label"},
    )
    X = Instance(LABELED_DDS)
    X.add_parts("X", 3, phi=[1, 0, 2], label=["a", "a", "b"])
    Y = sigma(collapse)(X)
    assert Y.nparts("I") == 2
    assert Y["label"] == ["a", "b"]

    X = Instance(LABELED_DDS)
    X.add_parts("X", 2, phi=[1, 0], label=["a", "b"])
    with pytest.raises(NonFunctorial):
        sigma(collapse)(X)


def test_sigma_unlabeled_generated_rows():
    """Test that attributes of generated rows are left empty."""
    weighted = GRAPH.extend(
        name="VertexWeightedGraph",
        attrtypes=["Weight"],
        attrs=[Attr(name="weight", dom="V", codom="Weight")],
    )
    edge = Functor(dom=POINT, codom=weighted, ob_map={"I": "E"})
    X = Instance(POINT)
    X.add_parts("I", 1)
    Y = sigma(edge)(X)
    assert Y["weight"] == [None, None]


def test_sigma_rejects_infinite_generation():
    """Test that unbounded free generation is reported."""
    point_to_dds = Functor(dom=POINT, codom=DDS, ob_map={"I": "X"})
    with pytest.raises(UnreachableMorphism):
        SigmaMigration(point_to_dds)

    arrow = Schema(name="Arrow", obs=("A", "B"), homs=(Hom(name="g", dom="A", codom="B"),))
    step = Functor(dom=arrow, codom=DDS, ob_map={"A": "X", "B": "X"}, hom_map={"g": "phi"})
    X = Instance(arrow)
    X.add_parts("B", 1)
    X.add_parts("A", 1, g=[0])
    with pytest.raises(UnreachableMorphism):
        SigmaMigration(step, max_rows=50)(X)


def test_sigma_validation():
    """Test construction-time and call-time checks."""
    with pytest.raises(SchemaMismatch):
        SigmaMigration(Functor(dom=SPAN, codom=POINT, ob_map={"L1": "I"}))
    with pytest.raises(SchemaMismatch):
        SigmaMigration(SPAN_TO_POINT)(path_graph(2))


def test_sigma_row_bound_ignores_source_rows():
    """Test that only freely generated rows count against the bound."""
    Y = SigmaMigration(BIPARTITE_TO_GRAPH, max_rows=2)(bipartite_example())
    assert (Y.nparts("V"), Y.nparts("E")) == (7, 4)

    edge = Functor(dom=POINT, codom=GRAPH, ob_map={"I": "E"})
    X = Instance(POINT)
    X.add_parts("I", 2)
    assert SigmaMigration(edge, max_rows=4)(X).nparts("V") == 4
    with pytest.raises(UnreachableMorphism):
        SigmaMigration(edge, max_rows=3)(X)
