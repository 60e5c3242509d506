"""Commonly used schemas: graphs and their variants, dynamical systems, spans."""

from .presentation import Attr, Equation, Hom, Path, Schema

GRAPH = Schema(
    name="Graph",
    obs=("V", "E"),
    homs=(Hom(name="src", dom="E", codom="V"), Hom(name="tgt", dom="E", codom="V")),
)

# Every vertex carries a distinguished loop.
REFLEXIVE_GRAPH = GRAPH.extend(
    name="ReflexiveGraph",
    homs=[Hom(name="refl", dom="V", codom="E")],
    equations=[
        Equation(lhs=Path.of("refl", "src"), rhs=Path.identity("V")),
        Equation(lhs=Path.of("refl", "tgt"), rhs=Path.identity("V")),
    ],
)

# Every edge is paired with its reverse.
SYMMETRIC_GRAPH = GRAPH.extend(
    name="SymmetricGraph",
    homs=[Hom(name="inv", dom="E", codom="E")],
    equations=[
        Equation(lhs=Path.of("inv", "inv"), rhs=Path.identity("E")),
        Equation(lhs=Path.of("inv", "src"), rhs=Path.of("tgt")),
        Equation(lhs=Path.of("inv", "tgt"), rhs=Path.of("src")),
    ],
)

WEIGHTED_GRAPH = GRAPH.extend(
    name="WeightedGraph",
    attrtypes=["Weight"],
    attrs=[Attr(name="weight", dom="E", codom="Weight")],
)

# Discrete dynamical system: a set with an endomap.
DDS = Schema(name="DDS", obs=("X",), homs=(Hom(name="phi", dom="X", codom="X"),))

LABELED_DDS = DDS.extend(
    name="LabeledDDS",
    attrtypes=["Label"],
    attrs=[Attr(name="label", dom="X", codom="Label")],
)

BIPARTITE_GRAPH = Schema(
    name="UndirectedBipartiteGraph",
    obs=("V1", "V2", "E"),
    homs=(Hom(name="src", dom="E", codom="V1"), Hom(name="tgt", dom="E", codom="V2")),
)

SPAN = Schema(
    name="Span",
    obs=("L1", "L2", "A"),
    homs=(Hom(name="l1", dom="A", codom="L1"), Hom(name="l2", dom="A", codom="L2")),
)

POINT = Schema(name="Point", obs=("I",))
