"""Schema presentations and the standard schemas built from them."""

from .presentation import Attr, Equation, Hom, Path, Schema, as_path
from .standard import (
    BIPARTITE_GRAPH,
    DDS,
    GRAPH,
    LABELED_DDS,
    POINT,
    REFLEXIVE_GRAPH,
    SPAN,
    SYMMETRIC_GRAPH,
    WEIGHTED_GRAPH,
)

__all__ = [
    "Attr",
    "Equation",
    "Hom",
    "Path",
    "Schema",
    "as_path",
    "BIPARTITE_GRAPH",
    "DDS",
    "GRAPH",
    "LABELED_DDS",
    "POINT",
    "REFLEXIVE_GRAPH",
    "SPAN",
    "SYMMETRIC_GRAPH",
    "WEIGHTED_GRAPH",
]
