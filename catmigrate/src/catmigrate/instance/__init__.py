"""Instances: finite populations of a schema."""

from .instance import Instance, coproduct
from .graphs import add_edges, add_vertices, cycle_graph, empty_graph, path_graph, star_graph

__all__ = [
    "Instance",
    "coproduct",
    "add_edges",
    "add_vertices",
    "cycle_graph",
    "empty_graph",
    "path_graph",
    "star_graph",
]
