"""Constructors for small graph instances."""

from typing import Sequence

from catmigrate.instance.instance import Instance
from catmigrate.schema.presentation import Schema
from catmigrate.schema.standard import GRAPH


def add_vertices(g: Instance, n: int) -> range:
    """Add ``n`` vertices; reflexive graphs also get their loops."""
    if g.schema.has_hom("refl"):
        start = g.nparts("V")
        # Vertices and their loops refer to each other, so add them as one block.
        loops = Instance.from_columns(
            g.schema,
            {"V": n, "E": n},
            {"src": range(n), "tgt": range(n), "refl": range(n)},
        )
        g.add_instance(loops)
        return range(start, start + n)
    return g.add_parts("V", n)


def add_edges(g: Instance, srcs: Sequence[int], tgts: Sequence[int]) -> range:
    """Add edges; symmetric graphs get every edge together with its reverse."""
    if g.schema.has_hom("inv"):
        k = len(srcs)
        base = g.nparts("E")
        inv = list(range(base + k, base + 2 * k)) + list(range(base, base + k))
        return g.add_parts(
            "E", 2 * k,
            src=list(srcs) + list(tgts),
            tgt=list(tgts) + list(srcs),
            inv=inv,
        )
    return g.add_parts("E", len(srcs), src=list(srcs), tgt=list(tgts))


def empty_graph(n: int, schema: Schema = GRAPH) -> Instance:
    g = Instance(schema)
    add_vertices(g, n)
    return g


def path_graph(n: int, schema: Schema = GRAPH) -> Instance:
    """Path ``0 -> 1 -> ... -> n-1``."""
    g = empty_graph(n, schema)
    add_edges(g, list(range(n - 1)), list(range(1, n)))
    return g


def cycle_graph(n: int, schema: Schema = GRAPH) -> Instance:
    """Cycle ``0 -> 1 -> ... -> n-1 -> 0``."""
    g = empty_graph(n, schema)
    add_edges(g, list(range(n)), [(i + 1) % n for i in range(n)])
    return g


def star_graph(n: int, schema: Schema = GRAPH) -> Instance:
    """Star with center ``n-1`` and an edge from the center to every other vertex."""
    g = empty_graph(n, schema)
    add_edges(g, [n - 1] * (n - 1), list(range(n - 1)))
    return g
