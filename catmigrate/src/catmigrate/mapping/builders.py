"""Shorthand constructors for diagrams and query mappings."""

from typing import Dict, Iterable, Optional, Tuple, Union

from catmigrate.mapping.models import (
    CaseOb,
    Cases,
    Diagram,
    DiagramEdge,
    Inject,
    JoinOb,
    PlainOb,
    Project,
    TupleOf,
)
from catmigrate.schema.presentation import Path

EdgeSpec = Union[DiagramEdge, Tuple[str, str, Union[str, Iterable[str], Path]]]


def _edge(spec: EdgeSpec) -> DiagramEdge:
    if isinstance(spec, DiagramEdge):
        return spec
    src, tgt, path = spec
    return DiagramEdge(src=src, tgt=tgt, path=path)


def diagram(vertices: Dict[str, str], edges: Iterable[EdgeSpec] = ()) -> Diagram:
    """Diagram from ``{vertex: ob}`` and ``(src, tgt, path)`` triples."""
    return Diagram(vertices=dict(vertices), edges=tuple(_edge(e) for e in edges))


def plain(ob: str) -> PlainOb:
    return PlainOb(ob=ob)


def join(vertices: Dict[str, str], edges: Iterable[EdgeSpec] = ()) -> JoinOb:
    return JoinOb(diagram=diagram(vertices, edges))


def cases(vertices: Dict[str, str], edges: Iterable[EdgeSpec] = ()) -> CaseOb:
    return CaseOb(diagram=diagram(vertices, edges))


def project(*steps: str, vertex: Optional[str] = None, start: Optional[str] = None) -> Project:
    """``project("src", vertex="e1")`` reads as ``e1.src``."""
    return Project(vertex=vertex, path=Path(steps=steps, start=start))


def tuple_of(**components: Project) -> TupleOf:
    return TupleOf(components=components)


def inject(case: str, *steps: str, vertex: Optional[str] = None) -> Inject:
    return Inject(case=case, image=project(*steps, vertex=vertex))


def arms(**images) -> Cases:
    return Cases(arms=images)
