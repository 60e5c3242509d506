"""Functors, diagrams and query mappings between schemas."""

from .builders import arms, cases, diagram, inject, join, plain, project, tuple_of
from .models import (
    CaseOb,
    Cases,
    Diagram,
    DiagramEdge,
    Functor,
    Inject,
    JoinOb,
    PlainOb,
    Project,
    SchemaMapping,
    TupleOf,
)
from .validators import validate_functor, validate_mapping

__all__ = [
    "arms",
    "cases",
    "diagram",
    "inject",
    "join",
    "plain",
    "project",
    "tuple_of",
    "CaseOb",
    "Cases",
    "Diagram",
    "DiagramEdge",
    "Functor",
    "Inject",
    "JoinOb",
    "PlainOb",
    "Project",
    "SchemaMapping",
    "TupleOf",
    "validate_functor",
    "validate_mapping",
]
