"""catmigrate: Delta, query and Sigma data migrations between finitely presented schemas."""

from catmigrate.errors import (
    AritySizeMismatch,
    MalformedMapping,
    MigrationError,
    NonFunctorial,
    SchemaMismatch,
    UnreachableMorphism,
)
from catmigrate.instance import Instance, coproduct
from catmigrate.mapping import Functor, SchemaMapping
from catmigrate.migration import delta, migrate, migrate_into, sigma
from catmigrate.schema import Path, Schema

__version__ = "0.1.0"

__all__ = [
    "AritySizeMismatch",
    "MalformedMapping",
    "MigrationError",
    "NonFunctorial",
    "SchemaMismatch",
    "UnreachableMorphism",
    "Instance",
    "coproduct",
    "Functor",
    "SchemaMapping",
    "delta",
    "migrate",
    "migrate_into",
    "sigma",
    "Path",
    "Schema",
]
