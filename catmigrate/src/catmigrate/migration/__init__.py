"""Migration engines: Delta, query (join/case) and Sigma."""

from .api import delta, identity, migrate, migrate_into, sigma
from .delta import DeltaMigration
from .query import CaseRow, QueryMigration, TabularInstance
from .sigma import SigmaMigration
from .unionfind import UnionFind

__all__ = [
    "delta",
    "identity",
    "migrate",
    "migrate_into",
    "sigma",
    "DeltaMigration",
    "CaseRow",
    "QueryMigration",
    "TabularInstance",
    "SigmaMigration",
    "UnionFind",
]
