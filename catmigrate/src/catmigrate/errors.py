"""Exceptions raised while validating mappings and running migrations."""

from typing import Any, Dict, Optional


class MigrationError(Exception):
    """Base class for all migration failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SchemaMismatch(MigrationError):
    """A mapping or instance refers to a generator its schema does not declare."""

    pass


class MalformedMapping(MigrationError):
    """A diagram or morphism image is structurally wrong.

    Raised for references to missing diagram vertices, images whose kind
    does not fit the kind of their source or target object, and tuples that
    do not satisfy the equations of the diagram they should land in.
    """

    pass


class AritySizeMismatch(MigrationError):
    """Row functions do not line up (wrong domain, codomain or length)."""

    pass


class NonFunctorial(MigrationError):
    """An assignment breaks an equation, or forced merges conflict."""

    pass


class UnreachableMorphism(MigrationError):
    """A target morphism has no finite, well-defined image."""

    pass
