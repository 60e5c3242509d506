"""Operation surface: migrate, migrate_into, delta and sigma."""

from typing import Dict, Optional, Union

from catmigrate.config.logging import get_logger
from catmigrate.errors import MigrationError, SchemaMismatch
from catmigrate.instance.instance import Instance
from catmigrate.mapping.models import Functor, SchemaMapping
from catmigrate.migration.delta import DeltaMigration
from catmigrate.migration.error_logging import log_migration_error
from catmigrate.migration.query import QueryMigration, TabularInstance
from catmigrate.migration.sigma import SigmaMigration
from catmigrate.schema.presentation import Schema

logger = get_logger(__name__)

MappingLike = Union[SchemaMapping, Functor, Dict[str, str]]


def _as_mapping(
    schema: Schema,
    instance: Instance,
    mapping: MappingLike,
    hom_map: Optional[Dict[str, object]],
) -> Union[SchemaMapping, Functor]:
    """Turn the accepted mapping forms into a functor or query mapping."""
    if isinstance(mapping, dict):
        if hom_map is None:
            raise SchemaMismatch("An object map given as a dict needs a morphism map as well")
        return Functor(
            dom=schema,
            codom=instance.schema,
            ob_map=mapping,
            hom_map=dict(hom_map),
        )
    if mapping.dom != schema:
        raise SchemaMismatch(
            f"Mapping produces instances of '{mapping.dom.name}', not of '{schema.name}'"
        )
    return mapping


def _engine(mapping: Union[SchemaMapping, Functor]):
    if isinstance(mapping, Functor) or mapping.is_plain:
        if isinstance(mapping, SchemaMapping):
            mapping = Functor(
                dom=mapping.dom,
                codom=mapping.codom,
                ob_map={**{n: o.ob for n, o in mapping.obs.items()}, **mapping.attrtypes},
                hom_map={n: image.path for n, image in mapping.homs.items()},
            )
        logger.debug(f"Using the delta engine for {mapping.dom.name} -> {mapping.codom.name}")
        return DeltaMigration(mapping)
    logger.debug(f"Using the query engine for {mapping.dom.name} -> {mapping.codom.name}")
    return QueryMigration(mapping)


def migrate(
    schema: Schema,
    instance: Instance,
    mapping: MappingLike,
    hom_map: Optional[Dict[str, object]] = None,
    tabular: bool = False,
) -> Union[Instance, TabularInstance]:
    """
    Migrate ``instance`` into a fresh instance over ``schema``.

    Plain functors run through the Delta engine; mappings with join or case
    objects run through the query engine.

    Args:
        schema: Schema of the produced instance (the mapping's domain)
        instance: Instance over the mapping's codomain
        mapping: Query mapping, functor, or object map given as a dict
        hom_map: Morphism map, required when ``mapping`` is a dict
        tabular: Return a ``TabularInstance`` (query mappings only)

    Returns:
        New instance over ``schema``

    Raises:
        MigrationError: Any subclass, after it has been logged
    """
    try:
        resolved = _as_mapping(schema, instance, mapping, hom_map)
        engine = _engine(resolved)
        if isinstance(engine, QueryMigration):
            return engine(instance, tabular=tabular)
        if tabular:
            # Every row of a plain migration is its own id
            return QueryMigration(engine.functor)(instance, tabular=True)
        return engine(instance)
    except MigrationError as e:
        log_migration_error(e, operation="migrate", context={"schema": schema.name})
        raise


def migrate_into(
    existing: Instance,
    instance: Instance,
    mapping: MappingLike,
    hom_map: Optional[Dict[str, object]] = None,
) -> Instance:
    """
    Migrate ``instance`` and append the result to ``existing`` in place.

    Nothing is appended unless the whole migration succeeds.

    Returns:
        ``existing``
    """
    try:
        resolved = _as_mapping(existing.schema, instance, mapping, hom_map)
        return _engine(resolved).migrate_into(existing, instance)
    except MigrationError as e:
        log_migration_error(e, operation="migrate_into", context={"schema": existing.schema.name})
        raise


def delta(functor: Functor) -> DeltaMigration:
    """Reusable pullback along ``functor``."""
    try:
        return DeltaMigration(functor)
    except MigrationError as e:
        log_migration_error(e, operation="delta")
        raise


def sigma(functor: Functor, max_rows: Optional[int] = None) -> SigmaMigration:
    """Reusable pushforward along ``functor``."""
    try:
        return SigmaMigration(functor, max_rows=max_rows)
    except MigrationError as e:
        log_migration_error(e, operation="sigma")
        raise


def identity(schema: Schema) -> Functor:
    """Identity functor on ``schema``."""
    return Functor.identity(schema)

