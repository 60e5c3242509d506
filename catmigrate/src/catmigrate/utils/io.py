"""Utilities for loading and saving schemas, instances and mappings as JSON."""

from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from catmigrate.instance.instance import Instance
from catmigrate.mapping.models import Functor, SchemaMapping
from catmigrate.schema.presentation import Schema


class InstanceDocument(BaseModel):
    """On-disk form of an instance: row counts plus one list per column."""

    model_config = ConfigDict(populate_by_name=True)

    schema_name: str = Field(alias="schema")
    counts: Dict[str, int]
    columns: Dict[str, List[Any]] = Field(default_factory=dict)


def _read(path: Path) -> str:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    content = path.read_text(encoding="utf-8").strip()
    if not content:
        raise ValueError(f"File is empty: {path}")
    return content


def _write(path: Path, content: str) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def load_schema(path: Path) -> Schema:
    """
    Load a Schema from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty
        ValidationError: If the JSON does not describe a valid schema
    """
    return TypeAdapter(Schema).validate_json(_read(path))


def save_schema(schema: Schema, path: Path) -> None:
    _write(path, schema.model_dump_json(indent=2))


def instance_to_document(instance: Instance) -> InstanceDocument:
    columns = {
        name: instance[name]
        for name in [h.name for h in instance.schema.homs] + [a.name for a in instance.schema.attrs]
    }
    return InstanceDocument(
        schema_name=instance.schema.name,
        counts={ob: instance.nparts(ob) for ob in instance.schema.obs},
        columns=columns,
    )


def load_instance(path: Path, schema: Schema) -> Instance:
    """
    Load an instance of ``schema`` from a JSON file.

    Args:
        path: Path to the JSON file
        schema: Schema the instance conforms to

    Returns:
        Loaded instance

    Raises:
        ValueError: If the file names a different schema
        MigrationError: If counts or columns do not fit the schema
    """
    document = InstanceDocument.model_validate_json(_read(path))
    if document.schema_name != schema.name:
        raise ValueError(
            f"Instance file {path} is for schema '{document.schema_name}', not '{schema.name}'"
        )
    return Instance.from_columns(schema, document.counts, document.columns)


def save_instance(instance: Instance, path: Path) -> None:
    """
    Save an instance to a JSON file.

    Note:
        Attribute values must be JSON serialisable.
    """
    _write(path, instance_to_document(instance).model_dump_json(by_alias=True, indent=2))


def load_functor(path: Path) -> Functor:
    """Load a plain functor (with both of its schemas) from a JSON file."""
    return TypeAdapter(Functor).validate_json(_read(path))


def load_mapping(path: Path) -> Union[SchemaMapping, Functor]:
    """
    Load a query mapping or a plain functor from a JSON file.

    The document is read as whichever of the two models it validates
    against: functors carry ``ob_map``, query mappings carry ``obs``.
    """
    return TypeAdapter(Union[Functor, SchemaMapping]).validate_json(_read(path))


def save_mapping(mapping: Union[SchemaMapping, Functor], path: Path) -> None:
    _write(path, mapping.model_dump_json(indent=2))
