"""Typer CLI application."""

import typer
from pathlib import Path

from catmigrate.config import setup_logging
from catmigrate.errors import MigrationError
from catmigrate.mapping.models import Functor
from catmigrate.migration.api import migrate as run_migrate
from catmigrate.migration.api import sigma as build_sigma
from catmigrate.utils.io import load_functor, load_instance, load_mapping, load_schema, save_instance

app = typer.Typer(help="catmigrate: categorical data migration between schemas")


def _fail(error: MigrationError) -> None:
    typer.echo(f"Error: [{type(error).__name__}] {error}", err=True)
    raise typer.Exit(1)


@app.command()
def migrate(mapping_file: Path, instance_file: Path, out_instance: Path):
    """
    Migrate an instance along a query mapping or functor (pullback direction).

    Args:
        mapping_file: Path to a mapping or functor JSON file
        instance_file: Path to an instance of the mapping's codomain
        out_instance: Output path for the migrated instance
    """
    setup_logging()

    typer.echo(f"Loading mapping from {mapping_file}")
    mapping = load_mapping(mapping_file)
    instance = load_instance(instance_file, mapping.codom)
    typer.echo(f"Loaded {instance}")

    try:
        result = run_migrate(mapping.dom, instance, mapping)
    except MigrationError as e:
        _fail(e)

    save_instance(result, out_instance)
    typer.echo(f"✓ Complete! {result} written to {out_instance}")


@app.command()
def sigma(functor_file: Path, instance_file: Path, out_instance: Path):
    """
    Push an instance forward along a functor.

    Args:
        functor_file: Path to a functor JSON file
        instance_file: Path to an instance of the functor's domain
        out_instance: Output path for the pushed-forward instance
    """
    setup_logging()

    typer.echo(f"Loading functor from {functor_file}")
    functor: Functor = load_functor(functor_file)
    instance = load_instance(instance_file, functor.dom)
    typer.echo(f"Loaded {instance}")

    try:
        result = build_sigma(functor)(instance)
    except MigrationError as e:
        _fail(e)

    save_instance(result, out_instance)
    typer.echo(f"✓ Complete! {result} written to {out_instance}")


@app.command()
def show(schema_file: Path, instance_file: Path):
    """
    Print every table of an instance.

    Args:
        schema_file: Path to a schema JSON file
        instance_file: Path to an instance of that schema
    """
    setup_logging()

    schema = load_schema(schema_file)
    instance = load_instance(instance_file, schema)
    for ob, frame in instance.to_frames().items():
        typer.echo(f"{ob} ({len(frame)} rows)")
        typer.echo(frame.to_string() if len(frame.columns) else "  (no columns)")
        typer.echo("")


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
