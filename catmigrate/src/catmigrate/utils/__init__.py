"""Utility functions for common operations."""

from .io import (
    load_functor,
    load_instance,
    load_mapping,
    load_schema,
    save_instance,
    save_mapping,
    save_schema,
)

__all__ = [
    "load_functor",
    "load_instance",
    "load_mapping",
    "load_schema",
    "save_instance",
    "save_mapping",
    "save_schema",
]
