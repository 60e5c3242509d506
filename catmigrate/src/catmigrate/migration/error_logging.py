"""Error logging utilities for migrations."""

import traceback
from typing import Any, Dict, Optional

from catmigrate.config.logging import get_logger
from catmigrate.errors import MigrationError

logger = get_logger(__name__)

# Detail keys that name the generator a migration failed on
_OB_KEYS = ("object",)
_HOM_KEYS = ("morphism", "attribute", "generator")


def log_migration_error(
    error: Exception,
    operation: Optional[str] = None,
    ob: Optional[str] = None,
    hom: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log a failed migration with its type, message and context.

    The failing object and morphism default to the ones recorded in the
    error's ``details``; the remaining details are logged as context.

    Args:
        error: The exception that occurred
        operation: Description of the operation being performed
        ob: Object being evaluated when the error occurred
        hom: Morphism or attribute being evaluated when the error occurred
        context: Additional context dictionary
    """
    error_type = type(error).__name__

    details = dict(error.details) if isinstance(error, MigrationError) else {}
    for key in _OB_KEYS:
        found = details.pop(key, None)
        ob = ob or found
    for key in _HOM_KEYS:
        found = details.pop(key, None)
        hom = hom or found
    context = {**details, **(context or {})}

    context_parts = []
    if operation:
        context_parts.append(f"Operation: {operation}")
    if ob:
        context_parts.append(f"Object: {ob}")
    if hom:
        context_parts.append(f"Morphism: {hom}")
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        context_parts.append(f"Context: {context_str}")

    error_msg = f"[{error_type}] {error}"
    if context_parts:
        error_msg += " | " + " | ".join(context_parts)

    # Migration errors are schema/mapping design errors, not crashes
    if isinstance(error, MigrationError):
        logger.error(error_msg)
    else:
        logger.error(error_msg, exc_info=True)

    logger.debug(f"Full traceback for {error_type}:\n{traceback.format_exc()}")
