"""Tests for logging configuration and migration error reports."""

import logging

from catmigrate.config import get_logger, reset_settings, setup_logging
from catmigrate.errors import NonFunctorial, UnreachableMorphism
from catmigrate.migration.error_logging import log_migration_error


def capture(caplog, error, **kwargs):
    package_logger = logging.getLogger("catmigrate")
    package_logger.addHandler(caplog.handler)
    try:
        log_migration_error(error, **kwargs)
    finally:
        package_logger.removeHandler(caplog.handler)
    return caplog.records[-1].getMessage()


def test_module_level_overrides(monkeypatch):
    """Test that single modules can log below the package level."""
    monkeypatch.setenv("CATMIGRATE_LOG_LEVELS", '{"migration.sigma": "DEBUG"}')
    reset_settings()
    try:
        setup_logging(level="WARNING")
        assert logging.getLogger("catmigrate").level == logging.WARNING
        assert get_logger("catmigrate.migration.sigma").getEffectiveLevel() == logging.DEBUG
        assert get_logger("migration.delta").getEffectiveLevel() == logging.WARNING
        assert get_logger("migration.delta").name == "catmigrate.migration.delta"
    finally:
        logging.getLogger("catmigrate.migration.sigma").setLevel(logging.NOTSET)
        monkeypatch.delenv("CATMIGRATE_LOG_LEVELS")
        reset_settings()
        setup_logging()


def test_error_report_names_failing_generator(caplog):
    """Test that the object and morphism recorded on an error are reported."""
    error = NonFunctorial("glued rows disagree", details={"morphism": "src", "row": 3})
    message = capture(caplog, error, operation="migrate", context={"schema": "Graph"})
    assert message.startswith("[NonFunctorial] glued rows disagree")
    assert "Operation: migrate" in message
    assert "Morphism: src" in message
    assert "Context: row=3, schema=Graph" in message

    error = UnreachableMorphism("too many rows", details={"object": "V", "max_rows": 10})
    message = capture(caplog, error, operation="sigma")
    assert "Object: V" in message
    assert "Morphism" not in message
    assert "Context: max_rows=10" in message
