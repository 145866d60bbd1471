"""Unit tests for the logging helpers."""

import logging

from quote_intake.utils.logging import ContextFormatter, get_logger


def _record(**extra):
    record = logging.LogRecord("quote_intake.test", logging.INFO, __file__, 1, "Removed orphan", (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestContextFormatter:
    def test_plain_message_is_unchanged(self):
        """Test that a record without context is formatted as usual."""
        formatter = ContextFormatter(fmt="%(message)s")

        assert formatter.format(_record()) == "Removed orphan"

    def test_extra_context_is_appended_sorted(self):
        """Test that extra context is appended as sorted key=value pairs."""
        formatter = ContextFormatter(fmt="%(message)s")

        output = formatter.format(_record(vehicle_id="v1", deductible_id="d1"))

        assert output == "Removed orphan [deductible_id=d1 vehicle_id=v1]"


class TestGetLogger:
    def test_level_override(self):
        """Test that an explicit level overrides the configured one."""
        logger = get_logger("quote_intake.tests.level_override", level="debug")

        assert logger.level == logging.DEBUG

    def test_handler_added_once(self):
        """Test that repeated lookups do not stack handlers."""
        name = "quote_intake.tests.single_handler"
        get_logger(name)
        logger = get_logger(name)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, ContextFormatter)
