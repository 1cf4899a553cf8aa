"""Shared pytest fixtures."""
import logging

import pytest

from survey_app import JsonFormatter


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Remove JSON handlers installed by setup_logging and restore the level."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if isinstance(handler.formatter, JsonFormatter):
            root_logger.removeHandler(handler)
    root_logger.setLevel(level)
