"""Shared pytest fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_jarvis_logger():
    """Detach handlers added by setup_logging so tests stay isolated."""
    logger = logging.getLogger("jarvis")
    level = logger.level
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
