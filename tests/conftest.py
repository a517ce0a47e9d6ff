"""Shared fixtures for the test suite."""

import logging

import pytest

PIPELINE_LOGGER = "thumbnails-pipeline"


@pytest.fixture(autouse=True)
def reset_pipeline_logging():
    """Give every test a freshly configured pipeline logger and root level."""
    pipeline_logger = logging.getLogger(PIPELINE_LOGGER)
    root = logging.getLogger()
    root_level = root.level

    pipeline_logger.handlers.clear()
    yield
    pipeline_logger.handlers.clear()
    root.setLevel(root_level)
