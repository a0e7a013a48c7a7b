"""Shared pytest configuration and fixtures."""

import logging
import os
import tempfile

import pytest

# log files of modules that configure logging on import go to a throwaway dir
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="ingest-bridge-tests-"))

from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger


@pytest.fixture
def logger() -> ColorLogger:
    return ColorLogger(logging.getLogger("tests"))


@pytest.fixture
def helper_config(logger: ColorLogger) -> HelperConfig:
    return HelperConfig(logger=logger)
