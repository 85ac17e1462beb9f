"""Root test configuration: restore loguru's default sink between tests"""

import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def reset_logging():
    """CLI commands replace loguru sinks; put the default stderr sink back afterwards."""
    yield
    logger.remove()
    logger.add(sys.stderr)
