import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI invocations attach handlers bound to CliRunner streams; drop them after each test."""
    yield
    logger = logging.getLogger("jql_to_plan")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
