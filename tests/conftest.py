# tests/conftest.py
"""Shared fixtures: every test sees a freshly resolved configuration."""

import pytest


@pytest.fixture(autouse=True)
def _fresh_config():
    from schemamend.config import get_config

    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def reset_logging():
    """Detach handlers installed by setup_logging once the test is done."""
    import logging

    import schemamend.utils.logging as log_mod

    yield
    root = logging.getLogger(log_mod.ROOT_LOGGER)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for f in root.filters[:]:
        root.removeFilter(f)
    root.propagate = True
    root.setLevel(logging.NOTSET)
    log_mod._logging_initialised = False
    log_mod._log_file_path = None
    log_mod._session_id = None
