import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_root_logging():
    """Drop handlers installed by ``configure_logging`` after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
    for h in list(root.handlers):
        if getattr(h, "_added_by_configure_logging", False):
            root.removeHandler(h)
            h.close()
