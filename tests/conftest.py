import logging
import pathlib
import site

import pytest

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def adapter_debug_logging(caplog):
    """Capture adapter debug logging so tests can inspect what was logged."""
    caplog.set_level(logging.DEBUG, logger='mongo_adapter')
    yield


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.values',
    'tests.fixtures.mongo',
]
