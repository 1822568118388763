import pathlib
import site

import pytest
from dataaccess.connection import dispose_all_engines

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def dispose_engines():
    """Dispose cached engines after each test to keep tests isolated."""
    yield
    dispose_all_engines()


pytest_plugins = [
    'tests.fixtures.fakes',
]
