import pytest
from PySide6.QtCore import QCoreApplication

from factories import make_station


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def station():
    return make_station(1)
