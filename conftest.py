import mongomock
import pytest
from fastapi.testclient import TestClient

from api import create_app
from config import Settings
from database import BookStore, ConnectionSupervisor
from library import Library


@pytest.fixture
def test_settings():
    return Settings(
        mongodb_uri="mongodb://localhost:27017/?retryWrites=true&w=majority",
        mongodb_db_name="bookDirectory_test",
        environment="production",
    )


@pytest.fixture
def mongo_client():
    # Her test için yeni bir bellek içi veritabanı
    return mongomock.MongoClient()


@pytest.fixture
def supervisor(test_settings, mongo_client):
    sup = ConnectionSupervisor(test_settings, client_factory=lambda *args, **kwargs: mongo_client)
    assert sup.connect()
    return sup


@pytest.fixture
def lib(supervisor):
    return Library(BookStore(supervisor))


@pytest.fixture
def client(test_settings, supervisor):
    app = create_app(test_settings, supervisor)
    with TestClient(app) as test_client:
        yield test_client
