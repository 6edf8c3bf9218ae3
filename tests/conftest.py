import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'view_stats.db'}"


@pytest.fixture
def settings(database_url):
    return Settings(database_url=database_url, store_init_attempts=1, store_init_wait=0)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which opens and closes the store
    with TestClient(app) as client:
        yield client
