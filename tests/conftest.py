import pytest
from fastapi.testclient import TestClient

from signal_hub.db import Base, make_engine, make_session_factory
from signal_hub.main import create_app


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    return TestClient(create_app(session_factory))
